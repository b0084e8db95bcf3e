collect_ignore = ["setup.py", "pavement.py"]
