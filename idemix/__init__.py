# The idemix version
VERSION = '0.1.0'


__all__ = ["bn", "bp", "encode", "pack", "errors", "issuer", "credrequest",
           "credential", "signature", "nym", "roles", "identity"]

def run_tests():
    # These are only needed in case we test
    import pytest
    import os.path
    import glob

    # List all idemix files in the directory
    idemix_dir = os.path.dirname(os.path.realpath(__file__))
    pyfiles = glob.glob(os.path.join(idemix_dir, '*.py'))

    # Run the test suite
    print("Directory: %s" % pyfiles)
    res = pytest.main(["-v", "-x", "--doctest-modules"] + pyfiles)
    print("Result: %s" % res)

    # Return exit result
    return res
