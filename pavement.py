import os.path
import re

from paver.tasks import task
from paver.easy import sh


def tell(x):
    print()
    print(("-"*10)+ str(x) + ("-"*10))
    print()

@task
def build(quiet=True):
    """ Builds the idemix distribution, ready to be uploaded to pypi. """
    tell("Build dist")
    sh('python setup.py sdist', capture=quiet)

@task
def test(quiet=False):
    """ Runs the library, doctest and example tests, with coverage. """
    lib = open(os.path.join("idemix", "__init__.py")).read()
    v = re.findall("VERSION.*=.*['\"](.*)['\"]", lib)[0]

    tell("Testing idemix %s" % v)
    sh('python -m pytest --cov=idemix idemix examples', capture=quiet)

@task
def lint(quiet=False):
    """ Run the python linter on idemix. """
    tell("Run pylint on the library")
    sh('pylint idemix', capture=quiet)

@task
def wc(quiet=False):
    """ Count the idemix library and example code lines. """
    tell("Counting code lines")

    print("\nLibrary code:")
    sh('wc -l idemix/*.py', capture=quiet)

    print("\nExample code:")
    sh('wc -l examples/*.py', capture=quiet)

    print("\nAdministration code:")
    sh('wc -l pavement.py setup.py conftest.py', capture=quiet)
