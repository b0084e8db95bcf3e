#!/usr/bin/env python

from setuptools import setup

import idemix

setup(name='idemix',
      version=idemix.VERSION,
      description='Idemix anonymous credentials over the BN254 pairing group',
      packages=['idemix'],
      license="2-clause BSD",
      long_description="""An implementation of the Idemix anonymous credential protocols: issuer keys, credential issuance, presentation with selective disclosure, and pseudonym signatures.""",

      python_requires=">=3.8",
      install_requires=[
            "py_ecc >= 6.0.0",
            "msgpack >= 1.0.0",
            "pytest >= 2.5.0",
      ],
      extras_require={
            "test": ["pytest-cov >= 1.8.1"],
            "dev": ["paver >= 1.2.3", "pytest-cov >= 1.8.1"],
      },
      zip_safe=False,
)
