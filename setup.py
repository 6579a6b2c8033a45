#!/usr/bin/env python

import os
import os.path

from setuptools import setup

install_requires = [
    'pycryptodome >=3.9',
    'gmpy2 >=2.1',
]

base_path = os.path.dirname(os.path.abspath(__file__))

with open(os.path.join(base_path, 'src', '_version.py')) as f:
    exec(f.read())

with open(os.path.join(base_path, 'README.rst')) as f:
    with open(os.path.join(base_path, 'CHANGES.rst')) as g:
        long_description = '{0}\n{1}'.format(f.read(), g.read())

setup(
    name='eccpem',
    version=__version__,  # noqa: F821
    description='Elliptic Curve key pairs to and from PEM files',
    long_description=long_description,
    packages=['eccpem', 'eccpem.tests'],
    package_dir={'eccpem': 'src'},
    license='MIT',
    zip_safe=True,
    python_requires='>=3.6',
    install_requires=install_requires,
    extras_require={
        'test': ['pytest'],
    },
    classifiers=[
        'Development Status :: 4 - Beta',
        'License :: OSI Approved :: MIT License',
        'Operating System :: POSIX',
        'Topic :: Security :: Cryptography',
        'Programming Language :: Python :: 3',
    ],
    test_suite='eccpem.tests',
)
