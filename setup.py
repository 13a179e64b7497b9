import codecs
import os
import re

from setuptools import find_packages
from setuptools import setup


def read_file(filename, encoding='utf8'):
    """Read unicode from given file."""
    with codecs.open(filename, encoding=encoding) as fd:
        return fd.read()


here = os.path.abspath(os.path.dirname(__file__))

# read version number (and other metadata) from package init
init_fn = os.path.join(here, 'src', 'certgen', '__init__.py')
meta = dict(re.findall(r"""__([a-z]+)__ = '([^']+)""", read_file(init_fn)))

version = meta['version']

# This package relies on PyOpenSSL as well, however, it isn't specified here
# to avoid masking the more specific requirements in acme.
install_requires = [
    'acme>=2.0.0',
    'ConfigArgParse>=1.5.3',
    'cryptography>=43.0.0',
    'josepy>=2.0.0',
    'requests>=2.20.0',
]

test_extras = [
    'pytest',
]


setup(
    name='certgen',
    version=version,
    description="Interactive ACME DNS-01 certificate generator for Let's Encrypt",
    license='Apache License 2.0',
    python_requires='>=3.9',
    package_dir={'': 'src'},
    packages=find_packages(where='src'),
    include_package_data=True,
    install_requires=install_requires,
    extras_require={
        'test': test_extras,
    },
    entry_points={
        'console_scripts': [
            'certgen = certgen.main:main',
        ],
    },
)
