from setuptools import find_namespace_packages, setup

setup(
    name='cssward',
    version='0.1.0',
    description='CSS tokenizer, parser and value grammar matching for sanitizing stylesheets',
    package_dir={ '': 'src' },
    packages=find_namespace_packages('src', include=[ 'cssward', 'cssward.*' ]),
    python_requires='>=3.11',
    extras_require={ 'test': [ 'pytest' ] },
)
