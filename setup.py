# -*- coding: utf-8 -*-
from setuptools import setup
from setuptools import find_packages
import bindcode

with open('README.md', encoding='utf-8') as file:
    long_description = file.read()

setup(
    name='Bindcode',
    version=bindcode.__version__,
    description='Ownership holders and call-time implicit conversions for exposing native objects to a dynamic host.',
    long_description=long_description,
    long_description_content_type='text/markdown',
    license='MIT',

    packages=find_packages(exclude=['tests', 'tests.*']),
    install_requires=[],
    include_package_data=True,
    zip_safe=False,
    test_suite='tests',
    extras_require={
        'testing': ['pytest', 'pytest-xdist'],
    },

    classifiers=[
        'Programming Language :: Python :: 3',
        'License :: OSI Approved :: MIT License',
        'Development Status :: 2 - Pre-Alpha',
        'Topic :: Software Development :: Libraries',
        'Topic :: Software Development :: Interpreters',
    ],
)
