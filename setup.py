#!/usr/bin/env python3

from setuptools import setup, find_packages

setup(
    name="teamcity-dl",
    version="1.0.0",
    description="Download and extract TeamCity build artifacts",
    packages=find_packages(exclude=("tests", "tests.*")),
    python_requires=">=3.8",
    extras_require={
        'test': ['pytest>=7'],
    },
    entry_points={
        'console_scripts': [
            'teamcity-dl=teamcity_dl.cli:main',
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Build Tools",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
