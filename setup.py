#!/usr/bin/env python
# -*- coding: utf-8 -*-

from setuptools import setup, find_packages

try:
    readme_text = open("README.rst", "r").read()
except IOError:
    readme_text = ""

setup(
    name="gsrest",
    version="0.1.0",
    description="Resource model for the GeoServer REST configuration API",
    long_description=readme_text,
    keywords="GeoServer REST Configuration",
    license="MIT",
    install_requires=[
        "requests >= 2.25.0",
        "six >= 1.12.0",
    ],
    extras_require={
        "test": [
            "pytest",
            "gisdata >= 0.5.4",
        ],
    },
    package_dir={"": "src"},
    packages=find_packages("src"),
    python_requires=">=3.8",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Intended Audience :: Science/Research",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python",
        "Topic :: Scientific/Engineering :: GIS",
        "Programming Language :: Python :: 3.8",
    ],
)
