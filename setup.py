#!/usr/bin/env python
# -*- coding: utf-8 -*-
#
# This is a python install script written for campipe python package.

import io
import os

from setuptools import setup, find_packages

here = os.path.abspath(os.path.dirname(__file__))

# Import the README and use it as the long-description.
with io.open(os.path.join(here, "README.rst"), encoding="utf-8") as f:
    long_description = f.read()

setup(

    name='camera-pipeline',

    # Versions should comply with PEP440.
    version='1.0.0',

    description=("Camera preview and still capture configuration: "
                 "sensor rotation, size selection, preview transform"),

    long_description=long_description,
    long_description_content_type="text/x-rst",

    python_requires='>=3.9',

    install_requires=[
        'numpy',
        'opencv-python',
    ],

    extras_require={
        'test': ['pytest'],
    },

    # Choose your license
    license='MIT',

    # See https://pypi.python.org/pypi?%3Aaction=list_classifiers
    classifiers=[
        # How mature is this project? Common values are
        #   3 - Alpha
        #   4 - Beta
        #   5 - Production/Stable
        'Development Status :: 4 - Beta',

        # Indicate who your project is intended for
        'Intended Audience :: Developers',
        'Topic :: Multimedia :: Video :: Capture',

        # Pick your license as you wish (should match "license" above)
        'License :: OSI Approved :: MIT License',

        'Programming Language :: Python :: 3',
    ],

    # What does your project relate to?
    keywords='camera, preview, orientation, opencv',

    packages=find_packages(include=["campipe", "campipe.*"]),
)
