#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Setup script for the questionnaire scoring engine (qsengine)
"""

from pathlib import Path

from setuptools import setup, find_packages

VERSION = "1.0.0"

# Read README for long description
readme_file = Path(__file__).parent / "README.md"
if readme_file.exists():
    long_description = readme_file.read_text(encoding="utf-8")
else:
    long_description = "Questionnaire visibility and factor-scoring rule engine"

setup(
    name="qsengine",
    version=VERSION,
    description="Questionnaire visibility and factor-scoring rule engine",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["qsengine", "qsengine.*"]),
    python_requires=">=3.9",
    install_requires=[
        "pydantic>=2.0",
        "prometheus_client>=0.17",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
    ],
)
