# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Setup configuration for the pkgrepo package repository manager
"""

from setuptools import setup, find_packages

setup(
    name="pkgrepo",
    version="1.0.0",
    description="Package repository manager: validated install, delete and module resolution of extension packages",
    author="Jason Cafarelli",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    python_requires=">=3.11",
    install_requires=[
        "pydantic>=2.0.0",
        "PyYAML>=6.0",
        "python-gnupg>=0.5.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
        ]
    },
)
