#!/usr/bin/env python3
"""odoodeploy - Setup"""

from setuptools import setup, find_packages

with open("requirements.txt") as f:
    requirements = f.read().splitlines()

setup(
    name="odoodeploy",
    version="1.0.0",
    description="Idempotent single-host Odoo provisioning: Docker, Nginx, Let's Encrypt",
    author="odoodeploy Team",
    packages=find_packages(include=["odoodeploy", "odoodeploy.*"]),
    install_requires=requirements,
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "odoodeploy=odoodeploy.main:main",
        ],
    },
    python_requires=">=3.9",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: System Administrators",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
)
