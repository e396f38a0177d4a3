#!/usr/bin/env python3
"""Setup script for serial_preference package."""

import os

from setuptools import find_packages, setup


# Read the README file
def read_readme():
    readme_path = os.path.join(os.path.dirname(__file__), "README.md")
    if os.path.exists(readme_path):
        with open(readme_path, "r", encoding="utf-8") as f:
            return f.read()
    return ""


# Read version from __init__.py
def get_version():
    version_file = os.path.join(
        os.path.dirname(__file__), "serial_preference", "__init__.py"
    )
    if os.path.exists(version_file):
        with open(version_file, "r", encoding="utf-8") as f:
            for line in f:
                if line.startswith("__version__"):
                    return line.split("=")[1].strip().strip("\"'")
    return "0.1.0"


setup(
    name="serial-preference",
    version=get_version(),
    author="Your Name",
    author_email="your.email@example.com",
    description="Typed preference maps serialized into a single model attribute, with generated accessors and validations",
    long_description=read_readme(),
    long_description_content_type="text/markdown",
    url="https://github.com/yourusername/serial-preference",
    packages=find_packages(exclude=["tests", "tests.*", "examples"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
        "Topic :: Database",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "Typing :: Typed",
    ],
    python_requires=">=3.9",
    install_requires=[
        "SQLAlchemy>=2.0",
    ],
    extras_require={
        "dev": [
            "pytest>=6.0",
            "black>=22.0",
            "isort>=5.0",
            "mypy>=0.900",
            "flake8>=4.0",
        ],
        "test": [
            "pytest>=6.0",
        ],
    },
    keywords="preferences settings serialized json sqlalchemy mixin validation",
    project_urls={
        "Bug Reports": "https://github.com/yourusername/serial-preference/issues",
        "Source": "https://github.com/yourusername/serial-preference",
    },
    include_package_data=True,
    zip_safe=False,
)
