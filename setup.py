"""
vidscribe setuptools build script.

Usage:
    # Development install:
    pip install -e .

    # With test dependencies:
    pip install -e ".[test]"
"""

from setuptools import setup, find_namespace_packages

APP_NAME = "vidscribe"

setup(
    name=APP_NAME,
    version="1.0.0",
    description="Video and audio transcript extraction with optional AI summaries",
    packages=find_namespace_packages(include=["vidscribe", "vidscribe.*"]),
    install_requires=[
        "requests>=2.28.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    python_requires=">=3.10",
    entry_points={
        "console_scripts": [
            "vidscribe=vidscribe.cli:main",
        ],
    },
)
