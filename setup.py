"""Build the dflog package."""

from setuptools import setup, find_packages

setup(
    name="dflog",
    version="0.1.0",
    description="ArduPilot DataFlash binary log decoder",
    package_dir={"": "python"},
    packages=find_packages("python"),
    python_requires=">=3.9",
    install_requires=[
        "numpy",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "dflog=dflog.cli:main",
        ],
    },
)
