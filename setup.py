"""
Setup script for tally-sift.
"""

from setuptools import setup, find_packages

setup(
    name="tally-sift",
    version="0.1.0",
    description="HyperLogLog and Count-Min Sketch counters for unbounded streams",
    packages=find_packages(exclude=["tests", "tests.*", "examples"]),
    package_data={"tally_sift": ["py.typed"]},
    python_requires=">=3.8",
    extras_require={"test": ["pytest"]},
)
