from setuptools import setup, find_packages

setup(
    name="convergent",
    version="0.1.0",
    description="State-based CRDTs: counters, clocks, registers, sets and graphs",
    author="adamfilli",
    packages=find_packages(include=["convergent", "convergent.*"]),
    install_requires=[
        "pydantic>=2",
    ],
    extras_require={
        "test": ["pytest"],
    },
    include_package_data=True,
    python_requires=">=3.11",
)
