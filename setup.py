from setuptools import setup, find_packages

setup(
    name="superstructure",
    version="0.1.0",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    python_requires=">=3.8",
    install_requires=[
        "pyserial",
        "numpy",
    ],
    extras_require={
        "test": ["pytest"],
    },
)
