from setuptools import setup, find_packages

version = {}
with open("pwa_cache/version.py") as fp:
    exec(fp.read(), version)
# later on we use: version['__version__']

with open("README.md", "r") as fh:
    long_description = fh.read()

name = "PWACache"

setup(
    name=name,
    version=version["__version__"],
    description="Partial wave analysis amplitudes with incremental recalculation",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="",
    packages=find_packages(),
    package_data={
        "": ["*.yml", "*.json"],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.6",
    install_requires=[
        "numpy",
        "sympy",
        "PyYAML",
        "opt_einsum",
    ],
    extras_require={
        "test": ["pytest"],
    },
)
