from setuptools import find_packages, setup

setup(
    name="racket-cst",
    version="0.1.0",
    description="Lossless, error-tolerant concrete syntax trees for Racket source",
    packages=find_packages(include=["racket_cst", "racket_cst.*"]),
    python_requires=">=3.10",
    install_requires=[],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "racket-cst=racket_cst.cli:main",
        ],
    },
)
