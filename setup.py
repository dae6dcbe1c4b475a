from setuptools import setup, find_packages

setup(
    name="rdfSesame",
    version="0.4.0",
    description="Sesame 2.0 HTTP protocol client for rdflib",
    author="rdfSesame contributors",
    packages=find_packages(include=["rdfSesame", "rdfSesame.*"]),
    python_requires=">=3.10",
    install_requires=[
        "click>=8.0",
        "requests>=2.31.0",
        "rdflib>=7.0",
        "lxml>=4.9",
        "PyYAML>=6.0",
        "tabulate>=0.8.9",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "requests-mock>=1.11",
            "pytest-socket>=0.6",
        ],
    },
    entry_points={
        "console_scripts": ["rdf-sesame=rdfSesame.cli.__main__:main"],
    },
    license="MIT",
)
