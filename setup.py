from setuptools import setup, find_packages

setup(
    name="sparqlBridge",
    version="0.1.0",
    description="SPARQL query builder, execution gateway and triple store adapters",
    packages=find_packages(include=["sparqlBridge", "sparqlBridge.*"]),
    python_requires=">=3.10",
    install_requires=[
        "click>=8.0",
        "requests>=2.31.0",
        "rdflib>=6.0",
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
        "console_scripts": ["sparqlbridge=sparqlBridge.cli.__main__:main"],
    },
    license="MIT",
)
