from setuptools import setup, find_packages

setup(
    name="statement_reconcile",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "pandas",
        "numpy",
        "openpyxl",
        "rapidfuzz>=3.0.0",
        "httpx",
        "babel",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-dependency",
        ],
    },
    entry_points={
        "console_scripts": [
            "statement-reconcile=statement_reconcile.cli:main",
        ],
    },
    description="Reconcile investment statements and bank transactions with account balances",
    python_requires=">=3.8",
)
