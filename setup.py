from setuptools import setup, find_packages

setup(
    name="marketrecon",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "pandas",
        "numpy",
        "openpyxl",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "marketrecon=marketrecon.reconcile:main",
        ],
    },
    description="Reconcile marketplace order exports against Accurate accounting invoices",
    python_requires=">=3.8",
)
