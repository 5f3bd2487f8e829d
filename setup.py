from setuptools import setup, find_packages

setup(
    name="waste_impact_factors",
    version="0.1.0",
    description="Builds waste impact factors from paired biogenic-variant LCA exports",
    packages=find_packages(include=["src", "src.*"]),
    python_requires=">=3.9",
    install_requires=[
        'pandas',
        'numpy',
        'openpyxl',
        'sqlalchemy>=1.4',
        'psycopg2-binary',
        'python-dotenv'
    ],
    extras_require={
        'test': ['pytest']
    }
)
