"""
Setup script for cohortmath package.
"""

from setuptools import setup, find_packages

setup(
    name="cohortmath",
    version="0.1.0",
    packages=find_packages(include=["cohortmath", "cohortmath.*"]),
    install_requires=[
        # Core numerical dependencies
        "numpy>=1.20.0",
        "pandas>=1.3.0",
        "scipy>=1.7.0",

        # Similarity graph and k-core peeling
        "networkx>=2.6",
        
        # Utilities
        "pyyaml>=6.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=6.0.0",
        ],
    },
    entry_points={
        'console_scripts': [
            'cohortmath=cohortmath.__main__:main',
        ],
    },
    description="Cohort clustering and similarity-graph k-core analysis for labelled records",
    keywords="clustering, kmeans, k-core, cohort analysis",
    python_requires=">=3.8",
)
