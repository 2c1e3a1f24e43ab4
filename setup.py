from setuptools import setup, find_packages

setup(
    name="docmerge",
    version="1.0.0",
    description="Merge spreadsheet rows into rich-text HTML templates and render PDF or Word documents",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.9",
    install_requires=[
        "PyMuPDF>=1.24.0",
        "python-docx>=1.1.0",
        "Pillow>=10.0.0",
        "beautifulsoup4>=4.12.0",
        "openpyxl>=3.1.0",
        "PyYAML>=6.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "docmerge=docmerge.cli:main",
        ],
    },
)
