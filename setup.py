from setuptools import setup


setup(
    name="sheet-merger",
    version="1.0.0",
    description="Join item and alt-id spreadsheet exports by order id into merged CSVs and a master workbook",
    packages=["sheet_merger"],
    python_requires=">=3.10",
    install_requires=[
        "pandas",
        "chardet",
        "openpyxl",
        "streamlit",
    ],
    extras_require={
        "excel-legacy": ["xlrd"],
        "ods": ["odfpy"],
        "all": ["xlrd", "odfpy"],
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "sheet-merger=sheet_merger.cli:main",
        ]
    },
)
