from setuptools import setup, find_packages

setup(
    name="receipt-pipeline",
    version="0.3.0",
    description="Grocery receipt image validation, OCR and item extraction pipeline",
    author="Home Inventory Team",
    python_requires=">=3.10",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    install_requires=[
        "pydantic>=2.0",
        "pydantic-settings>=2.0",
        "structlog>=23.0.0",
        "Pillow>=10.0",
        "numpy>=1.24",
        "opencv-python-headless>=4.8",
        "pytesseract>=0.3.10",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "receipt-pipeline=receipt_pipeline.main:main",
        ],
    },
)
