from setuptools import setup, find_packages

setup(
    name="oas3-modularize",
    version="0.1.0",
    packages=find_packages("src"),
    package_dir={"": "src"},
    package_data={"oas_modularize": ["defaults.yaml"]},
    install_requires=[
        "pyyaml>=6.0",
        "typer>=0.9.0",
        "pydantic>=2.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "oas3-modularize=oas_modularize.cli:main",
        ],
    },
    description="Split OpenAPI 3.x documents into modular, cross-referencing file trees",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.9",
)
