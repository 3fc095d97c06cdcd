from setuptools import setup, find_packages
import pathlib, os

# Detect layout
use_src = pathlib.Path("src/fileconnector").exists()
pkg_args = {"package_dir": {"": "src"}, "packages": find_packages(where="src")} if use_src \
           else {"packages": find_packages(where=".", exclude=("tests", "tests.*"))}

setup(
    name="fileconnector",
    version="0.1.0",
    description="Pluggable file-format source connector with a local reference engine",
    python_requires=">=3.10",
    install_requires=[
        "typer>=0.9",
        "pydantic>=2",
        "PyYAML",
        "jsonschema>=4",
        "pandas",
        "pyarrow",
    ],
    extras_require={"test": ["pytest"]},
    entry_points={
        "console_scripts": ["fileconnector=fileconnector.cli:app"],
    },
    include_package_data=True,
    **pkg_args
)
