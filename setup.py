"""Setup script for frag2mtx package."""

from pathlib import Path
from setuptools import setup


# Read version from __init__.py
def get_version():
    """Extract version from __init__.py."""
    init_file = Path(__file__).parent / "__init__.py"
    with open(init_file) as f:
        for line in f:
            if line.startswith("__version__"):
                return line.split("=")[1].strip().strip('"').strip("'")
    return "0.1.0"


# Read long description from README
def get_long_description():
    """Read long description from README.md."""
    readme_file = Path(__file__).parent / "README.md"
    if readme_file.exists():
        return readme_file.read_text()
    return ""


setup(
    name="frag2mtx",
    version=get_version(),
    description="Create feature x cell count matrices from single-cell fragment files",
    long_description=get_long_description(),
    long_description_content_type="text/markdown",
    author="",
    author_email="",
    url="",
    license="MIT",
    packages=["frag2mtx", "frag2mtx.core", "frag2mtx.build_matrix"],
    package_dir={"frag2mtx": "."},
    python_requires=">=3.11",
    install_requires=[
        "numpy>=1.20.0",
        "scipy>=1.7.0",
        "pandas>=1.3.0",
        "anndata>=0.8.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "pytest-xdist>=3.0.0",
        ],
        "test": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "pytest-xdist>=3.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "frag2mtx=frag2mtx.build_matrix.fragments_to_matrix:main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering :: Bio-Informatics",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
        "License :: OSI Approved :: MIT License",
    ],
)
