"""
Setup script for qdata

This setup.py is primarily for compatibility. The main configuration is in pyproject.toml.
However, this script handles:
1. Locating the package under src/
2. Keeping a single source of truth for the version (src/qdata/__init__.py)
"""

import re
from pathlib import Path
from setuptools import setup, find_packages


def read_version():
    """Read __version__ from the package without importing it."""
    init = Path(__file__).parent / "src" / "qdata" / "__init__.py"
    match = re.search(r"^__version__ = ['\"]([^'\"]+)['\"]", init.read_text(), re.M)
    if match is None:
        raise RuntimeError("Unable to find __version__ in src/qdata/__init__.py")
    return match.group(1)


setup(
    version=read_version(),
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    zip_safe=False,
)
