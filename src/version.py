"""Application version, read from pyproject.toml.

A source checkout reads the file directly; an installed distribution without
the file falls back to the package metadata.
"""

import tomllib
from importlib import metadata
from pathlib import Path

DISTRIBUTION_NAME = "review-scheduler"
PYPROJECT_PATH = Path(__file__).resolve().parent.parent / "pyproject.toml"


def get_version() -> str:
    if PYPROJECT_PATH.exists():
        with open(PYPROJECT_PATH, "rb") as f:
            return tomllib.load(f)["project"]["version"]
    return metadata.version(DISTRIBUTION_NAME)


__version__: str = get_version()
