"""Runtime lookup of the installed ``structural-copy`` version."""

from __future__ import annotations

from importlib import metadata
from pathlib import Path

import tomllib

DISTRIBUTION_NAME = "structural-copy"

_PYPROJECT_PATH = Path(__file__).resolve().parents[2] / "pyproject.toml"


def version_from_metadata(distribution: str = DISTRIBUTION_NAME) -> str:
    """Return the version recorded in the installed distribution metadata."""

    return metadata.version(distribution)


def version_from_pyproject(path: Path = _PYPROJECT_PATH) -> str:
    """Return ``project.version`` from a source checkout's ``pyproject.toml``."""

    data = tomllib.loads(path.read_text("utf-8"))
    return str(data["project"]["version"])


def get_version(path: Path = _PYPROJECT_PATH) -> str:
    """Prefer installed metadata, fall back to the checkout, else ``unknown``."""

    try:
        return version_from_metadata()
    except metadata.PackageNotFoundError:
        try:
            return version_from_pyproject(path)
        except (FileNotFoundError, KeyError):
            return "unknown"


__version__ = get_version()
