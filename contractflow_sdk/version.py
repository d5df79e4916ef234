"""
Version information for the contractflow SDK.

Installed distributions report their metadata version; a source checkout
reads ``[project].version`` from the pyproject.toml next to the package.
"""
import importlib.metadata
import pathlib
from typing import Optional

import tomli

DISTRIBUTION = "contractflow-sdk"
FALLBACK_VERSION = "0.1.0"
PYPROJECT = pathlib.Path(__file__).resolve().parent.parent / "pyproject.toml"


def _pyproject_version(path: Optional[pathlib.Path] = None) -> Optional[str]:
    try:
        with (path or PYPROJECT).open("rb") as f:
            project = tomli.load(f).get("project", {})
    except (FileNotFoundError, tomli.TOMLDecodeError):
        return None
    if project.get("name") not in (None, DISTRIBUTION):
        # some other project's pyproject.toml, e.g. site-packages layouts
        return None
    return project.get("version")


def resolve_version() -> str:
    """Version of the installed distribution, else of the source checkout"""
    try:
        return importlib.metadata.version(DISTRIBUTION)
    except importlib.metadata.PackageNotFoundError:
        return _pyproject_version() or FALLBACK_VERSION


__version__ = resolve_version()
