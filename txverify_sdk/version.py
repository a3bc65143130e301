"""
Version information for the txverify SDK.

Installed distributions report the version from package metadata; a source
checkout falls back to ``pyproject.toml`` next to the package.
"""
import importlib.metadata
import pathlib
import re
from typing import Optional, Tuple

import tomli

DISTRIBUTION_NAME = "txverify-sdk"
UNKNOWN_VERSION = "0.0.0"
_RELEASE_RE = re.compile(r"\d+(?:\.\d+)*")

PYPROJECT_PATH = pathlib.Path(__file__).resolve().parent.parent / "pyproject.toml"


def _pyproject_version(path: pathlib.Path) -> Optional[str]:
    try:
        with open(path, "rb") as f:
            project = tomli.load(f).get("project", {})
    except (FileNotFoundError, tomli.TOMLDecodeError):
        return None
    return project.get("version")


def get_version() -> str:
    try:
        return importlib.metadata.version(DISTRIBUTION_NAME)
    except importlib.metadata.PackageNotFoundError:
        return _pyproject_version(PYPROJECT_PATH) or UNKNOWN_VERSION


def _version_tuple(version: str) -> Tuple[int, ...]:
    """Leading numeric release segment: "1.2.3rc1" -> (1, 2, 3)."""
    match = _RELEASE_RE.match(version)
    return tuple(int(part) for part in match.group().split(".")) if match else ()


__version__ = get_version()
version_info = _version_tuple(__version__)
