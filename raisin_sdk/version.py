"""
Version information for the Raisin SDK.
"""
import importlib.metadata
import pathlib

import tomli

_DIST_NAME = "raisin-sdk"
_FALLBACK_VERSION = "0.0.0+unknown"


def _read_pyproject_version() -> str:
    """Read the version from a source checkout's pyproject.toml."""
    pyproject = pathlib.Path(__file__).resolve().parent.parent / "pyproject.toml"
    with pyproject.open("rb") as f:
        return tomli.load(f)["project"]["version"]


try:
    __version__ = importlib.metadata.version(_DIST_NAME)
except importlib.metadata.PackageNotFoundError:
    # Running from a checkout without an install
    try:
        __version__ = _read_pyproject_version()
    except (FileNotFoundError, KeyError, tomli.TOMLDecodeError):
        __version__ = _FALLBACK_VERSION
