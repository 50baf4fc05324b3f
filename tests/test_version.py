"""
Tests for the version module of the Raisin SDK.
"""
import importlib
import re
from importlib import metadata as importlib_metadata
from unittest.mock import mock_open, patch

import raisin_sdk
from raisin_sdk import __version__


def _not_installed(name):
    raise importlib_metadata.PackageNotFoundError(name)


def test_version_format():
    """The version string starts with major.minor.patch"""
    assert re.match(r'^\d+\.\d+\.\d+', __version__)
    assert raisin_sdk.__version__ == __version__


@patch('importlib.metadata.version')
def test_version_from_metadata(mock_metadata_version):
    """When metadata lookup succeeds, version comes from metadata"""
    mock_metadata_version.return_value = "2.3.4"
    import raisin_sdk.version as vmod
    importlib.reload(vmod)
    assert vmod.__version__ == "2.3.4"
    mock_metadata_version.assert_called_with("raisin-sdk")


@patch('importlib.metadata.version')
@patch('pathlib.Path.open', new_callable=mock_open, read_data=b'[project]\nversion = "1.2.3"\n')
def test_version_from_pyproject(mock_open_file, mock_metadata_version):
    """When the package is not installed, pyproject.toml is read"""
    mock_metadata_version.side_effect = importlib_metadata.PackageNotFoundError
    import raisin_sdk.version as vmod
    importlib.reload(vmod)
    assert vmod.__version__ == "1.2.3"


def test_version_file_not_found(monkeypatch):
    """If pyproject.toml is missing, fall back to the placeholder"""
    monkeypatch.setattr(importlib_metadata, 'version', _not_installed)

    def missing(*args, **kwargs):
        raise FileNotFoundError()

    monkeypatch.setattr('pathlib.Path.open', missing)
    import raisin_sdk.version as vmod
    importlib.reload(vmod)
    assert vmod.__version__ == "0.0.0+unknown"


def test_version_key_error(monkeypatch):
    """A pyproject.toml without a version falls back to the placeholder"""
    monkeypatch.setattr(importlib_metadata, 'version', _not_installed)
    monkeypatch.setattr('pathlib.Path.open', mock_open(read_data=b'[project]\nname = "raisin-sdk"\n'))
    import raisin_sdk.version as vmod
    importlib.reload(vmod)
    assert vmod.__version__ == "0.0.0+unknown"


def test_version_toml_decode_error(monkeypatch):
    """An unparsable pyproject.toml falls back to the placeholder"""
    monkeypatch.setattr(importlib_metadata, 'version', _not_installed)
    monkeypatch.setattr('pathlib.Path.open', mock_open(read_data=b'invalid toml [[['))
    import raisin_sdk.version as vmod
    importlib.reload(vmod)
    assert vmod.__version__ == "0.0.0+unknown"
