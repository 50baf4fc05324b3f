"""
Command-line interface for the Raisin SDK.
"""
from .main import app

__all__ = ["app"]
