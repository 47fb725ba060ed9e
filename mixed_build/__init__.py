"""Assemble mixed Android builds from a system build and a device build."""

from .__version__ import __version__

__all__ = ["__version__"]
