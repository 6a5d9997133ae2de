"""Declarative feature engine for installing and removing cluster capabilities."""

from platform_features.__version__ import __version__

__all__ = ["__version__"]
