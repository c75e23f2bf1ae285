# src/__init__.py — v1
"""fpcache: staleness-aware fingerprint cache for file analysis pipelines."""

from fpcache.version import __version__

__all__ = ["__version__"]
