"""svcindex package root."""

from svcindex.markers import provides

__all__ = ["__version__", "provides"]

__version__ = "0.1.0"
