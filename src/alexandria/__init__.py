"""Alexandria - a flat-file store for repository collections."""

__version__ = "0.1.0"
