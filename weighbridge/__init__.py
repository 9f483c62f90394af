"""Weighbridge device connectivity and receipt printing backend."""

__version__ = "1.0.0"

__all__ = ["__version__"]
