"""Transparent TCP relay that tees every forwarded chunk to observers."""

__version__ = "1.0.0"
