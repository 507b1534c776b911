"""remcpy - temporary remote copy service."""

__version__ = "0.1.0"
