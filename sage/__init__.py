"""SAGE - course calendar bot for Discord."""

__version__ = "0.3.0"
