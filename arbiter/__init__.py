"""Arbiter - compliance detection and five-dimension confidence correlation."""

__version__ = "0.1.0"
