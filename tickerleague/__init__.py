"""Weekly head-to-head fantasy stock league engine."""

__version__ = "0.1.0"
