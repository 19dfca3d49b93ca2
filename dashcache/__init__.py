"""Dashboard widget API cache."""

__version__ = "1.0.0"
