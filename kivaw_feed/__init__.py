"""Feed composition engine for the Kivaw content app."""

__version__ = "0.1.0"
