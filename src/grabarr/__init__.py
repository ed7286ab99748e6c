"""grabarr - release scoring and metadata resolution for a game collection."""

__version__ = "0.1.0"
