"""Certificate verification fraud detection and smart search."""

__version__ = "0.1.0"
