"""Structural validation of decoded quality-report submissions."""

__version__ = "0.1.0"
