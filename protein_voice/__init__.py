"""Protein Voice: voice-driven protein logging service."""

__version__ = "0.1.0"
