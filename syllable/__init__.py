"""Syllable - Name pronunciation roster, playback and practice client."""

__version__ = "0.1.0"

__all__ = ["__version__"]
