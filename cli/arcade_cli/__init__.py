"""Arcade CLI: compile, format and serve component previews from the terminal."""

__version__ = "0.1.0"
