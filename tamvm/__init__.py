"""Emulator for the Triangle Abstract Machine: machine, errors and command line."""

__version__ = "0.1.0"
__all__ = ["cli", "errors", "machine"]