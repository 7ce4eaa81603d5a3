"""Polling daemon that keeps a Go checkout pulled and rebuilt."""

__version__ = "0.1.0"

__all__ = ["__version__"]
