"""Console user interface."""

from .console import SessionConsole

__all__ = ["SessionConsole"]
