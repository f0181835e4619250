"""Sessioncap - screenshot and audio capture sessions uploaded to a collector."""

__version__ = "0.1.0"
