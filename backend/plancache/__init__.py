"""Hybrid AI / cache generation of weekly training and nutrition plans."""

__version__ = "0.1.0"
