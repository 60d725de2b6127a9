"""Compose Pilot - discover, rank and configure Docker Compose projects."""

__version__ = "0.1.0"
