"""Cazino - parimutuel prediction markets for small groups."""

__version__ = "0.1.0"
