"""Cached GitHub Actions workflow dashboard."""

__version__ = "0.1.0"
