"""Prefetch upcoming episodes in Sonarr based on what is playing."""

__version__ = "1.0.0"
