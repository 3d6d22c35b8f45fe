"""
Configuration management for Backend ARC Score.

Loads settings from environment variables (and .env at the project root) and
exposes a single typed Settings object for the chain client, indexer, scoring
and scheduler.
"""

from backend_arcscore.config.settings import Settings, get_settings  # noqa: F401

__all__ = ["Settings", "get_settings"]
