"""
Configuration management.

Loads settings from environment variables and an optional .env file and
exposes them as a typed Settings object.
"""

from backend_insights.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
