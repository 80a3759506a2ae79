"""Configuration management for tablewright.

Usage:
    >>> from tablewright.config import get_settings
    >>> settings = get_settings()
    >>> engine = QueryEngine(settings.database_settings())
"""

from tablewright.config.settings import DatabaseSettings, Settings, get_settings

__all__ = [
    "DatabaseSettings",
    "Settings",
    "get_settings",
]
