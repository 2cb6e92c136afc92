"""
Configuration package.

Exports the singleton settings instance for easy importing.

Usage:
    from repowrap.config import settings

    print(settings.database_url)
"""

from repowrap.config.settings import Settings, settings, get_settings, print_settings

__all__ = [
    "Settings",
    "settings",
    "get_settings",
    "print_settings",
]
