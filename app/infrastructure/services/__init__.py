"""
Application service providers.

Provides cached provider functions for infrastructure singletons.
"""

from infrastructure.services.providers import get_logging_settings, get_settings

__all__ = [
    "get_logging_settings",
    "get_settings",
]
