"""
Factory functions for application-scoped singletons.

Provides cached providers for core infrastructure services.
"""

from functools import lru_cache

from infrastructure.configuration import LoggingSettings, Settings


@lru_cache
def get_settings() -> Settings:
    """
    Get application-scoped settings singleton.

    This is the single source of truth for settings across the entire application.
    The @lru_cache decorator ensures only ONE instance is created per process,
    even if called from multiple packages.

        from infrastructure.services import get_settings
        settings = get_settings()

    Tests that change the environment must call ``get_settings.cache_clear()``.

    Returns:
        Settings: Cached settings instance loaded from environment and config file.

    Raises:
        pydantic.ValidationError: If any setting is invalid.
    """
    return Settings()


@lru_cache
def get_logging_settings() -> LoggingSettings:
    """Get the minimal settings used to configure logging."""
    return LoggingSettings()
