"""Infrastructure configuration module - public API.

This module provides centralized configuration management for the
notification bot using Pydantic BaseSettings with domain-based organization.
Values come from environment variables, an optional .env file and an optional
JSON file on the mounted volume (NOTIFICATION_BOT_CONFIG_FILE).

Exports:
    Settings: Main settings class (for testing/overrides)
    LoggingSettings: Minimal settings used by the logging setup
    RetrySettings: Retry policy settings class (for testing)

Example:
    ```python
    from infrastructure.services import get_settings

    settings = get_settings()

    # Access settings
    channels = settings.channels.enabled_channels
    retry_max = settings.retry.max_attempts

    # Check environment
    if settings.is_production:
        # Production-specific logic...
    ```
"""

from infrastructure.configuration.settings import LoggingSettings, Settings
from infrastructure.configuration.infrastructure.retry import RetrySettings

__all__ = ["LoggingSettings", "Settings", "RetrySettings"]
