"""Notification bot configuration settings - main aggregator."""

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from infrastructure.configuration.base import FileBackedSettings

# Integration settings
from infrastructure.configuration.integrations import (
    ChannelSettings,
    EscalationSettings,
)

# Feature settings
from infrastructure.configuration.features import ReminderSettings

# Infrastructure settings
from infrastructure.configuration.infrastructure import (
    DedupSettings,
    IntakeSettings,
    RetentionSettings,
    RetrySettings,
    StoreSettings,
    WorkerSettings,
)


class Settings(FileBackedSettings):
    """Notification bot configuration settings - main aggregator.

    Aggregates all domain-specific settings into a single configuration object.
    Settings are organized by concern:

    - **Integrations**: Delivery channels and the escalation target
    - **Features**: Optional event sources (working-hours reminders)
    - **Infrastructure**: Store, deduplication, retry, workers, intake, retention

    Environment Variables:
        PREFIX: Environment prefix; non-empty means a non-production deployment
        LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
        GIT_SHA: Git commit SHA for deployment tracking

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()

        # Access integration settings
        default_channel = settings.channels.DEFAULT_CHANNEL

        # Access infrastructure settings
        max_attempts = settings.retry.max_attempts
        db_path = settings.store.path

        # Check environment
        if settings.is_production:
            # Production-specific logic...
        ```
    """

    # Application-level settings
    PREFIX: str = Field(default="", alias="PREFIX")
    LOG_LEVEL: str = Field(default="INFO", alias="LOG_LEVEL")
    GIT_SHA: str = Field(default="unknown", alias="GIT_SHA")

    # Integration settings
    channels: ChannelSettings
    escalation: EscalationSettings

    # Feature settings
    reminders: ReminderSettings

    # Infrastructure settings
    store: StoreSettings
    dedup: DedupSettings
    retry: RetrySettings
    workers: WorkerSettings
    intake: IntakeSettings
    retention: RetentionSettings

    @property
    def is_production(self) -> bool:
        """Check if the application is running in production.

        Returns:
            True if PREFIX is empty (production), False otherwise.
        """
        return not bool(self.PREFIX)

    def __init__(self, **kwargs):
        """Initialize Settings with automatic subsettings instantiation.

        Args:
            **kwargs: Optional overrides for specific settings sections.
        """
        settings_map = {
            # Integrations
            "channels": ChannelSettings,
            "escalation": EscalationSettings,
            # Features
            "reminders": ReminderSettings,
            # Infrastructure
            "store": StoreSettings,
            "dedup": DedupSettings,
            "retry": RetrySettings,
            "workers": WorkerSettings,
            "intake": IntakeSettings,
            "retention": RetentionSettings,
        }

        for setting_name, setting_class in settings_map.items():
            if setting_name not in kwargs:
                kwargs[setting_name] = setting_class()

        super().__init__(**kwargs)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


class LoggingSettings(FileBackedSettings):
    """Minimal settings read by the logging setup at import time.

    Kept separate from Settings so an invalid configuration elsewhere never
    prevents logging from starting.
    """

    PREFIX: str = Field(default="", alias="PREFIX")
    LOG_LEVEL: str = Field(default="INFO", alias="LOG_LEVEL")
    GIT_SHA: str = Field(default="unknown", alias="GIT_SHA")

    @property
    def is_production(self) -> bool:
        return not bool(self.PREFIX)
