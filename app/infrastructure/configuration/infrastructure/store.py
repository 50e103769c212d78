"""Durable state store infrastructure settings."""

import os

from pydantic import Field, field_validator

from infrastructure.configuration.base import InfrastructureSettings

STORE_BACKENDS = ("sqlite", "memory")


class StoreSettings(InfrastructureSettings):
    """State store configuration.

    All durable state (notifications, queue entries, attempts, dedup
    fingerprints) lives in a single key-value store on the mounted volume.

    Environment Variables:
        DATA_DIR: Mounted volume directory (default: /app)
        STORE_BACKEND: 'sqlite' (default) or 'memory' (development, testing)
        STORE_FILENAME: Database file name inside DATA_DIR

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()
        if settings.store.backend == "sqlite":
            path = settings.store.path
        ```
    """

    data_dir: str = Field(
        default="/app",
        alias="DATA_DIR",
        description="Directory of the mounted state volume",
    )
    backend: str = Field(
        default="sqlite",
        alias="STORE_BACKEND",
        description="Store backend: 'sqlite' or 'memory'",
    )
    filename: str = Field(
        default="notification_bot.db",
        alias="STORE_FILENAME",
        description="SQLite database file name inside DATA_DIR",
    )

    @field_validator("backend", mode="after")
    @classmethod
    def _validate_backend(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in STORE_BACKENDS:
            raise ValueError(
                f"STORE_BACKEND must be one of {', '.join(STORE_BACKENDS)} (got {v!r})"
            )
        return v

    @property
    def path(self) -> str:
        """Full path of the SQLite database file."""
        return os.path.join(self.data_dir, self.filename)
