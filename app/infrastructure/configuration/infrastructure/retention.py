"""Record retention settings."""

from pydantic import Field

from infrastructure.configuration.base import InfrastructureSettings


class RetentionSettings(InfrastructureSettings):
    """Retention policy for terminal records.

    Environment Variables:
        RETENTION_DAYS: Days to keep delivered/failed notifications for audit (default: 30)
        RETENTION_PURGE_INTERVAL_SECONDS: How often the purge job runs (default: 3600s)
    """

    days: int = Field(default=30, alias="RETENTION_DAYS", ge=1)
    purge_interval_seconds: int = Field(
        default=3600, alias="RETENTION_PURGE_INTERVAL_SECONDS", ge=1
    )
