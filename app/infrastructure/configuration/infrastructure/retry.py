"""Delivery retry infrastructure settings."""

from pydantic import Field

from infrastructure.configuration.base import InfrastructureSettings


class RetrySettings(InfrastructureSettings):
    """Retry policy configuration for failed deliveries.

    Environment Variables:
        RETRY_MAX_ATTEMPTS: Maximum delivery attempts before a notification fails (default: 5)
        RETRY_BASE_DELAY_SECONDS: Base exponential backoff delay (default: 30s)
        RETRY_MAX_DELAY_SECONDS: Maximum backoff delay (default: 3600s = 1h)
        RETRY_JITTER_RATIO: Random jitter applied to each delay, as a ratio (default: 0.1)

    Exponential Backoff:
        Delay calculation: min(base_delay * (2 ^ (attempt - 1)) +/- jitter, max_delay)

        Example with defaults (base=30s, max=3600s, no jitter):
            Attempt 1: 30s
            Attempt 2: 60s
            Attempt 3: 120s
            Attempt 4: 240s

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()
        max_attempts = settings.retry.max_attempts
        ```
    """

    max_attempts: int = Field(
        default=5,
        alias="RETRY_MAX_ATTEMPTS",
        ge=1,
        description="Maximum delivery attempts before failing the notification",
    )
    base_delay_seconds: float = Field(
        default=30,
        alias="RETRY_BASE_DELAY_SECONDS",
        ge=0,
        description="Base delay for exponential backoff (seconds)",
    )
    max_delay_seconds: float = Field(
        default=3600,
        alias="RETRY_MAX_DELAY_SECONDS",
        ge=0,
        description="Maximum delay for exponential backoff (seconds, 1 hour)",
    )
    jitter_ratio: float = Field(
        default=0.1,
        alias="RETRY_JITTER_RATIO",
        ge=0,
        le=1,
        description="Jitter applied to each backoff delay, as a ratio of the delay",
    )
