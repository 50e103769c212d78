"""Event deduplication infrastructure settings."""

from pydantic import Field

from infrastructure.configuration.base import InfrastructureSettings


class DedupSettings(InfrastructureSettings):
    """Deduplication window configuration.

    Environment Variables:
        DEDUP_WINDOW_SECONDS: How long a fingerprint suppresses repeats (default: 86400s = 24h)
        DEDUP_NAMESPACE: Namespace mixed into every fingerprint

    Example:
        ```python
        from infrastructure.services import get_settings

        window = get_settings().dedup.window_seconds
        ```
    """

    window_seconds: int = Field(
        default=86400,
        alias="DEDUP_WINDOW_SECONDS",
        ge=1,
        description="Deduplication window (seconds)",
    )
    namespace: str = Field(
        default="notification_bot",
        alias="DEDUP_NAMESPACE",
        min_length=1,
        description="Namespace prefix for dedup fingerprints",
    )
