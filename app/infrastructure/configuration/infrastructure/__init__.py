"""Infrastructure settings __init__ - exports all infrastructure settings."""

from infrastructure.configuration.infrastructure.dedup import DedupSettings
from infrastructure.configuration.infrastructure.intake import IntakeSettings
from infrastructure.configuration.infrastructure.retention import RetentionSettings
from infrastructure.configuration.infrastructure.retry import RetrySettings
from infrastructure.configuration.infrastructure.store import StoreSettings
from infrastructure.configuration.infrastructure.workers import WorkerSettings

__all__ = [
    "DedupSettings",
    "IntakeSettings",
    "RetentionSettings",
    "RetrySettings",
    "StoreSettings",
    "WorkerSettings",
]
