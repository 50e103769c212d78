"""Delivery retry policy.

Usage:
    from infrastructure.resilience.retry import RetryConfig

    config = RetryConfig.from_settings(settings.retry, settings.workers)
    delay = config.backoff_delay(entry.attempt_count)
"""

from infrastructure.resilience.retry.config import RetryConfig

__all__ = ["RetryConfig"]
