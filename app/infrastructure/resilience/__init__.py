"""Resilience patterns.

Contains the retry policy (attempt limits, exponential backoff with jitter)
used by the delivery worker pool.
"""

from infrastructure.resilience.retry import RetryConfig

__all__ = ["RetryConfig"]
