"""Retry policy configuration.

This module defines the delivery retry policy: how many attempts a
notification gets and how long to wait between them.
"""

import random
from dataclasses import dataclass
from typing import Callable, Optional

from infrastructure.configuration.infrastructure.retry import RetrySettings
from infrastructure.configuration.infrastructure.workers import WorkerSettings


@dataclass
class RetryConfig:
    """Configuration for delivery retry behavior.

    Attributes:
        max_attempts: Maximum delivery attempts before the notification fails
        base_delay_seconds: Backoff delay after the first failed attempt
        max_delay_seconds: Cap for the exponential backoff
        jitter_ratio: Random +/- spread applied to each delay, as a ratio
        batch_size: Number of queue entries leased in a single batch
        lease_seconds: How long a worker holds a lease on a queue entry

    Example:
        # Default configuration
        config = RetryConfig()

        # Custom configuration
        config = RetryConfig(
            max_attempts=3,
            base_delay_seconds=10,
            jitter_ratio=0.0,
        )
    """

    max_attempts: int = 5
    base_delay_seconds: float = 30  # 30 seconds
    max_delay_seconds: float = 3600  # 1 hour
    jitter_ratio: float = 0.1
    batch_size: int = 10
    lease_seconds: int = 120  # 2 minutes

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay_seconds < 0:
            raise ValueError("base_delay_seconds must not be negative")
        if self.max_delay_seconds < self.base_delay_seconds:
            raise ValueError("max_delay_seconds must be >= base_delay_seconds")
        if not 0 <= self.jitter_ratio <= 1:
            raise ValueError("jitter_ratio must be between 0 and 1")
        if self.batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        if self.lease_seconds < 1:
            raise ValueError("lease_seconds must be at least 1")

    @classmethod
    def from_settings(
        cls, retry: RetrySettings, workers: WorkerSettings
    ) -> "RetryConfig":
        return cls(
            max_attempts=retry.max_attempts,
            base_delay_seconds=retry.base_delay_seconds,
            max_delay_seconds=retry.max_delay_seconds,
            jitter_ratio=retry.jitter_ratio,
            batch_size=workers.batch_size,
            lease_seconds=workers.lease_seconds,
        )

    def backoff_delay(
        self,
        attempt: int,
        uniform: Optional[Callable[[float, float], float]] = None,
    ) -> float:
        """Delay before the next attempt after ``attempt`` failed attempts.

        Delay calculation: base * 2^(attempt - 1), spread by +/- jitter_ratio,
        then clamped to [0, max_delay_seconds]. Attempts count from 1 here, so
        this is base * 2^n for the n-th retry counted from 0: the first retry
        waits base, the second 2 * base.

        Args:
            attempt: Number of attempts made so far (1 for the first failure)
            uniform: Random source, ``random.uniform`` by default

        Returns:
            Delay in seconds
        """
        uniform = uniform or random.uniform
        exponent = min(max(attempt - 1, 0), 32)
        delay = min(self.base_delay_seconds * (2**exponent), self.max_delay_seconds)
        if self.jitter_ratio:
            delay += delay * self.jitter_ratio * uniform(-1.0, 1.0)
        return min(max(delay, 0.0), self.max_delay_seconds)
