"""Dispatch queue and delivery worker pool settings."""

from pydantic import Field, model_validator

from infrastructure.configuration.base import InfrastructureSettings


class WorkerSettings(InfrastructureSettings):
    """Worker pool and queue lease configuration.

    A worker renews the lease when it starts a send, so the lease must
    outlast the longest send.

    Environment Variables:
        WORKER_COUNT: Number of delivery worker threads (default: 4)
        WORKER_POLL_INTERVAL_SECONDS: Wait between empty leases (default: 1s)
        SEND_TIMEOUT_SECONDS: Upper bound for a single sender call (default: 30s)
        QUEUE_LEASE_SECONDS: Lease duration on a queue entry, longer than
            SEND_TIMEOUT_SECONDS (default: 120s)
        QUEUE_BATCH_SIZE: Entries leased per batch (default: 10)
    """

    worker_count: int = Field(default=4, alias="WORKER_COUNT", ge=1)
    poll_interval_seconds: float = Field(
        default=1.0, alias="WORKER_POLL_INTERVAL_SECONDS", gt=0
    )
    send_timeout_seconds: float = Field(
        default=30.0, alias="SEND_TIMEOUT_SECONDS", gt=0
    )
    lease_seconds: int = Field(default=120, alias="QUEUE_LEASE_SECONDS", ge=1)
    batch_size: int = Field(default=10, alias="QUEUE_BATCH_SIZE", ge=1)

    @model_validator(mode="after")
    def _validate_lease_outlasts_send(self) -> "WorkerSettings":
        if self.lease_seconds <= self.send_timeout_seconds:
            raise ValueError(
                "QUEUE_LEASE_SECONDS must be greater than SEND_TIMEOUT_SECONDS"
            )
        return self
