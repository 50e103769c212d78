"""Result of a boundary operation such as a channel send.

Senders never raise for delivery problems; they return an ``OperationResult``
and the worker decides from its status whether to ack, retry or fail:

    result = sender.send(notification)
    if result.is_success:
        ...
    elif result.is_transient:
        delay = max(backoff, result.retry_after or 0)
"""

from dataclasses import dataclass
from typing import Any, Optional

from infrastructure.operations.status import OperationStatus


@dataclass(frozen=True)
class OperationResult:
    """Outcome of one operation.

    Attributes:
        status: Success, transient or permanent failure
        message: Short description for logs and the attempt record
        data: What the remote side returned on success (message id, ts, ...)
        error_code: Machine-readable code, e.g. ``HTTP_503`` or ``SLACK_RATELIMITED``
        retry_after: Seconds the remote side asked us to wait, if it said so
    """

    status: OperationStatus
    message: str
    data: Optional[Any] = None
    error_code: Optional[str] = None
    retry_after: Optional[float] = None

    @property
    def is_success(self) -> bool:
        return self.status == OperationStatus.SUCCESS

    @property
    def is_transient(self) -> bool:
        return self.status == OperationStatus.TRANSIENT_ERROR

    @property
    def is_permanent(self) -> bool:
        return self.status == OperationStatus.PERMANENT_ERROR

    @classmethod
    def success(cls, data: Optional[Any] = None, message: str = "ok") -> "OperationResult":
        return cls(OperationStatus.SUCCESS, message, data=data)

    @classmethod
    def transient_error(
        cls,
        message: str,
        error_code: Optional[str] = None,
        retry_after: Optional[float] = None,
        data: Optional[Any] = None,
    ) -> "OperationResult":
        """A failure worth retrying: timeouts, rate limits, 5xx, connection errors."""
        return cls(
            OperationStatus.TRANSIENT_ERROR,
            message,
            data=data,
            error_code=error_code,
            retry_after=retry_after,
        )

    @classmethod
    def permanent_error(
        cls,
        message: str,
        error_code: Optional[str] = None,
        data: Optional[Any] = None,
    ) -> "OperationResult":
        """A failure no retry can fix: bad credentials, unknown chat, malformed payload."""
        return cls(OperationStatus.PERMANENT_ERROR, message, data=data, error_code=error_code)
