"""Channel sender interface.

A sender delivers one notification over one channel and reports the result
as an OperationResult:

- SUCCESS: delivered
- TRANSIENT_ERROR: retried with backoff (``retry_after`` is honored as a floor)
- PERMANENT_ERROR: the notification fails without consuming more attempts

Senders are chosen by configuration through ``create_senders``. Delivery is
at-least-once, so senders forward the notification id to transports that
support idempotency keys.
"""

from typing import Optional, Protocol

from infrastructure.operations import OperationResult
from modules.dispatch.models import Notification


class Sender(Protocol):
    """Capability to deliver notifications over one channel."""

    @property
    def channel_name(self) -> str:
        """Channel identifier used in routing and logs."""
        ...

    def send(self, notification: Notification) -> OperationResult:
        """Deliver ``notification``.

        Should return error results rather than raise; the worker pool treats
        an exception as a transient failure.
        """
        ...


def require_text(notification: Notification) -> Optional[OperationResult]:
    """Permanent error when the payload has no usable ``text`` field, else None."""
    text = notification.payload.get("text")
    if not isinstance(text, str) or not text.strip():
        return OperationResult.permanent_error(
            "Payload has no 'text' field",
            error_code="MISSING_TEXT",
        )
    return None
