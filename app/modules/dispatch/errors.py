"""Dispatch pipeline errors.

Intake rejections are local to the submitting caller and never retried.
Store failures (``StoreUnavailable``) and precondition failures
(``ConditionFailed``) live in ``infrastructure.persistence``; sender outcomes
are ``OperationResult`` statuses, not exceptions.
"""

from typing import Optional


class DispatchError(Exception):
    """Base class for dispatch pipeline errors."""


class ConfigurationError(DispatchError):
    """Configuration is missing or inconsistent; the process cannot start."""


class NotificationNotFound(DispatchError):
    def __init__(self, notification_id: str):
        self.notification_id = notification_id
        super().__init__(f"Notification not found: {notification_id}")


class IntakeRejected(DispatchError):
    """An event was not accepted."""


class InvalidEvent(IntakeRejected):
    """The raw event is malformed."""


class DuplicateRejected(IntakeRejected):
    """An event with the same fingerprint was accepted within the dedup window."""

    def __init__(self, fingerprint: str, existing_id: Optional[str] = None):
        self.fingerprint = fingerprint
        self.existing_id = existing_id
        super().__init__(
            f"Duplicate event (fingerprint {fingerprint[:12]}, "
            f"notification {existing_id or 'unknown'})"
        )


class RateLimited(IntakeRejected):
    """The source exceeded its intake rate limit."""

    def __init__(self, source: str, limit: str):
        self.source = source
        self.limit = limit
        super().__init__(f"Source {source!r} exceeded intake rate limit {limit}")


class IntakeClosed(IntakeRejected):
    """Intake is shutting down and accepts no new events."""


class SubscriptionNotFound(DispatchError):
    def __init__(self, chat_id: str):
        self.chat_id = chat_id
        super().__init__(f"Chat {chat_id} is not subscribed to reminders")
