"""Per-notification status query."""

from typing import List

from infrastructure.persistence import StateStore, decode_record
from modules.dispatch import keys
from modules.dispatch.errors import NotificationNotFound
from modules.dispatch.models import (
    DeliveryAttempt,
    DeliveryOutcome,
    Notification,
    NotificationState,
    NotificationStatusView,
    QueueEntry,
)


class StatusService:
    """Reads the structured status of notifications from the store."""

    def __init__(self, store: StateStore):
        self.store = store

    def get_status(self, notification_id: str) -> NotificationStatusView:
        """Return the current state and attempt history of a notification.

        Raises:
            NotificationNotFound: No notification with this id is retained
            StoreUnavailable: The store failed or holds corrupted records
        """
        notification_key = keys.notification_key(notification_id)
        notification = decode_record(
            notification_key, self.store.get(notification_key), Notification
        )
        if notification is None:
            raise NotificationNotFound(notification_id)

        attempts = self.attempts(notification_id)

        outcome_key = keys.outcome_key(notification_id)
        outcome = decode_record(outcome_key, self.store.get(outcome_key), DeliveryOutcome)
        if outcome is not None:
            return NotificationStatusView(
                notification=notification,
                state=NotificationState(outcome.state.value),
                attempt_count=outcome.attempts,
                reason=outcome.reason,
                attempts=attempts,
            )

        queue_key = keys.queue_key(notification_id)
        entry = decode_record(queue_key, self.store.get(queue_key), QueueEntry)
        if entry is not None:
            return NotificationStatusView(
                notification=notification,
                state=NotificationState(entry.state.value),
                attempt_count=entry.attempt_count,
                next_retry_at=entry.next_retry_at,
                reason=entry.last_error,
                attempts=attempts,
            )

        return NotificationStatusView(
            notification=notification,
            state=NotificationState.FAILED,
            attempt_count=len(attempts),
            reason="no queue entry or outcome recorded",
            attempts=attempts,
        )

    def attempts(self, notification_id: str) -> List[DeliveryAttempt]:
        """Delivery attempts of a notification, ordered by attempt number."""
        attempts = [
            decode_record(key, raw, DeliveryAttempt)
            for key, raw in self.store.scan(keys.attempts_prefix(notification_id))
        ]
        return sorted(attempts, key=lambda attempt: attempt.attempt_number)

    def list_active(self) -> List[QueueEntry]:
        """All entries still in the queue, oldest first."""
        entries = [
            decode_record(key, raw, QueueEntry)
            for key, raw in self.store.scan(keys.QUEUE_PREFIX)
        ]
        return sorted(entries, key=lambda entry: (entry.enqueue_time, entry.entry_id))
