"""Unit tests for the notification status query."""

from datetime import timedelta

import pytest

from modules.dispatch import keys
from modules.dispatch.errors import NotificationNotFound
from modules.dispatch.models import (
    AttemptStatus,
    DeliveryAttempt,
    DeliveryOutcome,
    NotificationState,
    OutcomeState,
    QueueState,
    utc_now,
)
from modules.dispatch.status import StatusService


@pytest.fixture
def status(memory_store):
    return StatusService(memory_store)


@pytest.mark.unit
class TestGetStatus:
    def test_unknown_notification(self, status):
        with pytest.raises(NotificationNotFound):
            status.get_status("missing")

    def test_pending(self, status, seed_notification, memory_store):
        notification, entry = seed_notification(memory_store)

        view = status.get_status("n-1")

        assert view.notification == notification
        assert view.state == NotificationState.PENDING
        assert view.attempt_count == 0
        assert view.next_retry_at == entry.next_retry_at
        assert view.attempts == []

    def test_retrying_reports_last_error(self, status, seed_notification, memory_store, dispatch_queue):
        seed_notification(memory_store, state=QueueState.RETRYING, attempt_count=1)
        dispatch_queue.nack("n-1", 60, error="HTTP 503")

        view = status.get_status("n-1")

        assert view.state == NotificationState.RETRYING
        assert view.reason == "HTTP 503"

    def test_terminal_state_from_outcome(self, status, seed_notification, memory_store):
        seed_notification(memory_store)
        memory_store.delete(keys.queue_key("n-1"))
        outcome = DeliveryOutcome(
            notification_id="n-1",
            state=OutcomeState.FAILED,
            reason="permanent failure: chat not found",
            attempts=1,
            finished_at=utc_now(),
        )
        memory_store.put(keys.outcome_key("n-1"), outcome.model_dump_json())

        view = status.get_status("n-1")

        assert view.state == NotificationState.FAILED
        assert view.reason == "permanent failure: chat not found"
        assert view.attempt_count == 1
        assert view.next_retry_at is None

    def test_attempts_ordered_numerically(self, status, seed_notification, memory_store):
        seed_notification(memory_store, attempt_count=11)
        for number in (10, 2, 1, 11):
            attempt = DeliveryAttempt(
                notification_id="n-1",
                channel="log",
                attempt_number=number,
                status=AttemptStatus.FAILED,
                timestamp=utc_now(),
            )
            memory_store.put(keys.attempt_key("n-1", number), attempt.model_dump_json())

        view = status.get_status("n-1")

        assert [a.attempt_number for a in view.attempts] == [1, 2, 10, 11]

    def test_missing_entry_and_outcome_reported_failed(self, status, seed_notification, memory_store):
        seed_notification(memory_store)
        memory_store.delete(keys.queue_key("n-1"))

        view = status.get_status("n-1")

        assert view.state == NotificationState.FAILED
        assert view.reason == "no queue entry or outcome recorded"


@pytest.mark.unit
class TestListActive:
    def test_oldest_first(self, status, seed_notification, memory_store, past):
        seed_notification(memory_store, id="b", enqueue_time=past + timedelta(seconds=5))
        seed_notification(memory_store, id="a", enqueue_time=past + timedelta(seconds=9))
        seed_notification(memory_store, id="c", enqueue_time=past)

        assert [entry.notification_id for entry in status.list_active()] == ["c", "b", "a"]
