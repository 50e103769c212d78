"""Unit tests for the retention policy."""

from datetime import timedelta

import pytest

from modules.dispatch import keys
from modules.dispatch.models import (
    AttemptStatus,
    DedupRecord,
    DeliveryAttempt,
    DeliveryOutcome,
    OutcomeState,
    utc_now,
)
from modules.dispatch.retention import RetentionPolicy


@pytest.fixture
def retention(memory_store):
    return RetentionPolicy(
        memory_store, retention_days=30, dedup_window_seconds=3600, batch_size=2
    )


def _finish(store, notification_factory, notification_id, finished_at, attempts=2):
    notification = notification_factory(id=notification_id)
    store.put(keys.notification_key(notification_id), notification.model_dump_json())
    for number in range(1, attempts + 1):
        attempt = DeliveryAttempt(
            notification_id=notification_id,
            channel="log",
            attempt_number=number,
            status=AttemptStatus.FAILED,
            timestamp=finished_at,
        )
        store.put(keys.attempt_key(notification_id, number), attempt.model_dump_json())
    outcome = DeliveryOutcome(
        notification_id=notification_id,
        state=OutcomeState.DELIVERED,
        attempts=attempts,
        finished_at=finished_at,
    )
    store.put(keys.outcome_key(notification_id), outcome.model_dump_json())


@pytest.mark.unit
class TestRetentionPolicy:
    def test_purges_old_terminal_notifications(
        self, retention, memory_store, notification_factory
    ):
        now = utc_now()
        _finish(memory_store, notification_factory, "old", now - timedelta(days=31))
        _finish(memory_store, notification_factory, "recent", now - timedelta(days=1))

        stats = retention.purge(now)

        assert stats["notifications"] == 1
        assert stats["attempts"] == 2
        assert memory_store.get(keys.notification_key("old")) is None
        assert memory_store.get(keys.outcome_key("old")) is None
        assert list(memory_store.scan(keys.attempts_prefix("old"))) == []
        assert memory_store.get(keys.notification_key("recent")) is not None

    def test_active_notifications_never_purged(
        self, retention, memory_store, notification_factory, queue_entry_factory, dispatch_queue
    ):
        now = utc_now()
        _finish(memory_store, notification_factory, "n-1", now - timedelta(days=40))
        dispatch_queue.enqueue(queue_entry_factory(notification_id="n-1"))

        stats = retention.purge(now)

        assert stats["notifications"] == 0
        assert memory_store.get(keys.notification_key("n-1")) is not None

    def test_purges_expired_dedup_records_in_batches(self, retention, memory_store):
        now = utc_now()
        for i in range(5):
            record = DedupRecord(notification_id=f"n-{i}", first_seen=now - timedelta(hours=2))
            memory_store.put(keys.dedup_key(f"old-{i}"), record.model_dump_json())
        fresh = DedupRecord(notification_id="n-9", first_seen=now - timedelta(minutes=5))
        memory_store.put(keys.dedup_key("fresh"), fresh.model_dump_json())

        stats = retention.purge(now)

        assert stats["dedup"] == 5
        assert [key for key, _ in memory_store.scan(keys.DEDUP_PREFIX)] == ["dedup:fresh"]

    def test_renewed_dedup_record_survives(self, retention, memory_store, monkeypatch):
        now = utc_now()
        for name in ("a", "b"):
            record = DedupRecord(notification_id=name, first_seen=now - timedelta(hours=2))
            memory_store.put(keys.dedup_key(name), record.model_dump_json())
        renewed = DedupRecord(notification_id="a2", first_seen=now).model_dump_json()
        original_commit = memory_store.commit
        renewed_once = []

        def racing_commit(batch):
            # intake renews "a" between the scan and the purge
            if not renewed_once:
                renewed_once.append(True)
                memory_store.put(keys.dedup_key("a"), renewed)
            return original_commit(batch)

        monkeypatch.setattr(memory_store, "commit", racing_commit)

        stats = retention.purge(now)

        assert stats["dedup"] == 1
        assert memory_store.get(keys.dedup_key("a")) == renewed
        assert memory_store.get(keys.dedup_key("b")) is None
