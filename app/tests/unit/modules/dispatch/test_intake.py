"""Unit tests for event intake."""

from datetime import timedelta

import pytest
from freezegun import freeze_time

from infrastructure.persistence import ConditionFailed
from modules.dispatch import keys
from modules.dispatch.errors import (
    DuplicateRejected,
    IntakeClosed,
    IntakeRejected,
    InvalidEvent,
    RateLimited,
)
from modules.dispatch.models import DedupRecord, Notification, QueueEntry, QueueState


@pytest.mark.unit
class TestSubmitAccepts:
    def test_accepted_event_writes_notification_entry_and_dedup(
        self, event_intake_factory, raw_event_factory, memory_store
    ):
        intake = event_intake_factory()

        notification = intake.submit(raw_event_factory())

        stored = Notification.model_validate_json(
            memory_store.get(keys.notification_key(notification.id))
        )
        entry = QueueEntry.model_validate_json(
            memory_store.get(keys.queue_key(notification.id))
        )
        dedup = DedupRecord.model_validate_json(
            memory_store.get(keys.dedup_key(notification.dedup_key))
        )
        assert stored == notification
        assert entry.state == QueueState.PENDING
        assert entry.attempt_count == 0
        assert entry.source == "alerts"
        assert entry.next_retry_at == entry.enqueue_time
        assert dedup.notification_id == notification.id

    def test_default_channel_used(self, event_intake_factory, raw_event_factory):
        notification = event_intake_factory().submit(raw_event_factory())

        assert notification.channel == "log"

    def test_route_selects_channel(self, event_intake_factory, raw_event_factory):
        intake = event_intake_factory(routes={"alerts": "webhook"})

        assert intake.submit(raw_event_factory()).channel == "webhook"

    def test_explicit_channel_beats_route(self, event_intake_factory, raw_event_factory):
        intake = event_intake_factory(routes={"alerts": "webhook"})

        assert intake.submit(raw_event_factory(channel="log")).channel == "log"

    def test_whitespace_is_stripped(self, event_intake_factory, raw_event_factory):
        notification = event_intake_factory().submit(raw_event_factory(source="  alerts "))

        assert notification.source == "alerts"


@pytest.mark.unit
class TestSubmitRejects:
    @pytest.mark.parametrize(
        "event",
        [
            {"payload": {"text": "x"}},
            {"source": "", "payload": {"text": "x"}},
            {"source": "bad:source", "payload": {"text": "x"}},
            {"source": "alerts"},
            {"source": "alerts", "payload": {}},
            {"source": "alerts", "payload": "text"},
            "not an event",
        ],
    )
    def test_malformed_events(self, event_intake_factory, event, memory_store):
        with pytest.raises(InvalidEvent):
            event_intake_factory().submit(event)

        assert list(memory_store.scan("")) == []

    def test_unknown_channel(self, event_intake_factory, raw_event_factory):
        with pytest.raises(InvalidEvent, match="Unknown channel"):
            event_intake_factory().submit(raw_event_factory(channel="pager"))

    def test_rejections_share_a_base_class(self):
        for error in (InvalidEvent, DuplicateRejected, RateLimited, IntakeClosed):
            assert issubclass(error, IntakeRejected)

    def test_closed_intake(self, event_intake_factory, raw_event_factory):
        intake = event_intake_factory()
        intake.close()

        with pytest.raises(IntakeClosed):
            intake.submit(raw_event_factory())
        assert intake.is_closed

    def test_rate_limit_per_source(self, event_intake_factory, raw_event_factory):
        intake = event_intake_factory(rate_limit="2/minute")

        intake.submit(raw_event_factory(dedup_key="a"))
        intake.submit(raw_event_factory(dedup_key="b"))
        with pytest.raises(RateLimited):
            intake.submit(raw_event_factory(dedup_key="c"))

        intake.submit(raw_event_factory(source="billing", dedup_key="c"))


@pytest.mark.unit
class TestDeduplication:
    def test_same_dedup_key_rejected_within_window(
        self, event_intake_factory, raw_event_factory, memory_store
    ):
        intake = event_intake_factory()
        first = intake.submit(raw_event_factory())

        with pytest.raises(DuplicateRejected) as exc_info:
            intake.submit(raw_event_factory(payload={"text": "different text"}))

        assert exc_info.value.existing_id == first.id
        assert len(list(memory_store.scan(keys.QUEUE_PREFIX))) == 1

    def test_identical_payload_without_key_rejected(
        self, event_intake_factory, raw_event_factory
    ):
        intake = event_intake_factory()
        intake.submit(raw_event_factory(dedup_key=None, payload={"text": "x", "n": 1}))

        with pytest.raises(DuplicateRejected):
            intake.submit(raw_event_factory(dedup_key=None, payload={"n": 1, "text": "x"}))

    def test_same_key_from_other_source_accepted(
        self, event_intake_factory, raw_event_factory
    ):
        intake = event_intake_factory()
        intake.submit(raw_event_factory(source="alerts"))

        intake.submit(raw_event_factory(source="billing"))

    def test_accepted_again_after_window(self, event_intake_factory, raw_event_factory):
        intake = event_intake_factory(dedup_window_seconds=60)
        with freeze_time("2026-03-02 10:00:00") as frozen:
            first = intake.submit(raw_event_factory())
            frozen.tick(timedelta(seconds=61))
            second = intake.submit(raw_event_factory())

        assert second.id != first.id
        assert second.dedup_key == first.dedup_key

    def test_lost_race_is_duplicate(
        self, event_intake_factory, raw_event_factory, memory_store, monkeypatch
    ):
        intake = event_intake_factory()
        original_commit = memory_store.commit

        def racing_commit(batch):
            # another submitter wins between the read and the write
            for key, _ in batch.expectations:
                memory_store.put(key, "winner")
            return original_commit(batch)

        monkeypatch.setattr(memory_store, "commit", racing_commit)

        with pytest.raises(DuplicateRejected) as exc_info:
            intake.submit(raw_event_factory())

        assert isinstance(exc_info.value.__cause__, ConditionFailed)
        assert list(memory_store.scan(keys.QUEUE_PREFIX)) == []
