"""Unit tests for the working-hours reminder source."""

from datetime import datetime, timedelta, timezone

import pytest
from freezegun import freeze_time

from infrastructure.configuration.features import ReminderSettings
from modules.dispatch.errors import DuplicateRejected, RateLimited
from modules.dispatch.sources import WorkingHoursReminderSource
from modules.dispatch.subscriptions import SubscriptionRegistry


@pytest.fixture
def registry(memory_store):
    registry = SubscriptionRegistry(memory_store)
    registry.subscribe("111", "+03:00")
    registry.subscribe("222", "-05:00")
    return registry


@pytest.fixture
def source(registry):
    return WorkingHoursReminderSource(
        registry,
        message="Notify!",
        hour_from=9,
        hour_to=18,
        channel="telegram",
    )


def single(memory_store, chat_id="111", offset="+03:00", **kwargs):
    registry = SubscriptionRegistry(memory_store)
    registry.subscribe(chat_id, offset)
    return WorkingHoursReminderSource(registry, **kwargs)


@pytest.mark.unit
class TestWorkingHoursReminderSource:
    # 2026-03-02 is a Monday
    @freeze_time("2026-03-02 07:30:00")
    def test_emits_for_subscribers_in_working_hours(self, source):
        events = list(source.poll())

        # 111 is at 10:30 local, 222 at 02:30 local
        assert events == [
            {
                "source": "reminders",
                "dedup_key": "111:2026-03-02T10",
                "payload": {"text": "Notify!", "chat_id": "111"},
                "channel": "telegram",
            }
        ]

    @freeze_time("2026-03-02 07:30:00")
    def test_every_poll_of_an_hour_offers_the_same_reminder(self, source):
        first = list(source.poll())
        second = list(source.poll())

        assert first == second

    def test_next_hour_has_a_new_dedup_key(self, source):
        with freeze_time("2026-03-02 07:30:00") as frozen:
            first = list(source.poll())
            frozen.tick(timedelta(hours=1))
            second = list(source.poll())

        assert first[0]["dedup_key"] == "111:2026-03-02T10"
        assert second[0]["dedup_key"] == "111:2026-03-02T11"

    @pytest.mark.parametrize(
        "utc_time,expected",
        [
            ("2026-03-02 05:59:00", False),  # 08:59 local
            ("2026-03-02 06:00:00", True),  # 09:00 local
            ("2026-03-02 15:59:00", True),  # 18:59 local
            ("2026-03-02 16:00:00", False),  # 19:00 local
            ("2026-03-07 09:00:00", False),  # Saturday 12:00 local
            ("2026-03-08 09:00:00", False),  # Sunday 12:00 local
        ],
    )
    def test_working_time_boundaries(self, memory_store, utc_time, expected):
        source = single(memory_store)
        with freeze_time(utc_time):
            assert bool(list(source.poll())) is expected

    def test_weekday_is_local(self, memory_store):
        # Friday 22:00 UTC is already Saturday 01:00 at +03:00
        source = single(memory_store, hour_from=0, hour_to=23)
        with freeze_time("2026-03-06 22:00:00"):
            assert list(source.poll()) == []

    def test_no_channel_leaves_routing_to_intake(self, memory_store):
        source = single(memory_store, chat_id="1", offset="+00:00")
        with freeze_time("2026-03-02 10:00:00"):
            (event,) = source.poll()

        assert "channel" not in event

    def test_from_settings(self, monkeypatch, registry):
        monkeypatch.setenv("NOTIFICATION_MESSAGE", "Stand up!")

        source = WorkingHoursReminderSource.from_settings(ReminderSettings(), registry)

        assert source.name == "reminders"
        assert source.message == "Stand up!"
        assert source.channel == "telegram"
        assert source.subscriptions is registry


@pytest.mark.unit
class TestSubscriptionChanges:
    @freeze_time("2026-03-02 07:30:00")
    def test_new_subscriber_picked_up_on_next_poll(self, source, registry):
        list(source.poll())

        registry.subscribe("333", "+02:00")

        assert [event["payload"]["chat_id"] for event in source.poll()] == ["111", "333"]

    @freeze_time("2026-03-02 07:30:00")
    def test_unsubscribed_chat_gets_nothing(self, source, registry):
        registry.unsubscribe("111")

        assert list(source.poll()) == []

    def test_snoozed_chat_resumes_next_local_day(self, source, registry):
        with freeze_time("2026-03-02 07:30:00") as frozen:
            registry.snooze_until_next_day("111")
            snoozed = list(source.poll())

            # 2026-03-03 09:00 at +03:00
            frozen.move_to(datetime(2026, 3, 3, 6, 0, tzinfo=timezone.utc))
            resumed = list(source.poll())

        assert snoozed == []
        assert [event["dedup_key"] for event in resumed] == ["111:2026-03-03T09"]

    @freeze_time("2026-03-02 07:30:00")
    def test_offset_change_moves_the_working_hours(self, source, registry):
        registry.set_offset("222", "+02:00")

        assert [event["dedup_key"] for event in source.poll()] == [
            "111:2026-03-02T10",
            "222:2026-03-02T09",
        ]


@pytest.mark.unit
class TestRejectedReminders:
    def test_rejected_reminder_accepted_on_next_poll_of_same_hour(
        self, memory_store, event_intake_factory, raw_event_factory
    ):
        intake = event_intake_factory(rate_limit="1/minute")
        source = single(memory_store)

        with freeze_time("2026-03-02 07:30:00") as frozen:
            # another reminder already used the source's budget
            intake.submit(raw_event_factory(source="reminders", dedup_key="other"))
            (event,) = source.poll()
            with pytest.raises(RateLimited):
                intake.submit(event)

            frozen.tick(timedelta(minutes=2))
            (retried,) = source.poll()
            notification = intake.submit(retried)

            frozen.tick(timedelta(minutes=2))
            (again,) = source.poll()
            with pytest.raises(DuplicateRejected):
                intake.submit(again)

        assert retried["dedup_key"] == "111:2026-03-02T10"
        assert notification.payload == {"text": "Notify!", "chat_id": "111"}
