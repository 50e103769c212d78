"""Unit tests for reminder subscriptions."""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
from freezegun import freeze_time

from infrastructure.configuration.features.reminders import ReminderRecipient
from infrastructure.persistence import ConditionFailed
from modules.dispatch import keys
from modules.dispatch.errors import SubscriptionNotFound
from modules.dispatch.models import Subscription
from modules.dispatch.subscriptions import SubscriptionRegistry


@pytest.fixture
def registry(memory_store):
    return SubscriptionRegistry(memory_store)


@pytest.mark.unit
class TestSubscribe:
    def test_default_offset(self, registry, memory_store):
        subscription = registry.subscribe("111")

        assert subscription.offset == timedelta(hours=5)
        stored = Subscription.model_validate_json(
            memory_store.get(keys.subscription_key("111"))
        )
        assert stored == subscription

    def test_configured_default_offset(self, memory_store):
        registry = SubscriptionRegistry(memory_store, default_offset="-03:30")

        assert registry.subscribe("111").offset_minutes == -210

    def test_explicit_offset(self, registry):
        assert registry.subscribe("111", timedelta(hours=2)).offset_minutes == 120

    def test_invalid_offset_rejected(self, registry):
        with pytest.raises(ValueError):
            registry.subscribe("111", "+5")

        assert registry.get("111") is None

    def test_already_subscribed_keeps_offset(self, registry):
        registry.subscribe("111", "+03:00")

        again = registry.subscribe("111", "+07:00")

        assert again.offset_minutes == 180
        assert [s.chat_id for s in registry.list_all()] == ["111"]

    @freeze_time("2026-03-02 07:30:00")
    def test_subscribing_again_lifts_snooze(self, registry):
        registry.subscribe("111")
        registry.snooze_until_next_day("111")

        assert registry.subscribe("111").snoozed_until is None
        assert registry.get("111").snoozed_until is None


@pytest.mark.unit
class TestUnsubscribe:
    def test_removes_subscription(self, registry, memory_store):
        registry.subscribe("111")

        assert registry.unsubscribe("111") is True
        assert memory_store.get(keys.subscription_key("111")) is None

    def test_unknown_chat(self, registry):
        assert registry.unsubscribe("111") is False


@pytest.mark.unit
class TestSnooze:
    @freeze_time("2026-03-02 07:30:00")
    def test_until_next_local_midnight(self, registry):
        registry.subscribe("111", "+03:00")

        snoozed = registry.snooze_until_next_day("111")

        # 10:30 local on 2026-03-02, so midnight of 2026-03-03 at +03:00
        assert snoozed.snoozed_until == datetime(2026, 3, 2, 21, 0, tzinfo=timezone.utc)
        assert snoozed.is_snoozed(datetime(2026, 3, 2, 20, 59, tzinfo=timezone.utc))
        assert not snoozed.is_snoozed(datetime(2026, 3, 2, 21, 0, tzinfo=timezone.utc))

    def test_local_day_differs_from_utc_day(self, registry):
        registry.subscribe("111", "-05:00")

        # 2026-03-02 02:00 UTC is still 2026-03-01 21:00 at -05:00
        snoozed = registry.snooze_until_next_day(
            "111", now=datetime(2026, 3, 2, 2, 0, tzinfo=timezone.utc)
        )

        assert snoozed.snoozed_until == datetime(2026, 3, 2, 5, 0, tzinfo=timezone.utc)

    def test_unknown_chat(self, registry):
        with pytest.raises(SubscriptionNotFound) as exc:
            registry.snooze_until_next_day("111")

        assert exc.value.chat_id == "111"


@pytest.mark.unit
class TestSetOffset:
    @freeze_time("2026-03-02 07:30:00")
    def test_changes_offset_and_lifts_snooze(self, registry):
        registry.subscribe("111", "+03:00")
        registry.snooze_until_next_day("111")

        changed = registry.set_offset("111", "-05:30")

        assert changed.offset == -timedelta(hours=5, minutes=30)
        assert changed.snoozed_until is None
        assert registry.get("111") == changed

    def test_invalid_offset_leaves_subscription(self, registry):
        registry.subscribe("111", "+03:00")

        with pytest.raises(ValueError):
            registry.set_offset("111", "+24:00")

        assert registry.get("111").offset_minutes == 180

    def test_unknown_chat(self, registry):
        with pytest.raises(SubscriptionNotFound):
            registry.set_offset("111", "+01:00")

    def test_concurrent_change_is_retried(self, registry, memory_store):
        registry.subscribe("111", "+03:00")
        commit = memory_store.commit
        calls = []

        def racing_commit(batch):
            if not calls:
                calls.append(batch)
                # another process changes the offset between our read and our write
                registry.store.put(
                    keys.subscription_key("111"),
                    registry.get("111")
                    .model_copy(update={"offset_minutes": 60})
                    .model_dump_json(),
                )
            commit(batch)

        with patch.object(memory_store, "commit", side_effect=racing_commit):
            changed = registry.set_offset("111", "+02:00")

        assert changed.offset_minutes == 120
        assert registry.get("111").offset_minutes == 120

    def test_gives_up_when_always_raced(self, registry, memory_store):
        registry.subscribe("111", "+03:00")

        with patch.object(
            memory_store,
            "commit",
            side_effect=ConditionFailed(keys.subscription_key("111"), "a", "b"),
        ):
            with pytest.raises(ConditionFailed):
                registry.set_offset("111", "+02:00")


@pytest.mark.unit
class TestSeed:
    def test_subscribes_missing_recipients_only(self, registry):
        registry.subscribe("111", "+07:00")

        created = registry.seed(
            [
                ReminderRecipient("111", timedelta(hours=3)),
                ReminderRecipient("222", timedelta(hours=-5)),
            ]
        )

        assert created == 1
        assert {s.chat_id: s.offset_minutes for s in registry.list_all()} == {
            "111": 420,
            "222": -300,
        }

    def test_configured_recipient_resubscribed_on_restart(self, registry):
        recipients = [ReminderRecipient("111", timedelta(hours=3))]
        registry.seed(recipients)
        registry.unsubscribe("111")

        assert registry.seed(recipients) == 1
