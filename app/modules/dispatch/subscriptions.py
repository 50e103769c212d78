"""Reminder subscriptions kept in the state store.

A chat subscribes with a UTC offset, can change the offset, snooze reminders
until its next local day, and unsubscribe. Changes take effect on the next
poll of the reminder source; no restart is needed.
"""

from datetime import datetime, timedelta
from typing import Callable, Iterable, List, Optional, Union

from infrastructure.configuration.features.reminders import (
    ReminderRecipient,
    parse_offset,
)
from infrastructure.logging import get_module_logger
from infrastructure.persistence import ConditionFailed, StateStore, decode_record
from modules.dispatch import keys
from modules.dispatch.errors import SubscriptionNotFound
from modules.dispatch.models import Subscription, utc_now

logger = get_module_logger()

Offset = Union[str, timedelta]

UPDATE_RETRIES = 3


def _offset_minutes(offset: Offset) -> int:
    if isinstance(offset, str):
        offset = parse_offset(offset)
    return int(offset.total_seconds() // 60)


def next_local_midnight(subscription: Subscription, now: datetime) -> datetime:
    """Start of the day after ``now`` on the subscriber's clock, as an aware datetime."""
    local = subscription.local_time(now)
    tomorrow = (local + timedelta(days=1)).replace(
        hour=0, minute=0, second=0, microsecond=0
    )
    return tomorrow


class SubscriptionRegistry:
    """Start, stop, snooze and re-zone reminder subscriptions.

    Args:
        store: State store holding ``subscription:<chat_id>`` records
        default_offset: Offset of a chat that subscribes without naming one
    """

    def __init__(self, store: StateStore, default_offset: Offset = timedelta(hours=5)):
        self.store = store
        self.default_offset_minutes = _offset_minutes(default_offset)

    def get(self, chat_id: str) -> Optional[Subscription]:
        key = keys.subscription_key(chat_id)
        return decode_record(key, self.store.get(key), Subscription)

    def list_all(self) -> List[Subscription]:
        return [
            decode_record(key, raw, Subscription)
            for key, raw in self.store.scan(keys.SUBSCRIPTION_PREFIX)
        ]

    def subscribe(self, chat_id: str, offset: Optional[Offset] = None) -> Subscription:
        """Start reminders for a chat.

        An existing subscription keeps its offset; a snooze on it is lifted.

        Raises:
            ValueError: ``offset`` is not a valid ±HH:MM offset
        """
        minutes = (
            self.default_offset_minutes if offset is None else _offset_minutes(offset)
        )
        subscription = Subscription(
            chat_id=chat_id, offset_minutes=minutes, subscribed_at=utc_now()
        )
        key = keys.subscription_key(chat_id)
        try:
            with self.store.write_batch() as batch:
                batch.expect(key, None)
                batch.put(key, subscription.model_dump_json())
        except ConditionFailed:
            existing = self._update(
                chat_id, lambda current: current.model_copy(update={"snoozed_until": None})
            )
            logger.info("subscription_exists", chat_id=chat_id)
            return existing

        logger.info(
            "subscription_created", chat_id=chat_id, offset_minutes=minutes
        )
        return subscription

    def unsubscribe(self, chat_id: str) -> bool:
        """Stop reminders for a chat.

        Returns:
            False if the chat was not subscribed
        """
        key = keys.subscription_key(chat_id)
        if self.store.get(key) is None:
            return False
        self.store.delete(key)
        logger.info("subscription_removed", chat_id=chat_id)
        return True

    def snooze_until_next_day(
        self, chat_id: str, now: Optional[datetime] = None
    ) -> Subscription:
        """Suppress reminders until the chat's next local midnight.

        Raises:
            SubscriptionNotFound: The chat is not subscribed
        """
        now = now or utc_now()
        snoozed = self._update(
            chat_id,
            lambda current: current.model_copy(
                update={"snoozed_until": next_local_midnight(current, now)}
            ),
        )
        logger.info(
            "subscription_snoozed",
            chat_id=chat_id,
            snoozed_until=snoozed.snoozed_until.isoformat(),
        )
        return snoozed

    def set_offset(self, chat_id: str, offset: Offset) -> Subscription:
        """Move a chat to another UTC offset; any snooze is lifted.

        Raises:
            SubscriptionNotFound: The chat is not subscribed
            ValueError: ``offset`` is not a valid ±HH:MM offset
        """
        minutes = _offset_minutes(offset)
        changed = self._update(
            chat_id,
            lambda current: current.model_copy(
                update={"offset_minutes": minutes, "snoozed_until": None}
            ),
        )
        logger.info("subscription_offset_changed", chat_id=chat_id, offset_minutes=minutes)
        return changed

    def seed(self, recipients: Iterable[ReminderRecipient]) -> int:
        """Subscribe configured recipients that are not subscribed yet.

        Runtime changes win: an existing subscription is left as it is.

        Returns:
            Number of subscriptions created
        """
        created = 0
        for recipient in recipients:
            subscription = Subscription(
                chat_id=recipient.chat_id,
                offset_minutes=_offset_minutes(recipient.offset),
                subscribed_at=utc_now(),
            )
            key = keys.subscription_key(recipient.chat_id)
            try:
                with self.store.write_batch() as batch:
                    batch.expect(key, None)
                    batch.put(key, subscription.model_dump_json())
            except ConditionFailed:
                continue
            created += 1
        if created:
            logger.info("subscriptions_seeded", created=created)
        return created

    def _update(
        self, chat_id: str, change: Callable[[Subscription], Subscription]
    ) -> Subscription:
        key = keys.subscription_key(chat_id)
        attempt = 0
        while True:
            attempt += 1
            raw = self.store.get(key)
            current = decode_record(key, raw, Subscription)
            if current is None:
                raise SubscriptionNotFound(chat_id)
            updated = change(current)
            try:
                with self.store.write_batch() as batch:
                    batch.expect(key, raw)
                    batch.put(key, updated.model_dump_json())
            except ConditionFailed:
                if attempt >= UPDATE_RETRIES:
                    raise
                logger.debug("subscription_update_raced", chat_id=chat_id, attempt=attempt)
            else:
                return updated
