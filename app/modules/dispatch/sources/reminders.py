"""Working-hours reminder source.

Emits one reminder per subscribed chat for every local hour from ``hour_from``
to ``hour_to`` (inclusive) on weekdays, skipping chats snoozed until their
next local day. Subscriptions are read from the state store on every poll.

The dedup key is the chat plus the local hour, so the reminder for an hour is
accepted once no matter how often the source is polled or the process
restarts within that hour. A reminder intake rejects is offered again on the
next poll of the same hour.
"""

from datetime import datetime
from typing import Any, Dict, Iterator, Optional

from infrastructure.configuration.features.reminders import ReminderSettings
from modules.dispatch.models import utc_now
from modules.dispatch.subscriptions import SubscriptionRegistry

SOURCE_NAME = "reminders"


class WorkingHoursReminderSource:
    def __init__(
        self,
        subscriptions: SubscriptionRegistry,
        message: str = "Notify!",
        hour_from: int = 9,
        hour_to: int = 18,
        channel: Optional[str] = None,
    ):
        self.subscriptions = subscriptions
        self.message = message
        self.hour_from = hour_from
        self.hour_to = hour_to
        self.channel = channel

    @classmethod
    def from_settings(
        cls, settings: ReminderSettings, subscriptions: SubscriptionRegistry
    ) -> "WorkingHoursReminderSource":
        return cls(
            subscriptions=subscriptions,
            message=settings.message,
            hour_from=settings.hour_from,
            hour_to=settings.hour_to,
            channel=settings.channel,
        )

    @property
    def name(self) -> str:
        return SOURCE_NAME

    def is_working_time(self, local: datetime) -> bool:
        """Weekday and within the configured hours of the subscriber's clock."""
        return local.weekday() < 5 and self.hour_from <= local.hour <= self.hour_to

    def poll(self) -> Iterator[Dict[str, Any]]:
        now = utc_now()
        for subscription in self.subscriptions.list_all():
            if subscription.is_snoozed(now):
                continue
            local = subscription.local_time(now)
            if not self.is_working_time(local):
                continue

            event: Dict[str, Any] = {
                "source": SOURCE_NAME,
                "dedup_key": f"{subscription.chat_id}:{local:%Y-%m-%dT%H}",
                "payload": {"text": self.message, "chat_id": subscription.chat_id},
            }
            if self.channel:
                event["channel"] = self.channel
            yield event
