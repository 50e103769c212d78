"""Working-hours reminder feature settings."""

import re
from datetime import timedelta
from typing import List, NamedTuple

from pydantic import Field, field_validator, model_validator

from infrastructure.configuration.base import FeatureSettings

OFFSET_PATTERN = re.compile(r"^([+-])([0-2][0-9]):([0-5][0-9])$")


class ReminderRecipient(NamedTuple):
    """A chat and the UTC offset of its local clock."""

    chat_id: str
    offset: timedelta


def parse_offset(value: str) -> timedelta:
    """Parse a UTC offset such as '+03:00' or '-05:30'.

    Raises:
        ValueError: If the value does not match ±HH:MM or the hours exceed 23
    """
    match = OFFSET_PATTERN.match(value.strip())
    if not match:
        raise ValueError(f"Invalid UTC offset {value!r}, expected ±HH:MM")
    sign, hours, minutes = match.groups()
    if int(hours) > 23:
        raise ValueError(f"Invalid UTC offset {value!r}, hours must be below 24")
    offset = timedelta(hours=int(hours), minutes=int(minutes))
    return -offset if sign == "-" else offset


def parse_recipient(value: str) -> ReminderRecipient:
    """Parse a '<chat_id>@<±HH:MM>' recipient entry."""
    chat_id, sep, offset = value.strip().rpartition("@")
    if not sep or not chat_id:
        raise ValueError(f"Invalid recipient {value!r}, expected <chat_id>@±HH:MM")
    return ReminderRecipient(chat_id=chat_id, offset=parse_offset(offset))


class ReminderSettings(FeatureSettings):
    """Hourly working-hours reminders.

    Sends NOTIFICATION_MESSAGE to every subscribed chat once per local hour
    between REMINDER_HOUR_FROM and REMINDER_HOUR_TO on weekdays. Subscriptions
    live in the state store; REMINDER_RECIPIENTS seeds it at startup.

    Environment Variables:
        REMINDERS_ENABLED: Enable the reminder source (default: False)
        REMINDER_RECIPIENTS: Comma-separated '<chat_id>@<±HH:MM>' entries
        NOTIFICATION_MESSAGE: Reminder text (default: Notify!)
        REMINDER_HOUR_FROM: First local hour, inclusive (default: 9)
        REMINDER_HOUR_TO: Last local hour, inclusive (default: 18)
        REMINDER_CHANNEL: Channel the reminders go to (default: telegram)
        REMINDER_DEFAULT_OFFSET: UTC offset given to a chat that subscribes
            without one (default: +05:00)

    Example:
        ```bash
        REMINDERS_ENABLED=true
        REMINDER_RECIPIENTS="123456@+03:00,-100987@-05:00"
        ```
    """

    enabled: bool = Field(default=False, alias="REMINDERS_ENABLED")
    recipients_raw: str = Field(default="", alias="REMINDER_RECIPIENTS")
    message: str = Field(default="Notify!", alias="NOTIFICATION_MESSAGE", min_length=1)
    hour_from: int = Field(default=9, alias="REMINDER_HOUR_FROM", ge=0, le=23)
    hour_to: int = Field(default=18, alias="REMINDER_HOUR_TO", ge=0, le=23)
    channel: str = Field(default="telegram", alias="REMINDER_CHANNEL")
    default_offset_raw: str = Field(default="+05:00", alias="REMINDER_DEFAULT_OFFSET")

    @field_validator("recipients_raw", mode="after")
    @classmethod
    def _validate_recipients(cls, v: str) -> str:
        for entry in v.split(","):
            if entry.strip():
                parse_recipient(entry)
        return v

    @field_validator("default_offset_raw", mode="after")
    @classmethod
    def _validate_default_offset(cls, v: str) -> str:
        parse_offset(v)
        return v

    @model_validator(mode="after")
    def _validate_hours(self) -> "ReminderSettings":
        if self.hour_from > self.hour_to:
            raise ValueError("REMINDER_HOUR_FROM must not be after REMINDER_HOUR_TO")
        return self

    @property
    def default_offset(self) -> timedelta:
        return parse_offset(self.default_offset_raw)

    @property
    def recipients(self) -> List[ReminderRecipient]:
        return [
            parse_recipient(entry)
            for entry in self.recipients_raw.split(",")
            if entry.strip()
        ]
