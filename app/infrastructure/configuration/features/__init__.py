"""Feature settings __init__ - exports all feature settings."""

from infrastructure.configuration.features.reminders import (
    ReminderRecipient,
    ReminderSettings,
    parse_offset,
    parse_recipient,
)

__all__ = [
    "ReminderRecipient",
    "ReminderSettings",
    "parse_offset",
    "parse_recipient",
]
