"""Event sources feeding the intake.

- SpoolDirectorySource: JSON files dropped into <DATA_DIR>/inbox
- WorkingHoursReminderSource: hourly reminders during subscribers' working hours
"""

from modules.dispatch.sources.base import EventSource
from modules.dispatch.sources.reminders import WorkingHoursReminderSource
from modules.dispatch.sources.runner import IntakeRunner
from modules.dispatch.sources.spool import SpoolDirectorySource

__all__ = [
    "EventSource",
    "IntakeRunner",
    "SpoolDirectorySource",
    "WorkingHoursReminderSource",
]
