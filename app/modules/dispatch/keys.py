"""Key layout of the state store.

    notif:<id>            Notification
    queue:<id>            QueueEntry (entry id == notification id)
    attempt:<id>:<n>      DeliveryAttempt number n
    dedup:<fingerprint>   DedupRecord
    outcome:<id>          DeliveryOutcome
    orphan:<id>           Quarantined QueueEntry without a Notification
    subscription:<chat>   Subscription of a chat to working-hours reminders
"""

from typing import Optional

NOTIFICATION_PREFIX = "notif:"
QUEUE_PREFIX = "queue:"
ATTEMPT_PREFIX = "attempt:"
DEDUP_PREFIX = "dedup:"
OUTCOME_PREFIX = "outcome:"
ORPHAN_PREFIX = "orphan:"
SUBSCRIPTION_PREFIX = "subscription:"


def notification_key(notification_id: str) -> str:
    return f"{NOTIFICATION_PREFIX}{notification_id}"


def queue_key(entry_id: str) -> str:
    return f"{QUEUE_PREFIX}{entry_id}"


def attempt_key(notification_id: str, attempt_number: int) -> str:
    return f"{ATTEMPT_PREFIX}{notification_id}:{attempt_number}"


def attempts_prefix(notification_id: str) -> str:
    return f"{ATTEMPT_PREFIX}{notification_id}:"


def dedup_key(fingerprint: str) -> str:
    return f"{DEDUP_PREFIX}{fingerprint}"


def outcome_key(notification_id: str) -> str:
    return f"{OUTCOME_PREFIX}{notification_id}"


def orphan_key(entry_id: str) -> str:
    return f"{ORPHAN_PREFIX}{entry_id}"


def subscription_key(chat_id: str) -> str:
    return f"{SUBSCRIPTION_PREFIX}{chat_id}"


def strip_prefix(key: str, prefix: str) -> str:
    return key[len(prefix):]


def attempt_number_from_key(key: str) -> Optional[int]:
    """Attempt number encoded in an ``attempt:<id>:<n>`` key, or None."""
    _, _, number = key.rpartition(":")
    try:
        return int(number)
    except ValueError:
        return None
