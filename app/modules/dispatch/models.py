"""Records of the dispatch pipeline.

Every record is a pydantic model persisted as JSON in the state store under
the keys defined in ``modules.dispatch.keys``.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class QueueState(str, Enum):
    """State of an active queue entry."""

    PENDING = "pending"
    LEASED = "leased"
    RETRYING = "retrying"


class AttemptStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


class OutcomeState(str, Enum):
    """Terminal state of a notification."""

    DELIVERED = "delivered"
    FAILED = "failed"


class NotificationState(str, Enum):
    """State reported by the status query: the queue states plus the terminal ones."""

    PENDING = "pending"
    LEASED = "leased"
    RETRYING = "retrying"
    DELIVERED = "delivered"
    FAILED = "failed"


class Notification(BaseModel):
    """An accepted event, immutable once written.

    Attributes:
        id: Fingerprint of dedup_key and created_at
        source: Event source that produced it
        channel: Name of the sender that delivers it
        payload: Channel-specific content (``text`` at minimum)
        dedup_key: Content fingerprint used for deduplication
        created_at: Acceptance time (UTC)
    """

    model_config = ConfigDict(frozen=True)

    id: str
    source: str
    channel: str
    payload: Dict[str, Any]
    dedup_key: str
    created_at: datetime


class QueueEntry(BaseModel):
    """Work item for one notification. The entry id is the notification id."""

    notification_id: str
    source: str
    enqueue_time: datetime
    next_retry_at: datetime
    attempt_count: int = Field(default=0, ge=0)
    state: QueueState = QueueState.PENDING
    lease_owner: Optional[str] = None
    lease_expires_at: Optional[datetime] = None
    last_error: Optional[str] = None

    @property
    def entry_id(self) -> str:
        return self.notification_id

    def is_available(self, now: datetime) -> bool:
        """Whether a worker may lease this entry at ``now``."""
        if self.state == QueueState.LEASED:
            return self.lease_is_expired(now)
        return self.next_retry_at <= now

    def lease_is_expired(self, now: datetime) -> bool:
        return (
            self.state == QueueState.LEASED
            and self.lease_expires_at is not None
            and self.lease_expires_at <= now
        )


class DeliveryAttempt(BaseModel):
    """One invocation of a sender.

    Written with status ``pending`` before the sender runs and updated with
    the outcome afterwards, so a crash mid-delivery leaves a visible trace.
    """

    notification_id: str
    channel: str
    attempt_number: int = Field(ge=1)
    status: AttemptStatus = AttemptStatus.PENDING
    timestamp: datetime
    completed_at: Optional[datetime] = None
    error_detail: Optional[str] = None
    error_code: Optional[str] = None
    retryable: Optional[bool] = None


class DeliveryOutcome(BaseModel):
    """Terminal result, written together with the removal of the queue entry."""

    notification_id: str
    state: OutcomeState
    reason: Optional[str] = None
    attempts: int = Field(default=0, ge=0)
    finished_at: datetime


class DedupRecord(BaseModel):
    """First sighting of a fingerprint within the dedup window."""

    notification_id: str
    first_seen: datetime


class Subscription(BaseModel):
    """A chat receiving working-hours reminders on its own local clock."""

    chat_id: str = Field(min_length=1)
    offset_minutes: int = Field(ge=-23 * 60 - 59, le=23 * 60 + 59)
    snoozed_until: Optional[datetime] = None
    subscribed_at: datetime

    @property
    def offset(self) -> timedelta:
        return timedelta(minutes=self.offset_minutes)

    def local_time(self, now: datetime) -> datetime:
        return now.astimezone(timezone(self.offset))

    def is_snoozed(self, now: datetime) -> bool:
        return self.snoozed_until is not None and now < self.snoozed_until


class NotificationStatusView(BaseModel):
    """Structured status of a notification, as returned by the status query."""

    notification: Notification
    state: NotificationState
    attempt_count: int
    next_retry_at: Optional[datetime] = None
    reason: Optional[str] = None
    attempts: List[DeliveryAttempt] = Field(default_factory=list)
