"""Event intake: validation, deduplication and atomic enqueue.

An accepted event produces three records written in one conditional batch:
the dedup fingerprint, the Notification and its QueueEntry. The batch is
conditioned on the dedup record being unchanged since it was read, so two
concurrent submissions of the same event cannot both be accepted.
"""

import threading
from datetime import timedelta
from typing import Any, Dict, Iterable, Mapping, Optional

from limits import parse
from limits.storage import MemoryStorage
from limits.strategies import MovingWindowRateLimiter
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from infrastructure.idempotency import FingerprintBuilder
from infrastructure.logging import get_module_logger
from infrastructure.persistence import ConditionFailed, StateStore, decode_record
from modules.dispatch import keys
from modules.dispatch.errors import (
    DuplicateRejected,
    IntakeClosed,
    InvalidEvent,
    RateLimited,
)
from modules.dispatch.models import (
    DedupRecord,
    Notification,
    QueueEntry,
    QueueState,
    utc_now,
)
from modules.dispatch.queue import DispatchQueue

logger = get_module_logger()


class RawEvent(BaseModel):
    """Shape of an event handed to intake by a source."""

    model_config = ConfigDict(str_strip_whitespace=True)

    source: str = Field(min_length=1)
    payload: Dict[str, Any]
    dedup_key: Optional[str] = None
    channel: Optional[str] = None

    @field_validator("source")
    @classmethod
    def _validate_source(cls, v: str) -> str:
        if ":" in v:
            raise ValueError("source must not contain ':'")
        return v

    @field_validator("payload")
    @classmethod
    def _validate_payload(cls, v: Dict[str, Any]) -> Dict[str, Any]:
        if not v:
            raise ValueError("payload must not be empty")
        return v

    @field_validator("dedup_key", "channel")
    @classmethod
    def _empty_is_missing(cls, v: Optional[str]) -> Optional[str]:
        return v or None


class EventIntake:
    """Accepts raw events into the dispatch queue.

    Args:
        store: State store shared with the queue
        queue: Dispatch queue the entries are written to
        fingerprints: Builder for dedup fingerprints and notification ids
        channels: Names of the configured channels
        default_channel: Channel used when the event names none and has no route
        routes: Source name to channel name routing table
        dedup_window_seconds: How long a fingerprint suppresses repeats
        rate_limit: Per-source limit in ``limits`` notation, e.g. "100/second"
    """

    def __init__(
        self,
        store: StateStore,
        queue: DispatchQueue,
        fingerprints: FingerprintBuilder,
        channels: Iterable[str],
        default_channel: str,
        routes: Optional[Mapping[str, str]] = None,
        dedup_window_seconds: int = 86400,
        rate_limit: str = "100/second",
    ):
        self.store = store
        self.queue = queue
        self.fingerprints = fingerprints
        self.channels = frozenset(channels)
        self.default_channel = default_channel
        self.routes = dict(routes or {})
        self.dedup_window = timedelta(seconds=dedup_window_seconds)
        self.rate_limit = rate_limit
        self._rate = parse(rate_limit)
        self._limiter = MovingWindowRateLimiter(MemoryStorage())
        self._closed = threading.Event()

    @property
    def is_closed(self) -> bool:
        return self._closed.is_set()

    def close(self) -> None:
        """Stop accepting events. Already accepted events are unaffected."""
        if not self._closed.is_set():
            self._closed.set()
            logger.info("intake_closed")

    def submit(self, raw_event: Any) -> Notification:
        """Validate, deduplicate and enqueue an event.

        Args:
            raw_event: Mapping with source, payload and optional dedup_key/channel

        Returns:
            The accepted Notification

        Raises:
            IntakeClosed: Intake is shutting down
            InvalidEvent: The event is malformed or names an unknown channel
            RateLimited: The source exceeded its rate limit
            DuplicateRejected: The same event was accepted within the dedup window
            StoreUnavailable: The store cannot be read or written
        """
        if self.is_closed:
            raise IntakeClosed("Intake is closed")

        event = self._validate(raw_event)
        channel = self._resolve_channel(event)

        if not self._limiter.hit(self._rate, "intake", event.source):
            logger.warning(
                "intake_rate_limited", source=event.source, limit=self.rate_limit
            )
            raise RateLimited(event.source, self.rate_limit)

        fingerprint = self.fingerprints.fingerprint(
            event.source, dedup_key=event.dedup_key, payload=event.payload
        )
        dedup_key = keys.dedup_key(fingerprint)
        now = utc_now()

        existing_raw = self.store.get(dedup_key)
        existing = decode_record(dedup_key, existing_raw, DedupRecord)
        if existing is not None and now - existing.first_seen < self.dedup_window:
            logger.info(
                "event_duplicate_rejected",
                source=event.source,
                fingerprint=fingerprint,
                existing_id=existing.notification_id,
            )
            raise DuplicateRejected(fingerprint, existing.notification_id)

        notification = Notification(
            id=self.fingerprints.notification_id(fingerprint, now),
            source=event.source,
            channel=channel,
            payload=event.payload,
            dedup_key=fingerprint,
            created_at=now,
        )
        entry = QueueEntry(
            notification_id=notification.id,
            source=notification.source,
            enqueue_time=now,
            next_retry_at=now,
            state=QueueState.PENDING,
        )
        record = DedupRecord(notification_id=notification.id, first_seen=now)

        try:
            with self.store.write_batch() as batch:
                batch.expect(dedup_key, existing_raw)
                batch.put(dedup_key, record.model_dump_json())
                batch.put(
                    keys.notification_key(notification.id),
                    notification.model_dump_json(),
                )
                self.queue.enqueue(entry, batch=batch)
        except ConditionFailed as e:
            logger.info(
                "event_duplicate_race_lost",
                source=event.source,
                fingerprint=fingerprint,
            )
            raise DuplicateRejected(fingerprint) from e

        logger.info(
            "notification_accepted",
            notification_id=notification.id,
            source=notification.source,
            channel=notification.channel,
        )
        return notification

    def _validate(self, raw_event: Any) -> RawEvent:
        try:
            return RawEvent.model_validate(raw_event)
        except ValidationError as e:
            logger.warning(
                "event_invalid",
                errors=[err["msg"] for err in e.errors()],
            )
            raise InvalidEvent(f"Malformed event: {e}") from e

    def _resolve_channel(self, event: RawEvent) -> str:
        channel = event.channel or self.routes.get(event.source) or self.default_channel
        if channel not in self.channels:
            logger.warning(
                "event_unknown_channel", source=event.source, channel=channel
            )
            raise InvalidEvent(
                f"Unknown channel {channel!r}; configured: {', '.join(sorted(self.channels))}"
            )
        return channel
