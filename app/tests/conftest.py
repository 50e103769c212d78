"""Shared fixtures for notification bot tests."""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

import pytest

from infrastructure.idempotency import FingerprintBuilder
from infrastructure.operations import OperationResult
from infrastructure.persistence import InMemoryStateStore, SQLiteStateStore
from infrastructure.resilience.retry import RetryConfig
from infrastructure.services import get_logging_settings, get_settings
from modules.dispatch import keys
from modules.dispatch.intake import EventIntake
from modules.dispatch.models import (
    Notification,
    QueueEntry,
    QueueState,
    utc_now,
)
from modules.dispatch.queue import DispatchQueue
from modules.dispatch.worker import DeliveryWorkerPool


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    """Keep host configuration (.env, /app/config.json) out of every test."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("NOTIFICATION_BOT_CONFIG_FILE", str(tmp_path / "no-config.json"))
    get_settings.cache_clear()
    get_logging_settings.cache_clear()
    yield
    get_settings.cache_clear()
    get_logging_settings.cache_clear()


# ============================================================================
# Stores
# ============================================================================


@pytest.fixture
def memory_store():
    store = InMemoryStateStore()
    yield store
    store.close()


@pytest.fixture
def sqlite_store(tmp_path):
    store = SQLiteStateStore(str(tmp_path / "state" / "notification_bot.db"))
    yield store
    store.close()


# ============================================================================
# Records
# ============================================================================


@pytest.fixture
def notification_factory():
    """Factory for Notification instances."""

    def _factory(
        id: str = "n-1",
        source: str = "alerts",
        channel: str = "log",
        payload: Optional[Dict[str, Any]] = None,
        dedup_key: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> Notification:
        return Notification(
            id=id,
            source=source,
            channel=channel,
            payload=payload if payload is not None else {"text": "disk full"},
            dedup_key=dedup_key or f"fp-{id}",
            created_at=created_at or utc_now(),
        )

    return _factory


@pytest.fixture
def queue_entry_factory():
    """Factory for QueueEntry instances."""

    def _factory(
        notification_id: str = "n-1",
        source: str = "alerts",
        enqueue_time: Optional[datetime] = None,
        next_retry_at: Optional[datetime] = None,
        attempt_count: int = 0,
        state: QueueState = QueueState.PENDING,
        lease_owner: Optional[str] = None,
        lease_expires_at: Optional[datetime] = None,
    ) -> QueueEntry:
        enqueue_time = enqueue_time or utc_now()
        return QueueEntry(
            notification_id=notification_id,
            source=source,
            enqueue_time=enqueue_time,
            next_retry_at=next_retry_at or enqueue_time,
            attempt_count=attempt_count,
            state=state,
            lease_owner=lease_owner,
            lease_expires_at=lease_expires_at,
        )

    return _factory


@pytest.fixture
def raw_event_factory():
    """Factory for raw event dictionaries as produced by sources."""

    def _factory(
        source: str = "alerts",
        payload: Optional[Dict[str, Any]] = None,
        dedup_key: Optional[str] = "disk-full:web-1",
        channel: Optional[str] = None,
    ) -> Dict[str, Any]:
        event: Dict[str, Any] = {
            "source": source,
            "payload": payload if payload is not None else {"text": "disk full"},
        }
        if dedup_key is not None:
            event["dedup_key"] = dedup_key
        if channel is not None:
            event["channel"] = channel
        return event

    return _factory


@pytest.fixture
def seed_notification(notification_factory, queue_entry_factory):
    """Write a Notification and its QueueEntry straight into a store."""

    def _seed(
        store,
        id: str = "n-1",
        source: str = "alerts",
        channel: str = "log",
        payload: Optional[Dict[str, Any]] = None,
        enqueue_time: Optional[datetime] = None,
        **entry_fields: Any,
    ) -> Tuple[Notification, QueueEntry]:
        notification = notification_factory(
            id=id, source=source, channel=channel, payload=payload
        )
        entry = queue_entry_factory(
            notification_id=id, source=source, enqueue_time=enqueue_time, **entry_fields
        )
        store.put(keys.notification_key(id), notification.model_dump_json())
        store.put(keys.queue_key(id), entry.model_dump_json())
        return notification, entry

    return _seed


# ============================================================================
# Pipeline components
# ============================================================================


@pytest.fixture
def retry_config_factory():
    """Factory for RetryConfig instances; jitter is off unless requested."""

    def _factory(
        max_attempts: int = 5,
        base_delay_seconds: float = 30,
        max_delay_seconds: float = 3600,
        jitter_ratio: float = 0.0,
        batch_size: int = 10,
        lease_seconds: int = 120,
    ) -> RetryConfig:
        return RetryConfig(
            max_attempts=max_attempts,
            base_delay_seconds=base_delay_seconds,
            max_delay_seconds=max_delay_seconds,
            jitter_ratio=jitter_ratio,
            batch_size=batch_size,
            lease_seconds=lease_seconds,
        )

    return _factory


@pytest.fixture
def dispatch_queue(memory_store):
    return DispatchQueue(memory_store, lease_seconds=120)


@pytest.fixture
def event_intake_factory(memory_store, dispatch_queue):
    """Factory for EventIntake over the shared memory store and queue."""

    def _factory(
        channels: Tuple[str, ...] = ("log", "webhook"),
        default_channel: str = "log",
        routes: Optional[Dict[str, str]] = None,
        dedup_window_seconds: int = 86400,
        rate_limit: str = "100/second",
        store=None,
        queue=None,
    ) -> EventIntake:
        store = store or memory_store
        return EventIntake(
            store,
            queue or (dispatch_queue if store is memory_store else DispatchQueue(store)),
            FingerprintBuilder("notification_bot"),
            channels=channels,
            default_channel=default_channel,
            routes=routes,
            dedup_window_seconds=dedup_window_seconds,
            rate_limit=rate_limit,
        )

    return _factory


class StubSender:
    """Sender returning scripted results, recording every call."""

    def __init__(self, channel: str = "log", results: Optional[List[Any]] = None):
        self._channel = channel
        self.results = list(results or [])
        self.calls: List[Notification] = []

    @property
    def channel_name(self) -> str:
        return self._channel

    def send(self, notification: Notification) -> OperationResult:
        self.calls.append(notification)
        result = self.results.pop(0) if self.results else OperationResult.success()
        if isinstance(result, BaseException):
            raise result
        return result


class RecordingEscalation:
    def __init__(self):
        self.calls: List[Tuple[str, str]] = []

    def notify(self, notification_id: str, reason: str) -> None:
        self.calls.append((notification_id, reason))


@pytest.fixture
def stub_sender_factory():
    """Factory for senders with scripted OperationResults (or exceptions)."""

    def _factory(channel: str = "log", results: Optional[List[Any]] = None) -> StubSender:
        return StubSender(channel, results)

    return _factory


@pytest.fixture
def escalation():
    return RecordingEscalation()


@pytest.fixture
def worker_pool_factory(memory_store, dispatch_queue, escalation, retry_config_factory):
    """Factory for DeliveryWorkerPool over the shared memory store and queue."""

    def _factory(
        senders: Optional[Dict[str, Any]] = None,
        config: Optional[RetryConfig] = None,
        send_timeout_seconds: float = 5.0,
        store=None,
        queue=None,
        worker_count: int = 1,
        poll_interval_seconds: float = 0.01,
    ) -> DeliveryWorkerPool:
        store = store or memory_store
        return DeliveryWorkerPool(
            store,
            queue or (dispatch_queue if store is memory_store else DispatchQueue(store)),
            senders if senders is not None else {"log": StubSender()},
            escalation,
            config=config or retry_config_factory(),
            worker_count=worker_count,
            poll_interval_seconds=poll_interval_seconds,
            send_timeout_seconds=send_timeout_seconds,
        )

    return _factory


@pytest.fixture
def past():
    """A point in time safely before 'now'."""
    return utc_now() - timedelta(minutes=10)
