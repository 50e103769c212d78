"""Delivery worker pool.

Each worker thread repeatedly leases a batch of queue entries and drives
every entry through the delivery state machine:

    Pending -> Leased -> Delivered
                      -> Retrying -> Leased ...
                      -> Failed

The pending DeliveryAttempt and the incremented attempt count are written
before the sender runs. The sender's result, the queue transition and, for
terminal states, the DeliveryOutcome are then committed in one batch.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from datetime import timedelta
from typing import Callable, Dict, List, Mapping, Optional

from infrastructure.logging import bind_delivery_context, get_module_logger
from infrastructure.operations import OperationResult
from infrastructure.persistence import (
    ConditionFailed,
    StateStore,
    StoreUnavailable,
    WriteBatch,
    decode_record,
)
from infrastructure.resilience.retry import RetryConfig
from modules.dispatch import keys
from modules.dispatch.escalation import Escalation, escalate
from modules.dispatch.models import (
    AttemptStatus,
    DeliveryAttempt,
    Notification,
    QueueEntry,
    utc_now,
)
from modules.dispatch.queue import DispatchQueue
from modules.dispatch.senders.base import Sender

logger = get_module_logger()

DELIVERED = "delivered"
RETRIED = "retried"
FAILED = "failed"
SKIPPED = "skipped"


def _empty_stats() -> Dict[str, int]:
    return {"processed": 0, "delivered": 0, "retried": 0, "failed": 0, "skipped": 0}


class DeliveryWorkerPool:
    """Fixed-size pool of delivery worker threads.

    Attributes:
        store: State store shared with the queue
        queue: Dispatch queue to lease from
        senders: Channel name to sender
        escalation: Target for terminal failures and orphans
        config: Retry policy, batch size and lease duration
        worker_count: Number of worker threads started by ``start()``
        poll_interval_seconds: Wait after a batch that leased nothing
        send_timeout_seconds: Upper bound for one sender call
        fatal_error: The StoreUnavailable that stopped the pool, if any
    """

    def __init__(
        self,
        store: StateStore,
        queue: DispatchQueue,
        senders: Mapping[str, Sender],
        escalation: Escalation,
        config: Optional[RetryConfig] = None,
        worker_count: int = 4,
        poll_interval_seconds: float = 1.0,
        send_timeout_seconds: float = 30.0,
    ):
        self.store = store
        self.queue = queue
        self.senders = dict(senders)
        self.escalation = escalation
        self.config = config or RetryConfig()
        self.worker_count = worker_count
        self.poll_interval_seconds = poll_interval_seconds
        self.send_timeout_seconds = send_timeout_seconds
        self.fatal_error: Optional[StoreUnavailable] = None

        self._executor: Optional[ThreadPoolExecutor] = None
        self._executor_lock = threading.Lock()
        self._stop = threading.Event()
        self._threads: List[threading.Thread] = []
        self.log = logger.bind(component="delivery_worker_pool")

    @property
    def is_running(self) -> bool:
        return any(thread.is_alive() for thread in self._threads)

    def start(self) -> None:
        """Start ``worker_count`` worker threads."""
        if self._threads:
            return
        self._stop.clear()
        for index in range(self.worker_count):
            worker_id = f"worker-{index}"
            thread = threading.Thread(
                target=self._run, args=(worker_id,), name=worker_id, daemon=True
            )
            self._threads.append(thread)
            thread.start()
        self.log.info("worker_pool_started", worker_count=self.worker_count)

    def stop(self, timeout: Optional[float] = None) -> None:
        """Signal workers to stop and wait for in-flight entries to finish.

        Entries still leased when the timeout elapses are recovered when
        their lease expires or by the startup recovery scan.
        """
        self._stop.set()
        for thread in self._threads:
            thread.join(timeout)
        still_running = [thread.name for thread in self._threads if thread.is_alive()]
        self._threads = []
        with self._executor_lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=False, cancel_futures=True)
        if still_running:
            self.log.warning("worker_pool_stop_timeout", workers=still_running)
        else:
            self.log.info("worker_pool_stopped")

    def wait_for_stop(self, timeout: Optional[float] = None) -> bool:
        """Block until the pool is asked to stop (or stops itself on a fatal error)."""
        return self._stop.wait(timeout)

    def _run(self, worker_id: str) -> None:
        log = self.log.bind(worker_id=worker_id)
        while not self._stop.is_set():
            try:
                stats = self.process_batch(worker_id)
            except StoreUnavailable as e:
                log.critical("worker_store_unavailable", error=str(e), exc_info=True)
                if self.fatal_error is None:
                    self.fatal_error = e
                self._stop.set()
                return
            except Exception as e:  # noqa: BLE001
                log.error("worker_batch_exception", error=str(e), exc_info=True)
                stats = _empty_stats()

            if stats["processed"] == 0 and stats["skipped"] == 0:
                self._stop.wait(self.poll_interval_seconds)

    def process_batch(self, worker_id: str) -> Dict[str, int]:
        """Lease and process one batch of entries.

        Returns:
            Dictionary with processing statistics:
                - processed: Entries taken through a delivery attempt
                - delivered: Entries delivered
                - retried: Entries rescheduled for retry
                - failed: Entries moved to the failed terminal state
                - skipped: Entries whose lease was lost or which had no notification

        Raises:
            StoreUnavailable: The store failed; the caller must stop
        """
        stats = _empty_stats()
        entries = self.queue.lease(worker_id, self.config.batch_size)
        if not entries:
            return stats

        self.log.debug("delivery_batch_start", worker_id=worker_id, count=len(entries))

        for entry in entries:
            with bind_delivery_context(
                notification_id=entry.notification_id,
                worker_id=worker_id,
                source=entry.source,
            ):
                outcome = self.process_entry(entry)
            if outcome != SKIPPED:
                stats["processed"] += 1
            stats[outcome] += 1

        self.log.info("delivery_batch_complete", worker_id=worker_id, **stats)
        return stats

    def process_entry(self, entry: QueueEntry) -> str:
        """Drive one leased entry through a delivery attempt.

        Returns:
            One of "delivered", "retried", "failed" or "skipped"
        """
        notification_key = keys.notification_key(entry.notification_id)
        notification = decode_record(
            notification_key, self.store.get(notification_key), Notification
        )
        if notification is None:
            self.log.error("orphaned_queue_entry", notification_id=entry.notification_id)
            self.queue.quarantine(entry.model_dump_json(), entry)
            escalate(self.escalation, entry.notification_id, "orphaned queue entry")
            return SKIPPED

        queue_key = keys.queue_key(entry.notification_id)
        now = utc_now()
        if entry.lease_is_expired(now):
            self.log.warning(
                "lease_expired_before_delivery",
                notification_id=entry.notification_id,
                lease_expires_at=entry.lease_expires_at.isoformat(),
            )
            return SKIPPED

        if entry.attempt_count >= self.config.max_attempts:
            reason = f"max attempts ({self.config.max_attempts}) exhausted"
            try:
                with self.store.write_batch() as batch:
                    batch.expect(queue_key, entry.model_dump_json())
                    self.queue.fail(entry.notification_id, reason, batch=batch)
            except ConditionFailed:
                self.log.warning(
                    "lease_lost_before_delivery", notification_id=entry.notification_id
                )
                return SKIPPED
            escalate(self.escalation, entry.notification_id, reason)
            return FAILED

        attempt_number = entry.attempt_count + 1
        attempt = DeliveryAttempt(
            notification_id=notification.id,
            channel=notification.channel,
            attempt_number=attempt_number,
            status=AttemptStatus.PENDING,
            timestamp=now,
        )
        # a fresh lease covers the whole send
        started = entry.model_copy(
            update={
                "attempt_count": attempt_number,
                "lease_expires_at": now + timedelta(seconds=self.queue.lease_seconds),
            }
        )
        attempt_key = keys.attempt_key(notification.id, attempt_number)
        try:
            with self.store.write_batch() as batch:
                batch.expect(queue_key, entry.model_dump_json())
                batch.put(queue_key, started.model_dump_json())
                batch.put(attempt_key, attempt.model_dump_json())
        except ConditionFailed:
            self.log.warning(
                "lease_lost_before_delivery", notification_id=notification.id
            )
            return SKIPPED

        self.log.info(
            "delivery_attempt_started",
            notification_id=notification.id,
            channel=notification.channel,
            attempt=attempt_number,
        )
        result = self._send(notification)
        return self._finish(notification, started, attempt, result)

    def _sender_executor(self) -> ThreadPoolExecutor:
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.worker_count * 2, thread_name_prefix="sender"
                )
            return self._executor

    def _send(self, notification: Notification) -> OperationResult:
        sender = self.senders.get(notification.channel)
        if sender is None:
            return OperationResult.permanent_error(
                f"No sender configured for channel {notification.channel!r}",
                error_code="UNKNOWN_CHANNEL",
            )

        future = self._sender_executor().submit(sender.send, notification)
        try:
            result = future.result(timeout=self.send_timeout_seconds)
        except FuturesTimeoutError:
            future.cancel()
            return OperationResult.transient_error(
                f"Sender timed out after {self.send_timeout_seconds}s",
                error_code="SEND_TIMEOUT",
            )
        except Exception as e:  # noqa: BLE001
            self.log.warning(
                "sender_exception",
                notification_id=notification.id,
                error=str(e),
                exc_info=True,
            )
            return OperationResult.transient_error(
                f"Sender raised {type(e).__name__}: {e}",
                error_code="SENDER_EXCEPTION",
            )

        if not isinstance(result, OperationResult):
            return OperationResult.transient_error(
                f"Sender returned {type(result).__name__} instead of OperationResult",
                error_code="INVALID_RESULT",
            )
        return result

    def _finish(
        self,
        notification: Notification,
        started: QueueEntry,
        attempt: DeliveryAttempt,
        result: OperationResult,
    ) -> str:
        finished = attempt.model_copy(
            update={
                "status": AttemptStatus.SUCCESS
                if result.is_success
                else AttemptStatus.FAILED,
                "completed_at": utc_now(),
                "error_detail": None if result.is_success else result.message,
                "error_code": result.error_code,
                "retryable": None if result.is_success else result.is_transient,
            }
        )

        if result.is_success:
            if not self._commit(
                started, finished, lambda batch: self.queue.ack(notification.id, batch=batch)
            ):
                return SKIPPED
            self.log.info(
                "notification_delivered",
                notification_id=notification.id,
                attempts=attempt.attempt_number,
            )
            return DELIVERED

        if result.is_transient and attempt.attempt_number < self.config.max_attempts:
            delay = self.config.backoff_delay(attempt.attempt_number)
            if result.retry_after is not None:
                delay = max(delay, float(result.retry_after))
            if not self._commit(
                started,
                finished,
                lambda batch: self.queue.nack(
                    notification.id, delay, error=result.message, batch=batch
                ),
            ):
                return SKIPPED
            self.log.warning(
                "delivery_retry_scheduled",
                notification_id=notification.id,
                attempt=attempt.attempt_number,
                delay_seconds=round(delay, 3),
                error=result.message,
                error_code=result.error_code,
            )
            return RETRIED

        if result.is_transient:
            reason = (
                f"max attempts ({self.config.max_attempts}) exhausted: {result.message}"
            )
        else:
            reason = f"permanent failure: {result.message}"
        if not self._commit(
            started,
            finished,
            lambda batch: self.queue.fail(notification.id, reason, batch=batch),
        ):
            return SKIPPED
        self.log.error(
            "notification_failed",
            notification_id=notification.id,
            attempts=attempt.attempt_number,
            reason=reason,
            error_code=result.error_code,
        )
        escalate(self.escalation, notification.id, reason)
        return FAILED

    def _commit(
        self,
        started: QueueEntry,
        finished: DeliveryAttempt,
        transition: Callable[[WriteBatch], bool],
    ) -> bool:
        """Write the finished attempt and the queue transition if we still hold the lease.

        Returns:
            False if the entry changed since the attempt started (lease lost)
        """
        queue_key = keys.queue_key(started.notification_id)
        attempt_key = keys.attempt_key(finished.notification_id, finished.attempt_number)
        try:
            with self.store.write_batch() as batch:
                batch.expect(queue_key, started.model_dump_json())
                batch.put(attempt_key, finished.model_dump_json())
                transition(batch)
        except ConditionFailed:
            # the new owner decides the entry's fate; only the history is kept
            self.store.put(attempt_key, finished.model_dump_json())
            self.log.warning(
                "lease_lost_during_delivery",
                notification_id=started.notification_id,
                attempt=finished.attempt_number,
                status=finished.status.value,
            )
            return False
        return True
