"""Durable lease-based dispatch queue.

Queue state lives only in the state store. Leasing claims an entry with a
conditional write against the exact record that was read, so two workers can
never hold the same lease. An entry whose lease expires without ack or nack
becomes available again, which is how a crashed worker's work is recovered.
"""

from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Dict, Iterator, List, Optional, Tuple

from infrastructure.logging import get_module_logger
from infrastructure.persistence import (
    ConditionFailed,
    StateStore,
    WriteBatch,
    decode_record,
)
from modules.dispatch import keys
from modules.dispatch.models import (
    DeliveryOutcome,
    OutcomeState,
    QueueEntry,
    QueueState,
    utc_now,
)

logger = get_module_logger()


class DispatchQueue:
    """Work queue over the state store.

    Ordering: among available entries, each source is served in enqueue
    order and sources are served round-robin, so a busy source cannot starve
    a quiet one. An entry waiting on backoff does not block later entries of
    its source.

    Args:
        store: State store holding the ``queue:`` records
        lease_seconds: How long a lease hides an entry from other workers
    """

    def __init__(self, store: StateStore, lease_seconds: int = 120):
        self.store = store
        self.lease_seconds = lease_seconds

    @contextmanager
    def _batch(self, batch: Optional[WriteBatch]) -> Iterator[WriteBatch]:
        if batch is not None:
            yield batch
        else:
            with self.store.write_batch() as own:
                yield own

    def enqueue(self, entry: QueueEntry, batch: Optional[WriteBatch] = None) -> None:
        """Add an entry; with ``batch`` the write joins the caller's batch."""
        with self._batch(batch) as b:
            b.put(keys.queue_key(entry.entry_id), entry.model_dump_json())

    def get(self, entry_id: str) -> Optional[QueueEntry]:
        key = keys.queue_key(entry_id)
        return decode_record(key, self.store.get(key), QueueEntry)

    def entries(self) -> Iterator[Tuple[str, QueueEntry]]:
        """Iterate (stored JSON, entry) for every active entry in key order."""
        for key, raw in self.store.scan(keys.QUEUE_PREFIX):
            entry = decode_record(key, raw, QueueEntry)
            yield raw, entry

    def lease(self, worker_id: str, max_items: int) -> List[QueueEntry]:
        """Lease up to ``max_items`` available entries for ``worker_id``.

        Returns:
            Leased entries in the order they should be processed
        """
        if max_items < 1:
            return []

        now = utc_now()
        candidates: Dict[str, List[Tuple[str, QueueEntry]]] = {}
        for raw, entry in self.entries():
            if entry.is_available(now):
                candidates.setdefault(entry.source, []).append((raw, entry))

        if not candidates:
            return []

        for source_entries in candidates.values():
            source_entries.sort(key=lambda item: (item[1].enqueue_time, item[1].entry_id))
        rotation = sorted(
            candidates, key=lambda source: candidates[source][0][1].enqueue_time
        )

        leased: List[QueueEntry] = []
        while rotation and len(leased) < max_items:
            next_rotation = []
            for source in rotation:
                if len(leased) >= max_items:
                    break
                raw, entry = candidates[source].pop(0)
                claimed = self._claim(raw, entry, worker_id, now)
                if claimed is not None:
                    leased.append(claimed)
                if candidates[source]:
                    next_rotation.append(source)
            rotation = next_rotation

        if leased:
            logger.debug(
                "entries_leased", worker_id=worker_id, count=len(leased)
            )
        return leased

    def _claim(
        self, raw: str, entry: QueueEntry, worker_id: str, now: datetime
    ) -> Optional[QueueEntry]:
        if entry.lease_is_expired(now):
            logger.warning(
                "lease_expired",
                notification_id=entry.entry_id,
                previous_owner=entry.lease_owner,
                attempt_count=entry.attempt_count,
            )

        claimed = entry.model_copy(
            update={
                "state": QueueState.LEASED,
                "lease_owner": worker_id,
                "lease_expires_at": now + timedelta(seconds=self.lease_seconds),
            }
        )
        key = keys.queue_key(entry.entry_id)
        try:
            with self.store.write_batch() as batch:
                batch.expect(key, raw)
                batch.put(key, claimed.model_dump_json())
        except ConditionFailed:
            logger.debug(
                "lease_claim_lost", notification_id=entry.entry_id, worker_id=worker_id
            )
            return None
        return claimed

    def ack(self, entry_id: str, batch: Optional[WriteBatch] = None) -> bool:
        """Remove a delivered entry and record the delivered outcome.

        Returns:
            False if the entry no longer exists (already acknowledged)
        """
        entry = self.get(entry_id)
        if entry is None:
            logger.warning("ack_unknown_entry", notification_id=entry_id)
            return False

        outcome = DeliveryOutcome(
            notification_id=entry_id,
            state=OutcomeState.DELIVERED,
            attempts=entry.attempt_count,
            finished_at=utc_now(),
        )
        with self._batch(batch) as b:
            b.delete(keys.queue_key(entry_id))
            b.put(keys.outcome_key(entry_id), outcome.model_dump_json())
        return True

    def nack(
        self,
        entry_id: str,
        retry_after: float,
        error: Optional[str] = None,
        batch: Optional[WriteBatch] = None,
    ) -> bool:
        """Release a lease and make the entry available after ``retry_after`` seconds.

        Returns:
            False if the entry no longer exists
        """
        entry = self.get(entry_id)
        if entry is None:
            logger.warning("nack_unknown_entry", notification_id=entry_id)
            return False

        retrying = entry.model_copy(
            update={
                "state": QueueState.RETRYING,
                "next_retry_at": utc_now() + timedelta(seconds=max(retry_after, 0)),
                "lease_owner": None,
                "lease_expires_at": None,
                "last_error": error if error is not None else entry.last_error,
            }
        )
        with self._batch(batch) as b:
            b.put(keys.queue_key(entry_id), retrying.model_dump_json())
        return True

    def fail(
        self, entry_id: str, reason: str, batch: Optional[WriteBatch] = None
    ) -> bool:
        """Remove an entry that will never be delivered and record why.

        Returns:
            False if the entry no longer exists
        """
        entry = self.get(entry_id)
        if entry is None:
            logger.warning("fail_unknown_entry", notification_id=entry_id)
            return False

        outcome = DeliveryOutcome(
            notification_id=entry_id,
            state=OutcomeState.FAILED,
            reason=reason,
            attempts=entry.attempt_count,
            finished_at=utc_now(),
        )
        with self._batch(batch) as b:
            b.delete(keys.queue_key(entry_id))
            b.put(keys.outcome_key(entry_id), outcome.model_dump_json())
        return True

    def release(self, entry_id: str, batch: Optional[WriteBatch] = None) -> bool:
        """Drop any lease and make the entry available immediately."""
        entry = self.get(entry_id)
        if entry is None:
            return False

        released = entry.model_copy(
            update={
                "state": QueueState.PENDING
                if entry.attempt_count == 0
                else QueueState.RETRYING,
                "next_retry_at": utc_now(),
                "lease_owner": None,
                "lease_expires_at": None,
            }
        )
        with self._batch(batch) as b:
            b.put(keys.queue_key(entry_id), released.model_dump_json())
        return True

    def quarantine(self, raw: str, entry: QueueEntry) -> None:
        """Move an entry that has no Notification out of the active queue."""
        with self.store.write_batch() as batch:
            batch.delete(keys.queue_key(entry.entry_id))
            batch.put(keys.orphan_key(entry.entry_id), raw)

    def stats(self) -> Dict[str, int]:
        """Count active entries per state."""
        counts = {state.value: 0 for state in QueueState}
        now = utc_now()
        expired = 0
        for _, entry in self.entries():
            counts[entry.state.value] += 1
            if entry.lease_is_expired(now):
                expired += 1
        counts["total"] = sum(counts[state.value] for state in QueueState)
        counts["expired_leases"] = expired
        return counts
