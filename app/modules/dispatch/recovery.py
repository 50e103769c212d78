"""Startup reconciliation of queue state left by a previous process."""

from typing import Dict, List, Optional

from infrastructure.logging import get_module_logger
from infrastructure.persistence import StateStore, decode_record
from infrastructure.resilience.retry import RetryConfig
from modules.dispatch import keys
from modules.dispatch.escalation import Escalation, escalate
from modules.dispatch.models import (
    AttemptStatus,
    DeliveryAttempt,
    DeliveryOutcome,
    QueueEntry,
    QueueState,
    utc_now,
)
from modules.dispatch.queue import DispatchQueue

logger = get_module_logger()

INTERRUPTED = "interrupted"


class RecoveryScan:
    """Reconciles every queue entry before workers start.

    For each entry:
    - no Notification: quarantined under ``orphan:<id>`` and escalated
    - DeliveryOutcome present: the interrupted ack is finished
    - pending DeliveryAttempt: marked failed as interrupted; the entry fails
      if it has no attempts left, otherwise it is available immediately
    - leased: the lease is released

    Must run while no worker is active.
    """

    def __init__(
        self,
        store: StateStore,
        queue: DispatchQueue,
        escalation: Escalation,
        config: Optional[RetryConfig] = None,
    ):
        self.store = store
        self.queue = queue
        self.escalation = escalation
        self.config = config or RetryConfig()

    def run(self) -> Dict[str, int]:
        """Scan all queue entries.

        Returns:
            Counts of scanned, requeued, completed, failed and orphaned entries

        Raises:
            StoreUnavailable: The store failed or holds corrupted records
        """
        stats = {"scanned": 0, "requeued": 0, "completed": 0, "failed": 0, "orphaned": 0}

        # Materialize first: every branch below rewrites queue records.
        entries = list(self.queue.entries())
        for raw, entry in entries:
            stats["scanned"] += 1
            action = self._reconcile(raw, entry)
            if action is not None:
                stats[action] += 1

        logger.info("recovery_scan_complete", **stats)
        return stats

    def _reconcile(self, raw: str, entry: QueueEntry) -> Optional[str]:
        entry_id = entry.entry_id

        if self.store.get(keys.notification_key(entry_id)) is None:
            logger.error(
                "orphaned_queue_entry",
                notification_id=entry_id,
                source=entry.source,
            )
            self.queue.quarantine(raw, entry)
            escalate(self.escalation, entry_id, "orphaned queue entry")
            return "orphaned"

        outcome_key = keys.outcome_key(entry_id)
        outcome = decode_record(outcome_key, self.store.get(outcome_key), DeliveryOutcome)
        if outcome is not None:
            self.store.delete(keys.queue_key(entry_id))
            logger.info(
                "recovery_completed_ack",
                notification_id=entry_id,
                state=outcome.state.value,
            )
            return "completed"

        interrupted = self._pending_attempts(entry_id)
        if interrupted:
            return self._recover_interrupted(entry, interrupted)

        if entry.state == QueueState.LEASED:
            self.queue.release(entry_id)
            logger.info(
                "recovery_lease_released",
                notification_id=entry_id,
                previous_owner=entry.lease_owner,
            )
            return "requeued"

        # pending/retrying entries are already available when due
        return None

    def _pending_attempts(self, notification_id: str) -> List[DeliveryAttempt]:
        pending = []
        for key, raw in self.store.scan(keys.attempts_prefix(notification_id)):
            attempt = decode_record(key, raw, DeliveryAttempt)
            if attempt.status == AttemptStatus.PENDING:
                pending.append(attempt)
        return pending

    def _recover_interrupted(
        self, entry: QueueEntry, interrupted: List[DeliveryAttempt]
    ) -> str:
        entry_id = entry.entry_id
        now = utc_now()
        exhausted = entry.attempt_count >= self.config.max_attempts

        with self.store.write_batch() as batch:
            for attempt in interrupted:
                failed = attempt.model_copy(
                    update={
                        "status": AttemptStatus.FAILED,
                        "completed_at": now,
                        "error_detail": INTERRUPTED,
                        "error_code": INTERRUPTED,
                        "retryable": True,
                    }
                )
                batch.put(
                    keys.attempt_key(entry_id, attempt.attempt_number),
                    failed.model_dump_json(),
                )
            if exhausted:
                reason = (
                    f"max attempts ({self.config.max_attempts}) exhausted: "
                    "delivery interrupted"
                )
                self.queue.fail(entry_id, reason, batch=batch)
            else:
                self.queue.release(entry_id, batch=batch)

        logger.warning(
            "recovery_interrupted_attempt",
            notification_id=entry_id,
            attempt_count=entry.attempt_count,
            exhausted=exhausted,
        )
        if exhausted:
            escalate(self.escalation, entry_id, reason)
            return "failed"
        return "requeued"
