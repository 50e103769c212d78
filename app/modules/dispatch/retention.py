"""Purging of terminal records and expired dedup fingerprints."""

from datetime import datetime, timedelta
from typing import Dict, Optional

from infrastructure.logging import get_module_logger
from infrastructure.persistence import ConditionFailed, StateStore, decode_record
from modules.dispatch import keys
from modules.dispatch.models import DedupRecord, DeliveryOutcome, utc_now

logger = get_module_logger()


class RetentionPolicy:
    """Deletes records that are no longer needed.

    - Notifications that reached a terminal state more than ``retention_days``
      ago are removed with their attempts and outcome.
    - Dedup fingerprints older than the dedup window are removed; they no
      longer suppress anything.

    Active (queued) notifications are never touched.
    """

    def __init__(
        self,
        store: StateStore,
        retention_days: int = 30,
        dedup_window_seconds: int = 86400,
        batch_size: int = 100,
    ):
        self.store = store
        self.retention = timedelta(days=retention_days)
        self.dedup_window = timedelta(seconds=dedup_window_seconds)
        self.batch_size = batch_size

    def purge(self, now: Optional[datetime] = None) -> Dict[str, int]:
        """Run one purge pass.

        Returns:
            Counts of purged notifications, attempts and dedup records
        """
        now = now or utc_now()
        stats = {"notifications": 0, "attempts": 0, "dedup": 0}

        terminal_cutoff = now - self.retention
        expired = []
        for key, raw in self.store.scan(keys.OUTCOME_PREFIX):
            outcome = decode_record(key, raw, DeliveryOutcome)
            if outcome.finished_at < terminal_cutoff and not self._is_active(
                outcome.notification_id
            ):
                expired.append(outcome.notification_id)

        for notification_id in expired:
            stats["attempts"] += self._purge_notification(notification_id)
            stats["notifications"] += 1

        dedup_cutoff = now - self.dedup_window
        stale = []
        for key, raw in self.store.scan(keys.DEDUP_PREFIX):
            record = decode_record(key, raw, DedupRecord)
            if record.first_seen < dedup_cutoff:
                stale.append((key, raw))

        for start in range(0, len(stale), self.batch_size):
            chunk = stale[start : start + self.batch_size]
            try:
                with self.store.write_batch() as batch:
                    for key, raw in chunk:
                        batch.expect(key, raw)
                        batch.delete(key)
                stats["dedup"] += len(chunk)
            except ConditionFailed:
                # a fingerprint was renewed concurrently; retry the chunk key by key
                stats["dedup"] += self._purge_dedup_individually(chunk)

        logger.info("retention_purge_complete", **stats)
        return stats

    def _is_active(self, notification_id: str) -> bool:
        return self.store.get(keys.queue_key(notification_id)) is not None

    def _purge_notification(self, notification_id: str) -> int:
        attempt_keys = [
            key for key, _ in self.store.scan(keys.attempts_prefix(notification_id))
        ]
        with self.store.write_batch() as batch:
            for key in attempt_keys:
                batch.delete(key)
            batch.delete(keys.notification_key(notification_id))
            batch.delete(keys.outcome_key(notification_id))
        return len(attempt_keys)

    def _purge_dedup_individually(self, chunk) -> int:
        purged = 0
        for key, raw in chunk:
            try:
                with self.store.write_batch() as batch:
                    batch.expect(key, raw)
                    batch.delete(key)
                purged += 1
            except ConditionFailed:
                logger.debug("dedup_record_renewed", key=key)
        return purged
