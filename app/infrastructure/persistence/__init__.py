"""Durable state store.

Key-value storage for all pipeline state, with atomic conditional write
batches. Backends: SQLite on the mounted volume (production) and in-memory
(development, tests).

Usage:
    from infrastructure.persistence import create_state_store

    store = create_state_store(settings.store)
    with store.write_batch() as batch:
        batch.expect("dedup:abc", None)
        batch.put("dedup:abc", record_json)
"""

from infrastructure.persistence.errors import (
    ConditionFailed,
    RecordCorrupted,
    StoreError,
    StoreUnavailable,
)
from infrastructure.persistence.factory import create_state_store
from infrastructure.persistence.memory import InMemoryStateStore
from infrastructure.persistence.records import decode_record
from infrastructure.persistence.sqlite import SQLiteStateStore
from infrastructure.persistence.store import StateStore, WriteBatch

__all__ = [
    "ConditionFailed",
    "InMemoryStateStore",
    "RecordCorrupted",
    "SQLiteStateStore",
    "StateStore",
    "StoreError",
    "StoreUnavailable",
    "WriteBatch",
    "create_state_store",
    "decode_record",
]
