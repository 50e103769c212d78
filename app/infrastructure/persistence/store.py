"""Key-value state store interface.

All durable state of the dispatch pipeline lives in a single key-value store.
Keys are namespaced strings (``notif:<id>``, ``queue:<id>``, ...) and values
are JSON text. Multi-key updates go through write batches, which are applied
all-or-nothing and may carry preconditions (compare-and-set).

Usage:
    with store.write_batch() as batch:
        batch.expect("dedup:abc", None)          # must not exist
        batch.put("dedup:abc", record_json)
        batch.put("queue:n1", entry_json)
    # committed here; an exception inside the block discards the batch
"""

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, List, Optional, Protocol, Tuple

PUT = "put"
DELETE = "delete"


@dataclass(frozen=True)
class BatchOperation:
    kind: str
    key: str
    value: Optional[str] = None


class WriteBatch:
    """Ordered puts and deletes plus their preconditions.

    Operations are applied in insertion order when the batch commits. A
    precondition ``expect(key, value)`` holds when the stored value equals
    ``value`` exactly at commit time; ``expect(key, None)`` requires the key
    to be absent.
    """

    def __init__(self):
        self.operations: List[BatchOperation] = []
        self.expectations: List[Tuple[str, Optional[str]]] = []

    def put(self, key: str, value: str) -> "WriteBatch":
        self.operations.append(BatchOperation(PUT, key, value))
        return self

    def delete(self, key: str) -> "WriteBatch":
        self.operations.append(BatchOperation(DELETE, key))
        return self

    def expect(self, key: str, value: Optional[str]) -> "WriteBatch":
        self.expectations.append((key, value))
        return self

    def __len__(self) -> int:
        return len(self.operations)


class StateStore(Protocol):
    """Storage interface for pipeline state.

    Implementations must apply write batches atomically and evaluate
    preconditions inside the same critical section as the writes.

    Methods:
        put: Store a value under a key
        get: Return the value for a key, or None when the key is absent
        delete: Remove a key (no-op when absent)
        scan: Lazily iterate (key, value) pairs with a prefix, in key order
        write_batch: Context manager yielding a batch committed on exit
        commit: Apply a batch atomically
        close: Release resources; further use raises StoreUnavailable
    """

    def put(self, key: str, value: str) -> None: ...

    def get(self, key: str) -> Optional[str]: ...

    def delete(self, key: str) -> None: ...

    def scan(self, prefix: str) -> Iterator[Tuple[str, str]]: ...

    def write_batch(self): ...

    def commit(self, batch: WriteBatch) -> None: ...

    def close(self) -> None: ...


class BatchingMixin:
    """Provides ``write_batch()`` on top of a backend's ``commit()``."""

    @contextmanager
    def write_batch(self) -> Iterator[WriteBatch]:
        """Yield a batch committed when the block exits normally.

        Raises:
            ConditionFailed: If a precondition does not hold at commit
            StoreUnavailable: If the backend cannot apply the batch
        """
        batch = WriteBatch()
        yield batch
        if batch.operations or batch.expectations:
            self.commit(batch)

    def commit(self, batch: WriteBatch) -> None:
        raise NotImplementedError


def prefix_upper_bound(prefix: str) -> Optional[str]:
    """Smallest string greater than every string starting with ``prefix``."""
    if not prefix:
        return None
    return prefix[:-1] + chr(ord(prefix[-1]) + 1)
