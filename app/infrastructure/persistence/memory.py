"""In-memory state store for development and tests."""

import bisect
import threading
from typing import Dict, Iterator, Optional, Tuple

from infrastructure.logging import get_module_logger
from infrastructure.persistence.errors import ConditionFailed, StoreUnavailable
from infrastructure.persistence.store import PUT, BatchingMixin, WriteBatch

logger = get_module_logger()


class InMemoryStateStore(BatchingMixin):
    """Thread-safe in-memory implementation of StateStore.

    Same semantics as the SQLite store, without durability. Scans are paged:
    each page is read under the lock, so concurrent writes may appear in
    later pages but a page is never torn.
    """

    def __init__(self, page_size: int = 200):
        self._data: Dict[str, str] = {}
        self._lock = threading.RLock()
        self._page_size = page_size
        self._closed = False

    def _check_open(self) -> None:
        if self._closed:
            raise StoreUnavailable("State store is closed")

    def put(self, key: str, value: str) -> None:
        with self._lock:
            self._check_open()
            self._data[key] = value

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            self._check_open()
            return self._data.get(key)

    def delete(self, key: str) -> None:
        with self._lock:
            self._check_open()
            self._data.pop(key, None)

    def scan(self, prefix: str) -> Iterator[Tuple[str, str]]:
        last_key: Optional[str] = None
        while True:
            with self._lock:
                self._check_open()
                keys = sorted(self._data)
                if last_key is None:
                    start = bisect.bisect_left(keys, prefix)
                else:
                    start = bisect.bisect_right(keys, last_key)
                page = []
                for key in keys[start:]:
                    if not key.startswith(prefix) or len(page) >= self._page_size:
                        break
                    page.append((key, self._data[key]))
            if not page:
                return
            yield from page
            last_key = page[-1][0]
            if len(page) < self._page_size:
                return

    def commit(self, batch: WriteBatch) -> None:
        with self._lock:
            self._check_open()
            for key, expected in batch.expectations:
                actual = self._data.get(key)
                if actual != expected:
                    raise ConditionFailed(key, expected, actual)
            for op in batch.operations:
                if op.kind == PUT:
                    self._data[op.key] = op.value
                else:
                    self._data.pop(op.key, None)

    def close(self) -> None:
        with self._lock:
            self._closed = True
        logger.info("state_store_closed", backend="memory")
