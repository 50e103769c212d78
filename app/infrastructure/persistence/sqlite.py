"""SQLite state store on the mounted volume.

One table ``kv(key TEXT PRIMARY KEY, value TEXT)`` in WAL mode. Each thread
gets its own connection; write batches run inside ``BEGIN IMMEDIATE``
transactions so preconditions and writes are evaluated under the database
write lock, which also serializes writers across processes.
"""

import os
import sqlite3
import threading
from contextlib import contextmanager
from typing import Iterator, List, Optional, Tuple

from infrastructure.logging import get_module_logger
from infrastructure.persistence.errors import (
    ConditionFailed,
    StoreError,
    StoreUnavailable,
)
from infrastructure.persistence.store import (
    PUT,
    BatchingMixin,
    WriteBatch,
    prefix_upper_bound,
)

logger = get_module_logger()

SCHEMA = """
CREATE TABLE IF NOT EXISTS kv (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
)
"""


class SQLiteStateStore(BatchingMixin):
    """SQLite implementation of StateStore.

    Args:
        path: Database file path; parent directories are created
        busy_timeout: Seconds to wait on a locked database before failing
        page_size: Rows fetched per scan page

    Raises:
        StoreUnavailable: If the file cannot be opened or fails the integrity check
    """

    def __init__(self, path: str, busy_timeout: float = 30.0, page_size: int = 200):
        self.path = path
        self._busy_timeout = busy_timeout
        self._page_size = page_size
        self._local = threading.local()
        self._connections: List[sqlite3.Connection] = []
        self._connections_lock = threading.Lock()
        self._closed = False

        directory = os.path.dirname(os.path.abspath(path))
        try:
            os.makedirs(directory, exist_ok=True)
        except OSError as e:
            raise StoreUnavailable(f"Cannot create data directory {directory}: {e}") from e

        self._initialize()

    def _initialize(self) -> None:
        with self._translate_errors("open"):
            conn = self._connection()
            conn.execute("PRAGMA journal_mode=WAL")
            result = conn.execute("PRAGMA quick_check").fetchone()
            if result is None or result[0] != "ok":
                detail = result[0] if result else "no result"
                raise StoreUnavailable(f"Integrity check failed for {self.path}: {detail}")
            conn.execute(SCHEMA)

        logger.info("state_store_opened", backend="sqlite", path=self.path)

    def _connection(self) -> sqlite3.Connection:
        if self._closed:
            raise StoreUnavailable("State store is closed")

        conn = getattr(self._local, "conn", None)
        if conn is None:
            conn = sqlite3.connect(
                self.path,
                timeout=self._busy_timeout,
                isolation_level=None,
                check_same_thread=False,
            )
            self._local.conn = conn
            with self._connections_lock:
                self._connections.append(conn)
        return conn

    @contextmanager
    def _translate_errors(self, operation: str):
        try:
            yield
        except StoreError:
            raise
        except sqlite3.Error as e:
            logger.error(
                "state_store_error",
                operation=operation,
                path=self.path,
                error=str(e),
            )
            raise StoreUnavailable(f"SQLite {operation} failed: {e}") from e

    def put(self, key: str, value: str) -> None:
        with self._translate_errors("put"):
            self._connection().execute(
                "INSERT OR REPLACE INTO kv (key, value) VALUES (?, ?)", (key, value)
            )

    def get(self, key: str) -> Optional[str]:
        with self._translate_errors("get"):
            row = (
                self._connection()
                .execute("SELECT value FROM kv WHERE key = ?", (key,))
                .fetchone()
            )
        return row[0] if row else None

    def delete(self, key: str) -> None:
        with self._translate_errors("delete"):
            self._connection().execute("DELETE FROM kv WHERE key = ?", (key,))

    def scan(self, prefix: str) -> Iterator[Tuple[str, str]]:
        """Iterate keys with ``prefix`` in key order using keyset paging.

        Each page is a separate query, so no read transaction is held open
        while the caller processes rows.
        """
        upper = prefix_upper_bound(prefix)
        last_key: Optional[str] = None
        while True:
            clauses = []
            params: list = []
            if last_key is None:
                clauses.append("key >= ?")
                params.append(prefix)
            else:
                clauses.append("key > ?")
                params.append(last_key)
            if upper is not None:
                clauses.append("key < ?")
                params.append(upper)
            params.append(self._page_size)

            with self._translate_errors("scan"):
                rows = (
                    self._connection()
                    .execute(
                        f"SELECT key, value FROM kv WHERE {' AND '.join(clauses)} "
                        "ORDER BY key LIMIT ?",
                        params,
                    )
                    .fetchall()
                )
            if not rows:
                return
            for key, value in rows:
                yield key, value
            last_key = rows[-1][0]
            if len(rows) < self._page_size:
                return

    def commit(self, batch: WriteBatch) -> None:
        with self._translate_errors("commit"):
            conn = self._connection()
            conn.execute("BEGIN IMMEDIATE")
            try:
                for key, expected in batch.expectations:
                    row = conn.execute(
                        "SELECT value FROM kv WHERE key = ?", (key,)
                    ).fetchone()
                    actual = row[0] if row else None
                    if actual != expected:
                        raise ConditionFailed(key, expected, actual)
                for op in batch.operations:
                    if op.kind == PUT:
                        conn.execute(
                            "INSERT OR REPLACE INTO kv (key, value) VALUES (?, ?)",
                            (op.key, op.value),
                        )
                    else:
                        conn.execute("DELETE FROM kv WHERE key = ?", (op.key,))
                conn.execute("COMMIT")
            except BaseException:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        with self._connections_lock:
            connections, self._connections = self._connections, []
        for conn in connections:
            try:
                conn.close()
            except sqlite3.Error as e:
                logger.warning("state_store_close_failed", error=str(e))
        logger.info("state_store_closed", backend="sqlite", path=self.path)
