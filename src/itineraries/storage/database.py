"""Thread-safe access to the primary SQLite connection.

All stores share one :class:`Database`.  Writes run inside ``BEGIN
IMMEDIATE`` so the write lock is taken up front; multi-statement reads run
inside a deferred transaction so they observe a single consistent snapshot.
"""

from __future__ import annotations

import sqlite3
import threading
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any


def utc_now() -> str:
    """Return the current UTC time as an ISO 8601 string with microseconds."""
    return datetime.now(tz=UTC).isoformat(timespec="microseconds")


class Database:
    """Serialize access to a shared sqlite3 connection.

    Transactions nest: a ``transaction()`` or ``snapshot()`` opened while the
    same thread already holds one joins it, so a caller can compose several
    store writes into one atomic unit.  The outermost block commits, or rolls
    back everything if any inner block raised.

    Args:
        conn: A connection opened with ``isolation_level=None`` (see
              :func:`itineraries.storage.schema.connect`).
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._lock = threading.RLock()
        self._depth = 0

    @property
    def connection(self) -> sqlite3.Connection:
        return self._conn

    @contextmanager
    def _joined(self) -> Iterator[sqlite3.Connection]:
        self._depth += 1
        try:
            yield self._conn
        finally:
            self._depth -= 1

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run the block as one write transaction, rolling back on error."""
        with self._lock:
            if self._depth:
                with self._joined() as conn:
                    yield conn
                return

            self._conn.execute("BEGIN IMMEDIATE")
            try:
                with self._joined() as conn:
                    yield conn
            except BaseException:
                self._conn.execute("ROLLBACK")
                raise
            self._conn.execute("COMMIT")

    @contextmanager
    def snapshot(self) -> Iterator[sqlite3.Connection]:
        """Run the block as one read transaction over a consistent snapshot."""
        with self._lock:
            if self._depth:
                with self._joined() as conn:
                    yield conn
                return

            self._conn.execute("BEGIN")
            try:
                with self._joined() as conn:
                    yield conn
            finally:
                self._conn.execute("COMMIT")

    def fetch_one(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Row | None:
        with self._lock:
            row: sqlite3.Row | None = self._conn.execute(sql, params).fetchone()
            return row

    def fetch_all(self, sql: str, params: Sequence[Any] = ()) -> list[sqlite3.Row]:
        with self._lock:
            return list(self._conn.execute(sql, params).fetchall())

    def ping(self) -> None:
        """Execute a trivial query; raises if the connection is unusable."""
        self.fetch_one("SELECT 1")

    def close(self) -> None:
        with self._lock:
            self._conn.close()
