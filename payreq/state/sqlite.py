"""
payreq.state.sqlite — SQLite-backed key/value store.

- Table schema: kv(k BLOB PRIMARY KEY, v BLOB NOT NULL); keys are the UTF-8
  bytes of the contract's string keys.
- Batches run inside one ``BEGIN IMMEDIATE`` transaction and roll back on any
  exception, so a committed invocation is all-or-nothing on disk too.
- Prefix scans use a bounded range [prefix, prefix_hi) plus a substr guard.

Pragmas: WAL journal, NORMAL sync.
"""

from __future__ import annotations

import logging
import os
import sqlite3
import threading
from typing import Iterator, Optional, Tuple

from ..errors import StoreError

log = logging.getLogger(__name__)

DEFAULT_PRAGMAS = {
    "journal_mode": "WAL",
    "synchronous": "NORMAL",
    "temp_store": "MEMORY",
}


def _migrate(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS kv (
            k BLOB PRIMARY KEY,
            v BLOB NOT NULL
        )
        """
    )


def _prefix_hi(prefix: bytes) -> Optional[bytes]:
    """
    Smallest byte string strictly greater than every key starting with
    `prefix`, or None when no finite bound exists (empty or all 0xFF).
    """
    if not prefix:
        return None
    p = bytearray(prefix)
    for i in range(len(p) - 1, -1, -1):
        if p[i] != 0xFF:
            p[i] += 1
            del p[i + 1 :]
            return bytes(p)
    return None


def path_from_uri(uri: str) -> str:
    """
    ``sqlite:///abs/state.db`` → ``/abs/state.db``;
    ``sqlite://state.db`` → ``state.db``; ``sqlite://:memory:`` → ``:memory:``.
    Plain paths are returned unchanged.
    """
    if not uri.startswith("sqlite://"):
        return uri
    rest = uri[len("sqlite://"):]
    if not rest:
        raise StoreError(f"sqlite uri has no path: {uri!r}")
    return rest


class SQLiteBatch:
    __slots__ = ("_kv", "_open")

    def __init__(self, kv: "SQLiteKV") -> None:
        self._kv = kv
        self._open = False

    def __enter__(self) -> "SQLiteBatch":
        if self._open:
            raise RuntimeError("batch already open (nested batches not supported)")
        self._kv._lock.acquire()
        try:
            self._kv._conn.execute("BEGIN IMMEDIATE")
        except sqlite3.Error as e:
            self._kv._lock.release()
            raise StoreError(f"sqlite begin failed: {e}") from e
        self._open = True
        return self

    def put(self, key: str, value: bytes) -> None:
        if not self._open:
            raise RuntimeError("batch not open")
        self._kv._conn.execute(
            "INSERT INTO kv(k, v) VALUES(?, ?) ON CONFLICT(k) DO UPDATE SET v=excluded.v",
            (key.encode("utf-8"), bytes(value)),
        )

    def delete(self, key: str) -> None:
        if not self._open:
            raise RuntimeError("batch not open")
        self._kv._conn.execute("DELETE FROM kv WHERE k = ?", (key.encode("utf-8"),))

    def __exit__(self, exc_type, exc, tb) -> Optional[bool]:
        conn = self._kv._conn
        try:
            if exc_type is None:
                try:
                    conn.execute("COMMIT")
                except sqlite3.Error as e:
                    conn.execute("ROLLBACK")
                    raise StoreError(f"sqlite commit failed: {e}") from e
            else:
                conn.execute("ROLLBACK")
        finally:
            self._open = False
            self._kv._lock.release()
        return None


class SQLiteKV:
    """
    Durable store for ``sqlite:///…`` URIs. One connection, serialized by an
    internal lock; reads see only committed data.
    """

    def __init__(self, path: str, *, pragmas: Optional[dict] = None) -> None:
        self._path = path
        self._lock = threading.RLock()
        if path != ":memory:":
            os.makedirs(os.path.dirname(os.path.abspath(path)) or ".", exist_ok=True)
        try:
            self._conn = sqlite3.connect(path, isolation_level=None, check_same_thread=False)
            p = dict(DEFAULT_PRAGMAS)
            p.update(pragmas or {})
            for name, val in p.items():
                self._conn.execute(f"PRAGMA {name}={val}")
            _migrate(self._conn)
        except sqlite3.Error as e:
            raise StoreError(f"cannot open sqlite store at {path!r}: {e}") from e
        log.debug("sqlite store opened", extra={"path": path})

    @property
    def path(self) -> str:
        return self._path

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            row = self._conn.execute("SELECT v FROM kv WHERE k = ?", (key.encode("utf-8"),)).fetchone()
        return bytes(row[0]) if row is not None else None

    def has(self, key: str) -> bool:
        with self._lock:
            row = self._conn.execute(
                "SELECT 1 FROM kv WHERE k = ? LIMIT 1", (key.encode("utf-8"),)
            ).fetchone()
        return row is not None

    def iter_prefix(self, prefix: str) -> Iterator[Tuple[str, bytes]]:
        pb = prefix.encode("utf-8")
        hi = _prefix_hi(pb)
        if hi is not None:
            sql = "SELECT k, v FROM kv WHERE k >= ? AND k < ? AND substr(k,1,?) = ? ORDER BY k"
            args: tuple = (pb, hi, len(pb), pb)
        else:
            sql = "SELECT k, v FROM kv WHERE substr(k,1,?) = ? ORDER BY k"
            args = (len(pb), pb)
        with self._lock:
            rows = self._conn.execute(sql, args).fetchall()
        for k, v in rows:
            yield bytes(k).decode("utf-8"), bytes(v)

    def batch(self) -> SQLiteBatch:
        return SQLiteBatch(self)

    def close(self) -> None:
        with self._lock:
            self._conn.close()


def open_sqlite_kv(uri_or_path: str, *, pragmas: Optional[dict] = None) -> SQLiteKV:
    """Open (or create) a SQLite store from a ``sqlite://`` URI or a plain path."""
    return SQLiteKV(path_from_uri(uri_or_path), pragmas=pragmas)


__all__ = ["SQLiteKV", "SQLiteBatch", "open_sqlite_kv", "path_from_uri"]
