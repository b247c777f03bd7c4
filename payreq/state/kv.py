"""
payreq.state.kv — backend-agnostic key/value store interface.

Keys are strings from the contract's namespace (``Balance:0x…``,
``PaymentRequest:7``, ``Owner`` …); values are raw bytes produced by
`payreq.state.codec`. Backends encode keys as UTF-8 where they need bytes.

Batching
--------
`store.batch()` returns a context manager. Everything put/deleted inside it is
applied atomically when the block exits cleanly, and discarded otherwise:

>>> with store.batch() as b:
...     b.put("Balance:0x01", b"\\x00" * 8)
...     b.delete("Allowance:0x01:0x02")

`apply_writes(store, writes)` applies a ``{key: bytes | None}`` write-set
(``None`` = delete) in one batch; it is what the Host uses at commit.

Backends: `MemoryKV` (here) and `SQLiteKV` (`payreq.state.sqlite`).
`open_store(uri)` picks one from a ``memory://`` or ``sqlite:///path`` URI.
"""

from __future__ import annotations

import threading
from typing import (Dict, Iterator, Mapping, Optional, Protocol, Tuple,
                    runtime_checkable)

from ..errors import StoreError


@runtime_checkable
class Batch(Protocol):
    def put(self, key: str, value: bytes) -> None: ...

    def delete(self, key: str) -> None: ...

    def __enter__(self) -> "Batch": ...

    def __exit__(self, exc_type, exc, tb) -> Optional[bool]: ...


@runtime_checkable
class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[bytes]:
        """Return the value or None if absent."""

    def has(self, key: str) -> bool: ...

    def iter_prefix(self, prefix: str) -> Iterator[Tuple[str, bytes]]:
        """Yield (key, value) for keys starting with `prefix`, in key order."""

    def batch(self) -> Batch: ...

    def close(self) -> None: ...


def apply_writes(store: KeyValueStore, writes: Mapping[str, Optional[bytes]]) -> int:
    """Apply a staged write-set atomically. Returns the number of keys touched."""
    if not writes:
        return 0
    with store.batch() as b:
        for k, v in writes.items():
            if v is None:
                b.delete(k)
            else:
                b.put(k, v)
    return len(writes)


# ---------------------------------------------------------------------------
# In-memory backend
# ---------------------------------------------------------------------------


class _MemoryBatch:
    __slots__ = ("_kv", "_staged", "_open")

    def __init__(self, kv: "MemoryKV") -> None:
        self._kv = kv
        self._staged: Dict[str, Optional[bytes]] = {}
        self._open = False

    def __enter__(self) -> "_MemoryBatch":
        if self._open:
            raise RuntimeError("batch already open (nested batches not supported)")
        self._open = True
        return self

    def put(self, key: str, value: bytes) -> None:
        if not self._open:
            raise RuntimeError("batch not open")
        if not isinstance(value, (bytes, bytearray)):
            raise StoreError("value must be bytes", key=key)
        self._staged[key] = bytes(value)

    def delete(self, key: str) -> None:
        if not self._open:
            raise RuntimeError("batch not open")
        self._staged[key] = None

    def __exit__(self, exc_type, exc, tb) -> Optional[bool]:
        try:
            if exc_type is None:
                self._kv._apply(self._staged)
        finally:
            self._staged = {}
            self._open = False
        return None


class MemoryKV:
    """Thread-safe dict-backed store for tests and ``memory://`` runs."""

    def __init__(self, initial: Optional[Mapping[str, bytes]] = None) -> None:
        self._lock = threading.RLock()
        self._data: Dict[str, bytes] = dict(initial or {})

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            return self._data.get(key)

    def has(self, key: str) -> bool:
        with self._lock:
            return key in self._data

    def iter_prefix(self, prefix: str) -> Iterator[Tuple[str, bytes]]:
        with self._lock:
            items = sorted((k, v) for k, v in self._data.items() if k.startswith(prefix))
        yield from items

    def batch(self) -> _MemoryBatch:
        return _MemoryBatch(self)

    def _apply(self, staged: Mapping[str, Optional[bytes]]) -> None:
        with self._lock:
            for k, v in staged.items():
                if v is None:
                    self._data.pop(k, None)
                else:
                    self._data[k] = v

    def snapshot(self) -> Dict[str, bytes]:
        """Copy of the full contents (tests use it for "state untouched" checks)."""
        with self._lock:
            return dict(self._data)

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def close(self) -> None:
        return


def open_store(uri: str) -> KeyValueStore:
    """
    Open a store from a URI:
      - ``memory://``             → fresh MemoryKV
      - ``sqlite:///abs/path.db`` → SQLiteKV (file created if missing)
      - ``sqlite://rel/path.db``  → SQLiteKV relative to the working directory
    """
    if uri.startswith("memory://"):
        return MemoryKV()
    if uri.startswith("sqlite://"):
        from .sqlite import open_sqlite_kv

        return open_sqlite_kv(uri)
    raise StoreError(f"unsupported store uri: {uri!r}")


__all__ = [
    "Batch",
    "KeyValueStore",
    "MemoryKV",
    "apply_writes",
    "open_store",
]
