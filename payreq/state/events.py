"""
payreq.state.events — pluggable event sinks.

The Host delivers events here only after an invocation's writes are
committed, in emission order, each tagged with the invocation id and its
0-based `log_index` inside that invocation. Three backends ship:

- InMemoryEventSink: fast, test/dev friendly; keeps all records in RAM.
- JsonlEventSink: append-only JSONL file; durable and simple to operate.
- NullEventSink: drops everything.

Filtering
---------
`get_logs(name=..., where={...})` matches on the event name and on *indexed*
fields only (Transfer.from/to, Approval.owner/spender, RequestChanged.id,
ServiceFeeChanged.owner). A `where` value may be a single value (exact match)
or a list/tuple/set of candidates (OR). Address values may be bytes or hex.
Filtering on a non-indexed field raises ValueError.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from dataclasses import dataclass
from typing import (Any, Dict, Iterable, List, Mapping, Optional, Protocol,
                    runtime_checkable)

from ..types.address import to_address
from ..types.events import ADDRESS, SCHEMAS, Event, event_from_dict

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class EventRecord:
    """An event together with where it was delivered from."""

    invocation_id: str
    log_index: int
    event: Event

    @property
    def name(self) -> str:
        return self.event.name

    def to_dict(self) -> Dict[str, Any]:
        d = self.event.to_dict()
        return {"invocation_id": self.invocation_id, "log_index": self.log_index, **d}

    @classmethod
    def from_dict(cls, obj: Mapping[str, Any]) -> "EventRecord":
        return cls(
            invocation_id=str(obj["invocation_id"]),
            log_index=int(obj["log_index"]),
            event=event_from_dict(obj),
        )


Where = Optional[Mapping[str, Any]]


@runtime_checkable
class EventSink(Protocol):
    def append(self, event: Event, *, invocation_id: str, log_index: int) -> EventRecord:
        """Append a single event. Returns the stored record."""

    def get_logs(
        self,
        *,
        name: Optional[str] = None,
        where: Where = None,
        limit: Optional[int] = None,
    ) -> Iterable[EventRecord]:
        """Iterate matching records in delivery order."""

    def flush(self) -> None: ...

    def close(self) -> None: ...


# =============================================================================
# Common filter logic
# =============================================================================


def _normalize_where(name: Optional[str], where: Where) -> Dict[str, List[Any]]:
    if not where:
        return {}
    indexed: Dict[str, str] = {}
    schemas = [SCHEMAS[name]] if name in SCHEMAS else list(SCHEMAS.values())
    for s in schemas:
        for f in s.fields:
            if f.indexed:
                indexed[f.name] = f.kind
    out: Dict[str, List[Any]] = {}
    for k, v in where.items():
        if k not in indexed:
            raise ValueError(f"cannot filter on non-indexed field {k!r}")
        cands = list(v) if isinstance(v, (list, tuple, set, frozenset)) else [v]
        if indexed[k] == ADDRESS:
            cands = [to_address(c, arg=k) for c in cands]
        out[k] = cands
    return out


def _record_matches(rec: EventRecord, name: Optional[str], where: Dict[str, List[Any]]) -> bool:
    if name is not None and rec.name != name:
        return False
    if not where:
        return True
    idx = rec.event.indexed()
    for k, cands in where.items():
        if k not in idx or idx[k] not in cands:
            return False
    return True


def _limited(it: Iterable[EventRecord], limit: Optional[int]) -> Iterable[EventRecord]:
    n = 0
    for rec in it:
        if limit is not None and n >= limit:
            return
        yield rec
        n += 1


# =============================================================================
# In-memory sink
# =============================================================================


class InMemoryEventSink:
    """Thread-safe, RAM-only sink. Suitable for tests and local runs."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._records: List[EventRecord] = []

    def append(self, event: Event, *, invocation_id: str, log_index: int) -> EventRecord:
        rec = EventRecord(invocation_id=invocation_id, log_index=log_index, event=event)
        with self._lock:
            self._records.append(rec)
        return rec

    def get_logs(
        self,
        *,
        name: Optional[str] = None,
        where: Where = None,
        limit: Optional[int] = None,
    ) -> List[EventRecord]:
        w = _normalize_where(name, where)
        with self._lock:
            snapshot = list(self._records)
        return list(_limited((r for r in snapshot if _record_matches(r, name, w)), limit))

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def flush(self) -> None:
        return

    def close(self) -> None:
        with self._lock:
            self._records.clear()


# =============================================================================
# JSONL sink (durable)
# =============================================================================


class JsonlEventSink:
    """
    Append-only JSONL sink; one record per line:

        {"invocation_id": "…", "log_index": 0, "name": "Transfer",
         "fields": {"from": "0x…", "to": "0x…", "amount": 10}}

    `flush()` fsyncs the file descriptor.
    """

    def __init__(self, path: str) -> None:
        self._path = path
        os.makedirs(os.path.dirname(os.path.abspath(path)) or ".", exist_ok=True)
        self._fh = open(path, "a+", encoding="utf-8", buffering=1)
        self._lock = threading.RLock()

    @property
    def path(self) -> str:
        return self._path

    def append(self, event: Event, *, invocation_id: str, log_index: int) -> EventRecord:
        rec = EventRecord(invocation_id=invocation_id, log_index=log_index, event=event)
        line = json.dumps(rec.to_dict(), separators=(",", ":"))
        with self._lock:
            self._fh.write(line + "\n")
        return rec

    def get_logs(
        self,
        *,
        name: Optional[str] = None,
        where: Where = None,
        limit: Optional[int] = None,
    ) -> List[EventRecord]:
        w = _normalize_where(name, where)
        with self._lock:
            self._fh.flush()
            self._fh.seek(0)
            lines = self._fh.readlines()
        out: List[EventRecord] = []
        for line in lines:
            if not line.strip():
                continue
            try:
                rec = EventRecord.from_dict(json.loads(line))
            except (ValueError, KeyError, TypeError) as e:
                log.warning("skipping malformed event line: %s (%r)", line[:120], e)
                continue
            if _record_matches(rec, name, w):
                out.append(rec)
                if limit is not None and len(out) >= limit:
                    break
        return out

    def flush(self) -> None:
        with self._lock:
            self._fh.flush()
            os.fsync(self._fh.fileno())

    def close(self) -> None:
        with self._lock:
            if not self._fh.closed:
                self._fh.flush()
                self._fh.close()


# =============================================================================
# Null sink
# =============================================================================


class NullEventSink:
    """A sink that drops everything."""

    def append(self, event: Event, *, invocation_id: str, log_index: int) -> EventRecord:
        return EventRecord(invocation_id=invocation_id, log_index=log_index, event=event)

    def get_logs(
        self,
        *,
        name: Optional[str] = None,
        where: Where = None,
        limit: Optional[int] = None,
    ) -> List[EventRecord]:
        return []

    def flush(self) -> None:
        return

    def close(self) -> None:
        return


def open_sink(path: Optional[str]) -> EventSink:
    """JSONL sink at `path`, or an in-memory sink when `path` is empty."""
    if path:
        return JsonlEventSink(path)
    return InMemoryEventSink()


__all__ = [
    "EventRecord",
    "EventSink",
    "InMemoryEventSink",
    "JsonlEventSink",
    "NullEventSink",
    "open_sink",
]
