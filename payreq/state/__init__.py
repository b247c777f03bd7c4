"""
payreq.state — persistence for the contract.

Submodules
----------
- kv      : KeyValueStore protocol, MemoryKV, `open_store(uri)`
- sqlite  : SQLiteKV (durable, one BEGIN IMMEDIATE transaction per batch)
- codec   : key namespace and value encodings
- journal : staged write-set with nested checkpoints
- events  : EventSink protocol and in-memory / JSONL / null backends
"""

from __future__ import annotations

from .events import (EventRecord, EventSink, InMemoryEventSink,
                     JsonlEventSink, NullEventSink, open_sink)
from .journal import Journal
from .kv import KeyValueStore, MemoryKV, apply_writes, open_store

__all__ = [
    "KeyValueStore",
    "MemoryKV",
    "apply_writes",
    "open_store",
    "Journal",
    "EventRecord",
    "EventSink",
    "InMemoryEventSink",
    "JsonlEventSink",
    "NullEventSink",
    "open_sink",
]
