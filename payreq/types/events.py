"""
payreq.types.events — event schemas and validated event values.

Every event the contract can raise is declared here as an `EventSchema`: a
name plus an ordered list of fields, each with a value kind and an `indexed`
flag. Indexed fields are the ones sinks can filter on.

    Transfer          from*, to*, amount
    Approval          owner*, spender*, old_amount, amount
    RequestChanged    id*, creator_address, recipient_address, amount,
                      description, status, expiry
    ServiceFeeChanged owner*, old_fee, new_fee

`make_event(SCHEMA, **values)` checks the exact field set and each value's
kind, and returns an immutable `Event`.

Helpers
-------
* `Event.to_dict()` / `event_from_dict()` convert to/from JSON-friendly forms
  (hex addresses, integer status codes).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Mapping, Tuple

from ..runtime.safe_math import is_u32, is_u64
from .address import address_hex, to_address
from .status import RequestStatus

# Field kinds
ADDRESS = "address"
U64 = "u64"
U32 = "u32"
STR = "str"
STATUS = "status"


@dataclass(frozen=True)
class FieldSpec:
    name: str
    kind: str
    indexed: bool = False


@dataclass(frozen=True)
class EventSchema:
    name: str
    fields: Tuple[FieldSpec, ...]

    @property
    def field_names(self) -> Tuple[str, ...]:
        return tuple(f.name for f in self.fields)

    @property
    def indexed_names(self) -> Tuple[str, ...]:
        return tuple(f.name for f in self.fields if f.indexed)


TRANSFER = EventSchema(
    "Transfer",
    (
        FieldSpec("from", ADDRESS, indexed=True),
        FieldSpec("to", ADDRESS, indexed=True),
        FieldSpec("amount", U64),
    ),
)

APPROVAL = EventSchema(
    "Approval",
    (
        FieldSpec("owner", ADDRESS, indexed=True),
        FieldSpec("spender", ADDRESS, indexed=True),
        FieldSpec("old_amount", U64),
        FieldSpec("amount", U64),
    ),
)

REQUEST_CHANGED = EventSchema(
    "RequestChanged",
    (
        FieldSpec("id", U32, indexed=True),
        FieldSpec("creator_address", ADDRESS),
        FieldSpec("recipient_address", ADDRESS),
        FieldSpec("amount", U64),
        FieldSpec("description", STR),
        FieldSpec("status", STATUS),
        FieldSpec("expiry", U64),
    ),
)

SERVICE_FEE_CHANGED = EventSchema(
    "ServiceFeeChanged",
    (
        FieldSpec("owner", ADDRESS, indexed=True),
        FieldSpec("old_fee", U64),
        FieldSpec("new_fee", U64),
    ),
)

SCHEMAS: Dict[str, EventSchema] = {
    s.name: s for s in (TRANSFER, APPROVAL, REQUEST_CHANGED, SERVICE_FEE_CHANGED)
}


@dataclass(frozen=True)
class Event:
    """An event value that has been checked against its schema."""

    schema: EventSchema
    values: Mapping[str, Any] = field(hash=False)

    @property
    def name(self) -> str:
        return self.schema.name

    def __getitem__(self, key: str) -> Any:
        return self.values[key]

    def items(self) -> Iterator[Tuple[str, Any]]:
        for f in self.schema.fields:
            yield f.name, self.values[f.name]

    def indexed(self) -> Dict[str, Any]:
        return {n: self.values[n] for n in self.schema.indexed_names}

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for f in self.schema.fields:
            v = self.values[f.name]
            if f.kind == ADDRESS:
                v = address_hex(v)
            elif f.kind == STATUS:
                v = int(v)
            out[f.name] = v
        return {"name": self.name, "fields": out}


def _valid(kind: str, v: Any) -> bool:
    if kind == ADDRESS:
        return isinstance(v, bytes) and len(v) > 0
    if kind == U64:
        return is_u64(v)
    if kind == U32:
        return is_u32(v)
    if kind == STR:
        return isinstance(v, str)
    if kind == STATUS:
        return isinstance(v, RequestStatus)
    return False


def make_event(schema: EventSchema, **values: Any) -> Event:
    """Build an Event, raising TypeError/ValueError when `values` do not fit `schema`."""
    names = set(schema.field_names)
    got = set(values)
    if got != names:
        missing = sorted(names - got)
        extra = sorted(got - names)
        raise ValueError(f"{schema.name}: field mismatch (missing={missing}, extra={extra})")
    for f in schema.fields:
        if not _valid(f.kind, values[f.name]):
            raise TypeError(f"{schema.name}.{f.name}: expected {f.kind}, got {values[f.name]!r}")
    return Event(schema=schema, values=dict(values))


def event_from_dict(d: Mapping[str, Any]) -> Event:
    """Inverse of `Event.to_dict()`."""
    schema = SCHEMAS.get(d.get("name", ""))
    if schema is None:
        raise ValueError(f"unknown event name: {d.get('name')!r}")
    raw = d.get("fields", {})
    vals: Dict[str, Any] = {}
    for f in schema.fields:
        v = raw[f.name]
        if f.kind == ADDRESS:
            v = to_address(v, arg=f.name)
        elif f.kind == STATUS:
            v = RequestStatus(int(v))
        vals[f.name] = v
    return make_event(schema, **vals)


__all__ = [
    "FieldSpec",
    "EventSchema",
    "Event",
    "TRANSFER",
    "APPROVAL",
    "REQUEST_CHANGED",
    "SERVICE_FEE_CHANGED",
    "SCHEMAS",
    "make_event",
    "event_from_dict",
]
