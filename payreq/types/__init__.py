"""
payreq.types — small, dependency-light value types shared across the package.

Public surface (re-exported):
    Address, to_address, address_hex : address normalization
    RequestStatus                    : IntEnum — CREATED / CANCELLED / PAID
    PaymentRequest                   : Dataclass — a request record
    Event, EventSchema, make_event   : validated events and their schemas
    CallResult, CallStatus           : dispatcher results
"""

from __future__ import annotations

from .address import Address, address_hex, to_address
from .events import (APPROVAL, REQUEST_CHANGED, SERVICE_FEE_CHANGED, TRANSFER,
                     Event, EventSchema, make_event)
from .request import PaymentRequest
from .result import CallResult, CallStatus
from .status import RequestStatus

__all__ = [
    "Address",
    "address_hex",
    "to_address",
    "RequestStatus",
    "PaymentRequest",
    "Event",
    "EventSchema",
    "make_event",
    "TRANSFER",
    "APPROVAL",
    "REQUEST_CHANGED",
    "SERVICE_FEE_CHANGED",
    "CallResult",
    "CallStatus",
]
