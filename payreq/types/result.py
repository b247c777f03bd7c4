"""
payreq.types.result — CallResult container returned by the dispatcher.

Fields
------
* method        : str        — snake_case operation name that ran
* status        : CallStatus — SUCCESS / FALSE / REVERT / ERROR
* value         : Any        — operation return value (None for reverts)
* events        : tuple[Event, ...] — events delivered by this invocation
* error         : Optional[dict]    — {code, message, data?} for reverts/errors
* invocation_id : Optional[str]

`status` distinguishes a business rejection (the operation returned
``False`` and nothing changed) from a fatal abort (``revert``).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from .address import address_hex
from .events import Event
from .request import PaymentRequest


class CallStatus(str, Enum):
    SUCCESS = "success"
    FALSE = "false"
    REVERT = "revert"
    ERROR = "error"

    @property
    def is_success(self) -> bool:
        return self is CallStatus.SUCCESS

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.value


def _jsonable(v: Any) -> Any:
    if isinstance(v, bytes):
        return address_hex(v)
    if isinstance(v, PaymentRequest):
        return v.to_dict()
    return v


@dataclass(frozen=True)
class CallResult:
    method: str
    status: CallStatus
    value: Any = None
    events: Tuple[Event, ...] = ()
    error: Optional[Dict[str, Any]] = None
    invocation_id: Optional[str] = None

    @property
    def is_success(self) -> bool:
        return self.status.is_success

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "method": self.method,
            "status": self.status.value,
            "value": _jsonable(self.value),
            "events": [e.to_dict() for e in self.events],
        }
        if self.error is not None:
            out["error"] = self.error
        if self.invocation_id is not None:
            out["invocation_id"] = self.invocation_id
        return out


__all__ = ["CallStatus", "CallResult"]
