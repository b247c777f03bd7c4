"""
payreq.errors — contract-level exceptions.

Operations communicate *fatal aborts* via typed exceptions. The Host catches
them at the invocation boundary, discards every staged write and buffered
event, and re-raises so the caller sees a descriptive reason. Business
outcomes (insufficient balance, insufficient allowance, stale approval) are
*not* exceptions; those primitives return ``False``.

Hierarchy
---------
ContractError (base)
 ├─ Revert             : failed precondition / invariant (fatal abort)
 │   ├─ ArithmeticOverflow : checked u64 addition overflowed
 │   ├─ BadArgument        : argument out of range or of the wrong type
 │   └─ ReentrancyError    : an invocation was opened while another is active
 ├─ DispatchError      : unknown method or malformed call for the dispatcher
 ├─ ConfigError        : invalid configuration value
 └─ StoreError         : state backend failure (I/O, corrupt value)

These classes import nothing from the rest of the package so they can be
used from the lowest layers (codec, store) without cycles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(eq=False)
class ContractError(Exception):
    """
    Base contract error.

    Attributes:
        message: Human-readable explanation.
        code:    Stable machine code string (e.g., 'DUPLICATE_ID', 'OVERFLOW').
        data:    Optional structured details (kept JSON-serializable).
    """

    message: str = "contract error"
    code: str = "CONTRACT_ERROR"
    data: Optional[Dict[str, Any]] = field(default=None)

    def __str__(self) -> str:  # pragma: no cover - trivial
        if self.data:
            return f"{self.code}: {self.message} ({self.data})"
        return f"{self.code}: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-safe dict for results/logs."""
        out: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            out["data"] = self.data
        return out


class Revert(ContractError):
    """
    Fatal abort: the whole invocation is rejected and nothing it staged applies.

    Usage:
        raise Revert("The request is expired.", code="EXPIRED")
    """

    def __init__(
        self,
        reason: str = "reverted",
        *,
        code: str = "REVERT",
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=reason, code=code, data=data)

    @property
    def reason(self) -> str:
        return self.message


class ArithmeticOverflow(Revert):
    """Checked addition left the unsigned range of its type."""

    def __init__(self, message: str = "arithmetic overflow", *, bits: int = 64, data: Optional[Dict[str, Any]] = None):
        d: Dict[str, Any] = {"bits": bits}
        if data:
            d.update(data)
        super().__init__(message, code="OVERFLOW", data=d)


class BadArgument(Revert):
    """An argument is out of its declared range or has the wrong type."""

    def __init__(self, message: str = "bad argument", *, arg: Optional[str] = None, data: Optional[Dict[str, Any]] = None):
        d: Dict[str, Any] = {}
        if data:
            d.update(data)
        if arg is not None:
            d.setdefault("arg", arg)
        super().__init__(message, code="BAD_ARGUMENT", data=d or None)


class ReentrancyError(Revert):
    """A nested invocation was attempted while another one is in flight."""

    def __init__(self, message: str = "reentrant call", *, active: Optional[str] = None, attempted: Optional[str] = None):
        d: Dict[str, Any] = {}
        if active is not None:
            d["active"] = active
        if attempted is not None:
            d["attempted"] = attempted
        super().__init__(message, code="REENTRANT", data=d or None)


class DispatchError(ContractError):
    """Raised when a call cannot be routed or its arguments do not fit."""

    def __init__(self, message: str = "dispatch error", *, method: Optional[str] = None):
        super().__init__(
            message=message,
            code="DISPATCH",
            data=({"method": method} if method is not None else None),
        )


class ConfigError(ContractError):
    def __init__(self, message: str = "invalid configuration", *, key: Optional[str] = None):
        super().__init__(
            message=message,
            code="CONFIG",
            data=({"key": key} if key is not None else None),
        )


class StoreError(ContractError):
    def __init__(self, message: str = "state store failure", *, key: Optional[str] = None):
        super().__init__(
            message=message,
            code="STORE",
            data=({"key": key} if key is not None else None),
        )


# -------- helpers ------------------------------------------------------------


def require(cond: bool, reason: str, *, code: str = "REVERT", data: Optional[Dict[str, Any]] = None) -> None:
    """Abort the invocation with `reason` unless `cond` holds."""
    if not cond:
        raise Revert(reason, code=code, data=data)


def error_to_result_fields(err: ContractError) -> Dict[str, Any]:
    """
    Map a ContractError to canonical result fields:

        {"status": "revert" | "error", "error": {code, message, data?}}
    """
    status = "revert" if isinstance(err, Revert) else "error"
    return {"status": status, "error": err.to_dict()}


__all__ = [
    "ContractError",
    "Revert",
    "ArithmeticOverflow",
    "BadArgument",
    "ReentrancyError",
    "DispatchError",
    "ConfigError",
    "StoreError",
    "require",
    "error_to_result_fields",
]
