"""
payreq.runtime.context — the per-call execution context.

The host authenticates the caller and hands the contract an
`ExecutionContext`; every mutating operation takes it as its first argument.
Nothing in the contract reads a global "current sender".

* `caller` is raw address bytes (hex input is normalized on construction).
* `invocation_id` is optional; the Host generates one when it is missing.
* `metadata` carries opaque host-supplied fields for logs (e.g. a tx hash).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from ..types.address import Address, AddressLike, address_hex, to_address


@dataclass(frozen=True)
class ExecutionContext:
    caller: Address
    invocation_id: Optional[str] = None
    metadata: Mapping[str, Any] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "caller", to_address(self.caller, arg="caller"))

    @classmethod
    def of(cls, caller: AddressLike, **metadata: Any) -> "ExecutionContext":
        return cls(caller=to_address(caller, arg="caller"), metadata=dict(metadata))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "caller": address_hex(self.caller),
            "invocation_id": self.invocation_id,
            "metadata": dict(self.metadata),
        }


__all__ = ["ExecutionContext"]
