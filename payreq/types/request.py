"""
payreq.types.request — the PaymentRequest record.

A request is keyed by a positive u32 id and is never deleted. Id 0 is the
"absent" sentinel: looking up an unknown id yields `PaymentRequest.absent()`,
whose fields are all zero/empty and whose status is CREATED.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, Mapping

from .address import Address, address_hex
from .status import RequestStatus


@dataclass(frozen=True)
class PaymentRequest:
    id: int
    creator_address: Address
    recipient_address: Address
    amount: int
    description: str
    expiry: int
    status: RequestStatus = RequestStatus.CREATED

    @classmethod
    def absent(cls) -> "PaymentRequest":
        return cls(
            id=0,
            creator_address=b"",
            recipient_address=b"",
            amount=0,
            description="",
            expiry=0,
            status=RequestStatus.CREATED,
        )

    @property
    def exists(self) -> bool:
        return self.id != 0

    def with_status(self, status: RequestStatus) -> "PaymentRequest":
        return replace(self, status=status)

    # ------------------------------------------------------------------ codec

    def to_record(self) -> Dict[str, Any]:
        """Plain mapping with raw bytes, as persisted (CBOR)."""
        return {
            "id": self.id,
            "creator_address": self.creator_address,
            "recipient_address": self.recipient_address,
            "amount": self.amount,
            "description": self.description,
            "expiry": self.expiry,
            "status": int(self.status),
        }

    @classmethod
    def from_record(cls, d: Mapping[str, Any]) -> "PaymentRequest":
        return cls(
            id=int(d["id"]),
            creator_address=bytes(d["creator_address"]),
            recipient_address=bytes(d["recipient_address"]),
            amount=int(d["amount"]),
            description=str(d["description"]),
            expiry=int(d["expiry"]),
            status=RequestStatus(int(d["status"])),
        )

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly form (hex addresses, lowercase status name)."""
        d = self.to_record()
        d["creator_address"] = address_hex(self.creator_address) if self.creator_address else ""
        d["recipient_address"] = address_hex(self.recipient_address) if self.recipient_address else ""
        d["status"] = str(self.status)
        return d


__all__ = ["PaymentRequest"]
