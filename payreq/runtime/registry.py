"""
payreq.runtime.registry — payment request records and their lifecycle.

    CREATED ──pay_request──▶ PAID
       │
       └────cancel_request─▶ CANCELLED        (both terminal)

All three mutating operations either return True or raise Revert; they never
return False. Preconditions are checked in a fixed order so the reported
reason is deterministic:

  create_request : id > 0 → id unused → recipient ≠ caller
  pay_request    : exists → caller is recipient → expiry > current_time
                   → status CREATED
  cancel_request : exists → status CREATED → caller is creator

A failed fee or payment transfer aborts the invocation, which also drops the
record write staged before it.
"""

from __future__ import annotations

from ..errors import require
from ..state import codec
from ..types.address import Address
from ..types.events import REQUEST_CHANGED, make_event
from ..types.request import PaymentRequest
from ..types.status import RequestStatus
from .access import AccessControl
from .host import Host, Invocation
from .ledger import TokenLedger

# Reasons reported by fatal aborts.
ZERO_ID = "Payment request id must be greater than zero."
DUPLICATE_ID = "Payment request is already present with given Id."
SAME_RECIPIENT = "Recipient address should be different."
FEE_TRANSFER_FAILED = "Fee transfer failed."
NOT_PRESENT = "Payment request is not present."
INVALID_PAYER = "Invalid payer."
EXPIRED = "The request is expired."
NOT_PAYABLE = "The request is paid or canceled."
PAYMENT_FAILED = "Payment failed."
NOT_CANCELLABLE = "Only created request can cancel."
NOT_CREATOR = "Only request creator can cancel."


class PaymentRequestRegistry:
    def __init__(self, host: Host, ledger: TokenLedger, access: AccessControl) -> None:
        self._host = host
        self._ledger = ledger
        self._access = access

    def get(self, request_id: int) -> PaymentRequest:
        key = codec.request_key(request_id)
        return codec.dec_request(self._host.journal.get(key), key)

    def _put(self, req: PaymentRequest) -> None:
        self._host.journal.set(codec.request_key(req.id), codec.enc_request(req))

    def _emit(self, inv: Invocation, req: PaymentRequest) -> None:
        inv.emit(
            make_event(
                REQUEST_CHANGED,
                id=req.id,
                creator_address=req.creator_address,
                recipient_address=req.recipient_address,
                amount=req.amount,
                description=req.description,
                status=req.status,
                expiry=req.expiry,
            )
        )

    def create(
        self,
        inv: Invocation,
        request_id: int,
        description: str,
        recipient: Address,
        amount: int,
        expiry: int,
    ) -> bool:
        require(request_id != 0, ZERO_ID, code="ZERO_ID")
        require(not self.get(request_id).exists, DUPLICATE_ID, code="DUPLICATE_ID")
        require(recipient != inv.caller, SAME_RECIPIENT, code="SAME_RECIPIENT")

        req = PaymentRequest(
            id=request_id,
            creator_address=inv.caller,
            recipient_address=recipient,
            amount=amount,
            description=description,
            expiry=expiry,
            status=RequestStatus.CREATED,
        )
        self._put(req)

        paid = self._ledger.transfer(inv, inv.caller, self._access.owner(), self._access.service_fee())
        require(paid, FEE_TRANSFER_FAILED, code="FEE_TRANSFER_FAILED")

        self._emit(inv, req)
        return True

    def pay(self, inv: Invocation, request_id: int, current_time: int) -> bool:
        req = self.get(request_id)
        require(req.exists, NOT_PRESENT, code="NOT_PRESENT")
        require(req.recipient_address == inv.caller, INVALID_PAYER, code="INVALID_PAYER")
        require(req.expiry > current_time, EXPIRED, code="EXPIRED")
        require(req.status is RequestStatus.CREATED, NOT_PAYABLE, code="NOT_PAYABLE")

        paid = self._ledger.transfer(inv, inv.caller, req.creator_address, req.amount)
        require(paid, PAYMENT_FAILED, code="PAYMENT_FAILED")

        req = req.with_status(RequestStatus.PAID)
        self._put(req)
        self._emit(inv, req)
        return True

    def cancel(self, inv: Invocation, request_id: int) -> bool:
        req = self.get(request_id)
        require(req.exists, NOT_PRESENT, code="NOT_PRESENT")
        require(req.status is RequestStatus.CREATED, NOT_CANCELLABLE, code="NOT_CANCELLABLE")
        require(req.creator_address == inv.caller, NOT_CREATOR, code="NOT_CREATOR")

        req = req.with_status(RequestStatus.CANCELLED)
        self._put(req)
        self._emit(inv, req)
        return True


__all__ = ["PaymentRequestRegistry"]
