"""
payreq.runtime.access — immutable owner and the owner-gated service fee.
"""

from __future__ import annotations

import logging

from ..errors import require
from ..state import codec
from ..types.address import Address, short
from ..types.events import SERVICE_FEE_CHANGED, make_event
from .host import Host, Invocation

log = logging.getLogger(__name__)

OWNER_ONLY = "The method is owner only."


class AccessControl:
    def __init__(self, host: Host) -> None:
        self._host = host

    def owner(self) -> Address:
        return codec.dec_address(self._host.journal.get(codec.OWNER))

    def is_deployed(self) -> bool:
        return self._host.journal.get(codec.OWNER) is not None

    def service_fee(self) -> int:
        return codec.dec_u64(self._host.journal.get(codec.SERVICE_FEE), codec.SERVICE_FEE)

    def initialize(self, inv: Invocation, *, service_fee: int) -> None:
        self._host.journal.set(codec.OWNER, codec.enc_address(inv.caller))
        self._host.journal.set(codec.SERVICE_FEE, codec.enc_u64(service_fee))

    def require_owner(self, inv: Invocation) -> None:
        require(inv.caller == self.owner(), OWNER_ONLY, code="OWNER_ONLY")

    def revise_service_fee(self, inv: Invocation, new_fee: int) -> None:
        self.require_owner(inv)
        old_fee = self.service_fee()
        self._host.journal.set(codec.SERVICE_FEE, codec.enc_u64(new_fee))
        inv.emit(make_event(SERVICE_FEE_CHANGED, owner=self.owner(), old_fee=old_fee, new_fee=new_fee))
        log.info("service fee revised %d -> %d by %s", old_fee, new_fee, short(inv.caller))


__all__ = ["AccessControl", "OWNER_ONLY"]
