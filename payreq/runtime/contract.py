"""
payreq.runtime.contract — the public PaymentRequest contract surface.

Deploy once, then call:

    ctx = ExecutionContext.of(deployer)
    c = PaymentRequestContract.deploy(ctx, 1_000, "Pay", "PAY", 10)
    c.create_request(ExecutionContext.of(alice), 1, "rent", bob, 100, 500)
    c.pay_request(ExecutionContext.of(bob), 1, current_time=100)

Each mutating method is one invocation on the Host: arguments are validated
(BAD_ARGUMENT aborts), the operation stages its writes and events, and the
Host commits or discards them as a unit. Getters read committed state and
open no invocation. `PaymentRequestContract(store, sink)` attaches to a store
that already holds a deployed contract.
"""

from __future__ import annotations

import functools
import logging
from typing import Any, Callable, Optional, TypeVar

from ..config import PayreqConfig, get_config
from ..errors import BadArgument, require
from ..state.events import EventSink, open_sink
from ..state.kv import KeyValueStore, open_store
from ..types.address import Address, AddressLike, address_hex, to_address
from ..types.request import PaymentRequest
from .access import AccessControl
from .context import ExecutionContext
from .host import Host, Invocation
from .ledger import TokenLedger
from .registry import PaymentRequestRegistry
from .safe_math import check_u32, check_u64

log = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def invocation(method: str) -> Callable[[F], F]:
    """
    Run the decorated method as one Host invocation. The wrapped function
    receives the open `Invocation` in place of the ExecutionContext.
    """

    def deco(fn: F) -> F:
        @functools.wraps(fn)
        def wrapper(self: "PaymentRequestContract", ctx: ExecutionContext, *args: Any, **kwargs: Any) -> Any:
            with self.host.invocation(ctx, method) as inv:
                value = fn(self, inv, *args, **kwargs)
                inv.value = value
            return value

        return wrapper  # type: ignore[return-value]

    return deco


class PaymentRequestContract:
    def __init__(
        self,
        store: KeyValueStore,
        sink: Optional[EventSink] = None,
        *,
        config: Optional[PayreqConfig] = None,
    ) -> None:
        self.config = config or get_config()
        self.host = Host(store, sink, config=self.config)
        self.ledger = TokenLedger(self.host)
        self.access = AccessControl(self.host)
        self.registry = PaymentRequestRegistry(self.host, self.ledger, self.access)

    @property
    def store(self) -> KeyValueStore:
        return self.host.store

    @property
    def sink(self) -> EventSink:
        return self.host.sink

    # ------------------------------------------------------------------ deploy

    @classmethod
    def deploy(
        cls,
        ctx: ExecutionContext,
        total_supply: int,
        name: str,
        symbol: str,
        service_fee: int,
        *,
        store: Optional[KeyValueStore] = None,
        sink: Optional[EventSink] = None,
        config: Optional[PayreqConfig] = None,
    ) -> "PaymentRequestContract":
        """
        Mint `total_supply` to the caller, who becomes the immutable owner.
        Emits no events. Aborts with ALREADY_DEPLOYED on a deployed store.
        """
        cfg = config or get_config()
        store = store if store is not None else open_store(cfg.store_uri)
        sink = sink if sink is not None else open_sink(cfg.events_path)
        c = cls(store, sink, config=cfg)
        c._deploy(ctx, total_supply, name, symbol, service_fee)
        log.info(
            "deployed %s (%s) supply=%d fee=%d owner=%s",
            name,
            symbol,
            total_supply,
            service_fee,
            address_hex(ctx.caller),
        )
        return c

    @invocation("deploy")
    def _deploy(self, inv: Invocation, total_supply: int, name: str, symbol: str, service_fee: int) -> None:
        require(not self.access.is_deployed(), "Contract is already deployed.", code="ALREADY_DEPLOYED")
        total_supply = check_u64(total_supply, "total_supply")
        service_fee = check_u64(service_fee, "service_fee")
        name = self._check_str(name, "name")
        symbol = self._check_str(symbol, "symbol")
        self.ledger.initialize(inv, name=name, symbol=symbol, total_supply=total_supply)
        self.access.initialize(inv, service_fee=service_fee)

    # ------------------------------------------------------------------ args

    @staticmethod
    def _check_str(v: Any, arg: str, max_bytes: Optional[int] = None) -> str:
        if not isinstance(v, str):
            raise BadArgument(f"{arg} must be a string, got {type(v).__name__}", arg=arg)
        if max_bytes is not None and len(v.encode("utf-8")) > max_bytes:
            raise BadArgument(f"{arg} exceeds {max_bytes} bytes", arg=arg)
        return v

    # ------------------------------------------------------------------ token reads

    def get_balance(self, address: AddressLike) -> int:
        return self.ledger.balance_of(to_address(address))

    def allowance(self, owner: AddressLike, spender: AddressLike) -> int:
        return self.ledger.allowance(to_address(owner, arg="owner"), to_address(spender, arg="spender"))

    def get_decimals(self) -> int:
        return self.ledger.decimals()

    def name(self) -> str:
        return self.ledger.name()

    def symbol(self) -> str:
        return self.ledger.symbol()

    def total_supply(self) -> int:
        return self.ledger.total_supply()

    def owner(self) -> Address:
        return self.access.owner()

    def service_fee(self) -> int:
        return self.access.service_fee()

    # ------------------------------------------------------------------ token writes

    @invocation("transfer_to")
    def transfer_to(self, inv: Invocation, to: AddressLike, amount: int) -> bool:
        dst = to_address(to, arg="to")
        amount = check_u64(amount, "amount")
        return self.ledger.transfer(inv, inv.caller, dst, amount)

    @invocation("transfer_from")
    def transfer_from(self, inv: Invocation, from_: AddressLike, to: AddressLike, amount: int) -> bool:
        src = to_address(from_, arg="from")
        dst = to_address(to, arg="to")
        amount = check_u64(amount, "amount")
        return self.ledger.transfer_from(inv, src, dst, amount)

    @invocation("approve")
    def approve(self, inv: Invocation, spender: AddressLike, expected_current: int, new_amount: int) -> bool:
        sp = to_address(spender, arg="spender")
        expected_current = check_u64(expected_current, "expected_current")
        new_amount = check_u64(new_amount, "new_amount")
        return self.ledger.approve(inv, sp, expected_current, new_amount)

    # ------------------------------------------------------------------ fee policy

    @invocation("revise_service_fee")
    def revise_service_fee(self, inv: Invocation, new_fee: int) -> None:
        self.access.revise_service_fee(inv, check_u64(new_fee, "new_fee"))

    # ------------------------------------------------------------------ requests

    def get_payment_request(self, request_id: int) -> PaymentRequest:
        return self.registry.get(check_u32(request_id, "id"))

    @invocation("create_request")
    def create_request(
        self,
        inv: Invocation,
        request_id: int,
        description: str,
        recipient: AddressLike,
        amount: int,
        expiry: int,
    ) -> bool:
        return self.registry.create(
            inv,
            check_u32(request_id, "id"),
            self._check_str(description, "description", self.config.limits.max_description_bytes),
            to_address(recipient, arg="recipient"),
            check_u64(amount, "amount"),
            check_u64(expiry, "expiry"),
        )

    @invocation("pay_request")
    def pay_request(self, inv: Invocation, request_id: int, current_time: int) -> bool:
        return self.registry.pay(inv, check_u32(request_id, "id"), check_u64(current_time, "current_time"))

    @invocation("cancel_request")
    def cancel_request(self, inv: Invocation, request_id: int) -> bool:
        return self.registry.cancel(inv, check_u32(request_id, "id"))


__all__ = ["PaymentRequestContract", "invocation"]
