"""
payreq.runtime.ledger — fungible token balances and allowances.

Primitives (all run inside an open Invocation; reads go through the Journal so
a write staged earlier in the same invocation is visible):

  transfer(inv, src, dst, amount)          → bool
  transfer_from(inv, src, dst, amount)     → bool   (spender = inv.caller)
  approve(inv, spender, expected, amount)  → bool   (compare-and-swap)

Semantics
---------
* amount == 0 always succeeds: Transfer{amount=0} is emitted and no balance is
  touched.
* Insufficient balance (or allowance) returns False with no write and no
  event.
* Otherwise the debit is staged before the credit is read, so a transfer to
  oneself leaves the balance unchanged. Crediting is checked u64 addition; an
  overflow raises ArithmeticOverflow and aborts the whole invocation.
"""

from __future__ import annotations

from ..state import codec
from ..types.address import Address
from ..types.events import APPROVAL, TRANSFER, make_event
from .host import Host, Invocation
from .safe_math import add_u64, sub_u64

DECIMALS = 8


class TokenLedger:
    def __init__(self, host: Host) -> None:
        self._host = host

    # ---- reads ----

    def _u64(self, key: str) -> int:
        return codec.dec_u64(self._host.journal.get(key), key)

    def balance_of(self, addr: Address) -> int:
        return self._u64(codec.balance_key(addr))

    def allowance(self, owner: Address, spender: Address) -> int:
        return self._u64(codec.allowance_key(owner, spender))

    def name(self) -> str:
        return codec.dec_str(self._host.journal.get(codec.NAME), codec.NAME)

    def symbol(self) -> str:
        return codec.dec_str(self._host.journal.get(codec.SYMBOL), codec.SYMBOL)

    def total_supply(self) -> int:
        return self._u64(codec.TOTAL_SUPPLY)

    def decimals(self) -> int:
        return DECIMALS

    # ---- writes ----

    def _set_balance(self, addr: Address, value: int) -> None:
        self._host.journal.set(codec.balance_key(addr), codec.enc_u64(value))

    def _set_allowance(self, owner: Address, spender: Address, value: int) -> None:
        self._host.journal.set(codec.allowance_key(owner, spender), codec.enc_u64(value))

    def _move(self, inv: Invocation, src: Address, dst: Address, amount: int, src_balance: int) -> None:
        self._set_balance(src, sub_u64(src_balance, amount))
        self._set_balance(dst, add_u64(self.balance_of(dst), amount))
        inv.emit(make_event(TRANSFER, **{"from": src, "to": dst, "amount": amount}))

    def initialize(self, inv: Invocation, *, name: str, symbol: str, total_supply: int) -> None:
        """Deploy-time metadata and the one and only mint, to the deployer."""
        j = self._host.journal
        j.set(codec.NAME, codec.enc_str(name))
        j.set(codec.SYMBOL, codec.enc_str(symbol))
        j.set(codec.DECIMALS, codec.enc_u32(DECIMALS))
        j.set(codec.TOTAL_SUPPLY, codec.enc_u64(total_supply))
        self._set_balance(inv.caller, total_supply)

    def transfer(self, inv: Invocation, src: Address, dst: Address, amount: int) -> bool:
        if amount == 0:
            inv.emit(make_event(TRANSFER, **{"from": src, "to": dst, "amount": 0}))
            return True
        bal = self.balance_of(src)
        if bal < amount:
            return False
        self._move(inv, src, dst, amount, bal)
        return True

    def transfer_from(self, inv: Invocation, src: Address, dst: Address, amount: int) -> bool:
        if amount == 0:
            inv.emit(make_event(TRANSFER, **{"from": src, "to": dst, "amount": 0}))
            return True
        spender = inv.caller
        allowed = self.allowance(src, spender)
        bal = self.balance_of(src)
        if allowed < amount or bal < amount:
            return False
        self._set_allowance(src, spender, allowed - amount)
        self._move(inv, src, dst, amount, bal)
        return True

    def approve(self, inv: Invocation, spender: Address, expected_current: int, amount: int) -> bool:
        owner = inv.caller
        if self.allowance(owner, spender) != expected_current:
            return False
        self._set_allowance(owner, spender, amount)
        inv.emit(
            make_event(
                APPROVAL,
                owner=owner,
                spender=spender,
                old_amount=expected_current,
                amount=amount,
            )
        )
        return True


__all__ = ["TokenLedger", "DECIMALS"]
