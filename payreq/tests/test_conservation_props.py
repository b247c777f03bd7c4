"""
Property tests over random operation sequences:

- every successful or rejected transfer keeps sum(balances) == TotalSupply
- zero-amount transfers never change any balance
- stale approvals never mutate state
- terminal requests never transition again
"""
from __future__ import annotations

from hypothesis import given
from hypothesis import strategies as st

from payreq.config import load_config
from payreq.errors import Revert
from payreq.runtime.contract import PaymentRequestContract
from payreq.state.events import NullEventSink
from payreq.state.kv import MemoryKV
from payreq.types.status import RequestStatus

from .conftest import ALICE, BOB, CAROL, OWNER, ctx

ACCOUNTS = [OWNER, ALICE, BOB, CAROL]
SUPPLY = 10_000

_addr = st.sampled_from(ACCOUNTS)
_amount = st.integers(min_value=0, max_value=SUPPLY + 50)

_op = st.one_of(
    st.tuples(st.just("transfer"), _addr, _addr, _amount),
    st.tuples(st.just("approve"), _addr, _addr, _amount),
    st.tuples(st.just("transfer_from"), _addr, _addr, _addr, _amount),
)


def _fresh() -> PaymentRequestContract:
    return PaymentRequestContract.deploy(
        ctx(OWNER), SUPPLY, "P", "P", 7,
        store=MemoryKV(), sink=NullEventSink(), config=load_config(env={}),
    )


def _total(c: PaymentRequestContract) -> int:
    return sum(c.get_balance(a) for a in ACCOUNTS)


@given(st.lists(_op, max_size=40))
def test_transfers_conserve_supply(ops):
    c = _fresh()
    for op in ops:
        if op[0] == "transfer":
            _, src, dst, amount = op
            c.transfer_to(ctx(src), dst, amount)
        elif op[0] == "approve":
            _, owner, spender, amount = op
            c.approve(ctx(owner), spender, c.allowance(owner, spender), amount)
        else:
            _, spender, src, dst, amount = op
            c.transfer_from(ctx(spender), src, dst, amount)
        assert _total(c) == SUPPLY == c.total_supply()


@given(_addr, _addr)
def test_zero_transfer_is_balance_neutral(src, dst):
    c = _fresh()
    c.transfer_to(ctx(OWNER), ALICE, 123)
    before = {a: c.get_balance(a) for a in ACCOUNTS}
    assert c.transfer_to(ctx(src), dst, 0) is True
    assert {a: c.get_balance(a) for a in ACCOUNTS} == before


@given(_addr, _addr, st.integers(0, 100), st.integers(0, 100), st.integers(0, 100))
def test_stale_approve_never_mutates(owner, spender, current, stale, new):
    c = _fresh()
    c.approve(ctx(owner), spender, 0, current)
    if stale == current:
        return
    snap = c.store.snapshot()
    assert c.approve(ctx(owner), spender, stale, new) is False
    assert c.store.snapshot() == snap


@given(st.sampled_from(["pay", "cancel"]), st.lists(st.sampled_from(["pay", "cancel"]), min_size=1, max_size=4))
def test_terminal_requests_never_transition(first, later):
    c = _fresh()
    c.transfer_to(ctx(OWNER), ALICE, 500)
    c.transfer_to(ctx(OWNER), BOB, 500)
    c.create_request(ctx(ALICE), 1, "r", BOB, 50, 1_000)
    if first == "pay":
        c.pay_request(ctx(BOB), 1, 10)
    else:
        c.cancel_request(ctx(ALICE), 1)
    final = c.get_payment_request(1).status
    assert final in (RequestStatus.PAID, RequestStatus.CANCELLED)
    for step in later:
        try:
            if step == "pay":
                c.pay_request(ctx(BOB), 1, 10)
            else:
                c.cancel_request(ctx(ALICE), 1)
        except Revert:
            pass
        else:
            raise AssertionError(f"{step} succeeded on a terminal request")
        assert c.get_payment_request(1).status is final
