from __future__ import annotations

import pytest

from payreq import metrics
from payreq.config import load_config
from payreq.errors import ReentrancyError, Revert, StoreError
from payreq.runtime.contract import PaymentRequestContract
from payreq.state.events import InMemoryEventSink
from payreq.state.kv import MemoryKV
from payreq.types.events import TRANSFER, make_event

from .conftest import ALICE, BOB, OWNER, ctx, state_of


def test_events_are_buffered_until_commit(contract, sink):
    seen = []

    with contract.host.invocation(ctx(OWNER), "transfer_to") as inv:
        contract.ledger.transfer(inv, OWNER, ALICE, 5)
        seen.append(len(sink))
    assert seen == [0]
    assert len(sink) == 1


def test_abort_delivers_nothing_and_writes_nothing(contract, sink):
    before = state_of(contract)
    with pytest.raises(Revert):
        with contract.host.invocation(ctx(OWNER), "transfer_to") as inv:
            contract.ledger.transfer(inv, OWNER, ALICE, 5)
            raise Revert("late failure", code="TEST")
    assert state_of(contract) == before
    assert len(sink) == 0
    assert contract.host.journal.staged() == {}


def test_unexpected_exception_also_rolls_back(contract, sink):
    before = state_of(contract)
    with pytest.raises(ZeroDivisionError):
        with contract.host.invocation(ctx(OWNER), "transfer_to") as inv:
            contract.ledger.transfer(inv, OWNER, ALICE, 5)
            1 / 0
    assert state_of(contract) == before
    assert len(sink) == 0


def test_nested_invocation_is_rejected(contract, sink):
    with pytest.raises(ReentrancyError) as ei:
        with contract.host.invocation(ctx(OWNER), "transfer_to") as inv:
            contract.ledger.transfer(inv, OWNER, ALICE, 5)
            contract.transfer_to(ctx(OWNER), BOB, 1)
    assert ei.value.code == "REENTRANT"
    assert ei.value.data == {"active": "transfer_to", "attempted": "transfer_to"}
    assert contract.get_balance(ALICE) == 0
    assert contract.get_balance(BOB) == 0
    assert len(sink) == 0
    assert contract.host.active is None


def test_nested_rejection_keeps_outer_staged_state(contract):
    with contract.host.invocation(ctx(OWNER), "transfer_to") as inv:
        contract.ledger.transfer(inv, OWNER, ALICE, 5)
        with pytest.raises(ReentrancyError):
            contract.approve(ctx(OWNER), BOB, 0, 1)
        assert contract.ledger.balance_of(ALICE) == 5
    assert contract.get_balance(ALICE) == 5
    assert contract.allowance(OWNER, BOB) == 0


def test_event_limit_aborts_invocation():
    cfg = load_config(env={}, overrides={"max_events_per_call": 2})
    sink = InMemoryEventSink()
    c = PaymentRequestContract.deploy(ctx(OWNER), 100, "P", "P", 0, store=MemoryKV(), sink=sink, config=cfg)
    before = state_of(c)
    with pytest.raises(Revert) as ei:
        with c.host.invocation(ctx(OWNER), "transfer_to") as inv:
            for _ in range(3):
                c.ledger.transfer(inv, OWNER, ALICE, 1)
    assert ei.value.code == "TOO_MANY_EVENTS"
    assert ei.value.data == {"limit": 2}
    assert state_of(c) == before
    assert len(sink) == 0


def test_create_and_pay_fit_the_smallest_event_limit():
    cfg = load_config(env={}, overrides={"max_events_per_call": 2})
    c = PaymentRequestContract.deploy(ctx(OWNER), 100, "P", "P", 1, store=MemoryKV(), sink=InMemoryEventSink(), config=cfg)
    c.transfer_to(ctx(OWNER), ALICE, 10)
    c.transfer_to(ctx(OWNER), BOB, 10)
    assert c.create_request(ctx(ALICE), 1, "x", BOB, 5, 10) is True
    assert c.pay_request(ctx(BOB), 1, 5) is True


class _BrokenSink(InMemoryEventSink):
    """Fails on every append."""

    def append(self, event, *, invocation_id, log_index):
        raise OSError("sink unavailable")


def test_sink_failure_after_commit_keeps_state_and_counts_error(cfg):
    sink = _BrokenSink()
    c = PaymentRequestContract.deploy(ctx(OWNER), 100, "P", "P", 0, store=MemoryKV(), sink=sink, config=cfg)
    errors0 = metrics.counter_value("transfer_to", "error")
    ok0 = metrics.counter_value("transfer_to", "success")
    with pytest.raises(OSError):
        c.transfer_to(ctx(OWNER), ALICE, 5)
    assert c.get_balance(ALICE) == 5
    assert c.get_balance(OWNER) == 95
    assert metrics.counter_value("transfer_to", "error") == errors0 + 1
    assert metrics.counter_value("transfer_to", "success") == ok0
    assert c.host.active is None
    assert c.host.journal.staged() == {}


class _FailingKV(MemoryKV):
    """Accepts reads, fails every batch commit."""

    fail = False

    def _apply(self, staged):
        if self.fail:
            raise StoreError("disk full")
        super()._apply(staged)


def test_store_failure_at_commit_discards_everything(cfg):
    store = _FailingKV()
    sink = InMemoryEventSink()
    c = PaymentRequestContract.deploy(ctx(OWNER), 100, "P", "P", 0, store=store, sink=sink, config=cfg)
    store.fail = True
    with pytest.raises(StoreError):
        c.transfer_to(ctx(OWNER), ALICE, 10)
    store.fail = False
    assert c.get_balance(ALICE) == 0
    assert c.get_balance(OWNER) == 100
    assert len(sink) == 0
    assert c.host.journal.staged() == {}


def test_make_event_rejects_bad_shapes():
    with pytest.raises(ValueError):
        make_event(TRANSFER, **{"from": OWNER, "to": ALICE})
    with pytest.raises(TypeError):
        make_event(TRANSFER, **{"from": OWNER, "to": ALICE, "amount": -1})
    with pytest.raises(TypeError):
        make_event(TRANSFER, **{"from": "0xaa", "to": ALICE, "amount": 1})
