# -*- coding: utf-8 -*-
"""
payreq.tests.conftest
=====================

Shared fixtures:
- stable addresses (`OWNER`, `ALICE`, `BOB`, `CAROL`) and `ctx(addr)`
- an isolated config (`cfg`) that ignores the caller's environment
- a freshly deployed contract on a MemoryKV with an in-memory sink
  (supply 1000, service fee 10, owner = OWNER)
- `state_of(contract)` snapshot helper for "nothing changed" assertions
"""
from __future__ import annotations

import os
from typing import Dict

import pytest
from hypothesis import settings

from payreq.config import PayreqConfig, load_config
from payreq.runtime.context import ExecutionContext
from payreq.runtime.contract import PaymentRequestContract
from payreq.state.events import InMemoryEventSink
from payreq.state.kv import MemoryKV

os.environ.setdefault("PYTHONHASHSEED", "0")

settings.register_profile("local", settings(max_examples=60, deadline=None))
settings.register_profile("ci", settings(max_examples=200, deadline=None))
settings.load_profile(os.environ.get("HYPOTHESIS_PROFILE") or ("ci" if os.environ.get("CI") else "local"))

OWNER = bytes.fromhex("0f" * 20)
ALICE = bytes.fromhex("aa" * 20)
BOB = bytes.fromhex("bb" * 20)
CAROL = bytes.fromhex("cc" * 20)

SUPPLY = 1_000
FEE = 10


def ctx(addr: bytes) -> ExecutionContext:
    return ExecutionContext(caller=addr)


def state_of(contract: PaymentRequestContract) -> Dict[str, bytes]:
    store = contract.store
    assert isinstance(store, MemoryKV)
    return store.snapshot()


@pytest.fixture
def cfg() -> PayreqConfig:
    return load_config(env={})


@pytest.fixture
def store() -> MemoryKV:
    return MemoryKV()


@pytest.fixture
def sink() -> InMemoryEventSink:
    return InMemoryEventSink()


@pytest.fixture
def contract(store: MemoryKV, sink: InMemoryEventSink, cfg: PayreqConfig) -> PaymentRequestContract:
    return PaymentRequestContract.deploy(
        ctx(OWNER), SUPPLY, "PayToken", "PAY", FEE, store=store, sink=sink, config=cfg
    )


@pytest.fixture
def funded(contract: PaymentRequestContract) -> PaymentRequestContract:
    """Deployed contract where ALICE holds 300 and BOB holds 200."""
    assert contract.transfer_to(ctx(OWNER), ALICE, 300) is True
    assert contract.transfer_to(ctx(OWNER), BOB, 200) is True
    return contract
