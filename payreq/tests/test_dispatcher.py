from __future__ import annotations

import pytest

from payreq.errors import DispatchError
from payreq.runtime.dispatcher import dispatch, resolve, to_snake
from payreq.types.result import CallStatus
from payreq.types.status import RequestStatus

from .conftest import ALICE, BOB, OWNER, ctx


@pytest.mark.parametrize(
    "name, expected",
    [
        ("CreateRequest", "create_request"),
        ("create_request", "create_request"),
        ("GetBalance", "get_balance"),
        ("TransferTo", "transfer_to"),
        ("ReviseServiceFee", "revise_service_fee"),
        ("TotalSupply", "total_supply"),
    ],
)
def test_names_resolve(name, expected):
    assert to_snake(name) == expected
    assert resolve(name).attr == expected


def test_success_result_carries_value_and_events(contract):
    res = dispatch(contract, ctx(OWNER), "TransferTo", ["0x" + ALICE.hex(), 25])
    assert res.status is CallStatus.SUCCESS
    assert res.value is True
    assert [e.name for e in res.events] == ["Transfer"]
    assert res.invocation_id
    d = res.to_dict()
    assert d["events"][0]["fields"]["to"] == "0x" + ALICE.hex()


def test_false_result_for_business_rejection(contract):
    res = dispatch(contract, ctx(ALICE), "transfer_to", [BOB, 1])
    assert res.status is CallStatus.FALSE
    assert res.value is False
    assert res.events == ()


def test_revert_result_has_error_payload(contract):
    res = dispatch(contract, ctx(ALICE), "ReviseServiceFee", [1])
    assert res.status is CallStatus.REVERT
    assert res.error["code"] == "OWNER_ONLY"
    assert res.error["message"] == "The method is owner only."
    assert res.value is None


def test_named_arguments_with_original_names(contract):
    contract.transfer_to(ctx(OWNER), ALICE, 100)
    res = dispatch(
        contract,
        ctx(ALICE),
        "CreateRequest",
        {"id": 4, "description": "d", "recipientAddress": BOB.hex(), "amount": 5, "expiry": 50},
    )
    assert res.is_success
    got = dispatch(contract, None, "GetPaymentRequest", {"id": 4})
    assert got.value.status is RequestStatus.CREATED
    assert got.to_dict()["value"]["recipient_address"] == "0x" + BOB.hex()


def test_getters_need_no_context(contract):
    assert dispatch(contract, None, "GetDecimals").value == 8
    assert dispatch(contract, None, "Owner").to_dict()["value"] == "0x" + OWNER.hex()
    assert dispatch(contract, None, "allowance", [OWNER, ALICE]).value == 0


def test_unknown_method_raises(contract):
    with pytest.raises(DispatchError):
        dispatch(contract, ctx(OWNER), "Mint", [1])


def test_bad_argument_shapes_raise(contract):
    with pytest.raises(DispatchError):
        dispatch(contract, ctx(OWNER), "TransferTo", [ALICE])
    with pytest.raises(DispatchError):
        dispatch(contract, ctx(OWNER), "TransferTo", {"to": ALICE, "value": 1})
    with pytest.raises(DispatchError):
        dispatch(contract, ctx(OWNER), "TransferTo", "oops")
    with pytest.raises(DispatchError):
        dispatch(contract, None, "TransferTo", [ALICE, 1])


def test_bad_argument_value_is_a_revert(contract):
    res = dispatch(contract, ctx(OWNER), "TransferTo", [ALICE, -5])
    assert res.status is CallStatus.REVERT
    assert res.error["code"] == "BAD_ARGUMENT"
