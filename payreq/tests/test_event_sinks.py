from __future__ import annotations

import json

import pytest

from payreq.state.events import (EventSink, InMemoryEventSink, JsonlEventSink,
                                 NullEventSink, open_sink)
from payreq.types.events import (APPROVAL, REQUEST_CHANGED, TRANSFER,
                                 make_event)
from payreq.types.status import RequestStatus

from .conftest import ALICE, BOB, CAROL


def _transfer(src, dst, amount):
    return make_event(TRANSFER, **{"from": src, "to": dst, "amount": amount})


def _changed(rid, status=RequestStatus.CREATED):
    return make_event(
        REQUEST_CHANGED,
        id=rid,
        creator_address=ALICE,
        recipient_address=BOB,
        amount=5,
        description="d",
        status=status,
        expiry=9,
    )


@pytest.fixture(params=["memory", "jsonl"])
def sink(request, tmp_path):
    s = InMemoryEventSink() if request.param == "memory" else JsonlEventSink(str(tmp_path / "ev" / "log.jsonl"))
    s.append(_transfer(ALICE, BOB, 1), invocation_id="i1", log_index=0)
    s.append(_transfer(BOB, CAROL, 2), invocation_id="i1", log_index=1)
    s.append(_changed(7), invocation_id="i2", log_index=0)
    s.append(make_event(APPROVAL, owner=ALICE, spender=CAROL, old_amount=0, amount=3), invocation_id="i3", log_index=0)
    yield s
    s.close()


def test_protocol_conformance(sink):
    assert isinstance(sink, EventSink)
    assert isinstance(NullEventSink(), EventSink)


def test_get_logs_in_delivery_order(sink):
    recs = sink.get_logs()
    assert [(r.invocation_id, r.log_index, r.name) for r in recs] == [
        ("i1", 0, "Transfer"),
        ("i1", 1, "Transfer"),
        ("i2", 0, "RequestChanged"),
        ("i3", 0, "Approval"),
    ]


def test_filter_by_name_and_indexed_field(sink):
    assert [r.event["amount"] for r in sink.get_logs(name="Transfer", where={"to": BOB})] == [1]
    assert [r.event["amount"] for r in sink.get_logs(name="Transfer", where={"from": [ALICE, BOB]})] == [1, 2]
    assert [r.event["id"] for r in sink.get_logs(name="RequestChanged", where={"id": 7})] == [7]
    assert sink.get_logs(name="RequestChanged", where={"id": 8}) == []


def test_hex_addresses_accepted_in_filters(sink):
    recs = sink.get_logs(where={"owner": "0x" + ALICE.hex()})
    assert [r.name for r in recs] == ["Approval"]


def test_limit(sink):
    assert len(sink.get_logs(limit=2)) == 2
    assert len(sink.get_logs(name="Transfer", limit=1)) == 1


def test_non_indexed_fields_cannot_be_filtered(sink):
    with pytest.raises(ValueError):
        sink.get_logs(name="Transfer", where={"amount": 1})


def test_round_trip_preserves_typed_values(sink):
    rec = sink.get_logs(name="RequestChanged")[0]
    assert rec.event["status"] is RequestStatus.CREATED
    assert rec.event["creator_address"] == ALICE


def test_jsonl_file_format_and_reopen(tmp_path):
    path = tmp_path / "events.jsonl"
    s = JsonlEventSink(str(path))
    s.append(_transfer(ALICE, BOB, 4), invocation_id="abc", log_index=0)
    s.flush()
    s.close()
    line = json.loads(path.read_text(encoding="utf-8").splitlines()[0])
    assert line == {
        "invocation_id": "abc",
        "log_index": 0,
        "name": "Transfer",
        "fields": {"from": "0x" + ALICE.hex(), "to": "0x" + BOB.hex(), "amount": 4},
    }
    again = JsonlEventSink(str(path))
    assert [r.event["amount"] for r in again.get_logs()] == [4]
    again.close()


def test_jsonl_skips_malformed_lines(tmp_path):
    path = tmp_path / "events.jsonl"
    path.write_text("not json\n", encoding="utf-8")
    s = JsonlEventSink(str(path))
    s.append(_transfer(ALICE, BOB, 4), invocation_id="abc", log_index=0)
    assert len(s.get_logs()) == 1
    s.close()


def test_null_sink_drops_everything():
    s = NullEventSink()
    rec = s.append(_transfer(ALICE, BOB, 1), invocation_id="x", log_index=0)
    assert rec.log_index == 0
    assert s.get_logs() == []


def test_open_sink_selects_backend(tmp_path):
    assert isinstance(open_sink(None), InMemoryEventSink)
    s = open_sink(str(tmp_path / "e.jsonl"))
    assert isinstance(s, JsonlEventSink)
    s.close()
