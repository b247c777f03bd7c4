from __future__ import annotations

import json

import pytest

import payreq
from payreq.cli import run_calls

OWNER = "0x" + "0f" * 20
A = "0x" + "aa" * 20
B = "0x" + "bb" * 20


def _script(tmp_path, obj):
    p = tmp_path / "calls.json"
    p.write_text(json.dumps(obj), encoding="utf-8")
    return p


SCRIPT = {
    "deploy": {"caller": OWNER, "total_supply": 1000, "name": "Pay", "symbol": "PAY", "service_fee": 10},
    "calls": [
        {"caller": OWNER, "method": "TransferTo", "args": [A, 200]},
        {"caller": A, "method": "CreateRequest", "args": [1, "rent", B, 100, 500]},
        {"caller": A, "method": "CreateRequest", "args": [1, "dup", B, 1, 500]},
        {"caller": B, "method": "PayRequest", "args": [1, 100]},
        {"method": "GetBalance", "args": [A]},
    ],
}


def test_run_script_json_output(tmp_path, capsys, monkeypatch):
    monkeypatch.delenv("PAYREQ_STORE", raising=False)
    events = tmp_path / "events.jsonl"
    rc = run_calls.main(["--script", str(_script(tmp_path, SCRIPT)), "--events", str(events), "--json", "--quiet"])
    assert rc == 0
    out = json.loads(capsys.readouterr().out)
    statuses = [r["status"] for r in out["results"]]
    # Duplicate create reverts; B has no funds, so paying reverts too.
    assert statuses == ["success", "success", "revert", "revert", "success"]
    assert out["results"][2]["error"]["code"] == "DUPLICATE_ID"
    assert out["results"][3]["error"]["message"] == "Payment failed."
    assert out["results"][4]["value"] == 190
    assert out["deploy"]["owner"] == OWNER
    assert out["version"] == payreq.__version__
    names = [json.loads(line)["name"] for line in events.read_text(encoding="utf-8").splitlines()]
    assert names == ["Transfer", "Transfer", "RequestChanged"]


def test_sqlite_store_survives_between_runs(tmp_path, capsys):
    db = f"sqlite://{tmp_path / 'state.db'}"
    first = {"deploy": SCRIPT["deploy"], "calls": [{"caller": OWNER, "method": "TransferTo", "args": [B, 150]}]}
    assert run_calls.main(["--script", str(_script(tmp_path, first)), "--store", db, "--quiet"]) == 0
    capsys.readouterr()

    second = {"calls": [{"method": "GetBalance", "args": [B]}]}
    assert run_calls.main(["--script", str(_script(tmp_path, second)), "--store", db, "--quiet"]) == 0
    lines = capsys.readouterr().out.strip().splitlines()
    assert lines == ["get_balance: success -> 150 (0 events)"]


def test_summary_lines(tmp_path, capsys):
    rc = run_calls.main(["--script", str(_script(tmp_path, SCRIPT)), "--store", "memory://", "--quiet"])
    assert rc == 0
    lines = capsys.readouterr().out.strip().splitlines()
    assert lines[0].startswith("deploy: owner=" + OWNER)
    assert lines[3] == "create_request: revert [DUPLICATE_ID] Payment request is already present with given Id."


@pytest.mark.parametrize(
    "obj",
    [
        {"calls": [{"method": "GetBalance", "args": [A]}]},
        {"deploy": {"caller": OWNER}, "calls": []},
        {"deploy": SCRIPT["deploy"], "calls": [{"caller": OWNER, "method": "Mint", "args": [1]}]},
        {"deploy": SCRIPT["deploy"], "calls": "nope"},
        [1, 2, 3],
    ],
)
def test_input_errors_exit_2(tmp_path, obj, capsys):
    rc = run_calls.main(["--script", str(_script(tmp_path, obj)), "--store", "memory://", "--quiet"])
    assert rc == 2
    assert "[run_calls]" in capsys.readouterr().err


def test_missing_script_file(tmp_path):
    assert run_calls.main(["--script", str(tmp_path / "absent.json"), "--quiet"]) == 2


def test_bad_store_uri(tmp_path):
    assert run_calls.main(["--script", str(_script(tmp_path, SCRIPT)), "--store", "redis://x", "--quiet"]) == 2
