#!/usr/bin/env python3
"""
payreq.cli.run_calls — replay a JSON call script against a contract store.

This CLI:
  1) Opens the state store (memory:// unless --store / PAYREQ_STORE says otherwise)
  2) Deploys the contract from the script's "deploy" block, if present
  3) Dispatches every entry of "calls" in order; a revert does not stop the run
  4) Prints one summary line per call, or a single JSON document with --json

Script format:
    {
      "deploy": {"caller": "0xaa..", "total_supply": 1000, "name": "Pay",
                 "symbol": "PAY", "service_fee": 10},
      "calls": [
        {"caller": "0xaa..", "method": "CreateRequest",
         "args": [1, "rent", "0xbb..", 100, 500]},
        {"method": "GetBalance", "args": ["0xaa.."]}
      ]
    }

Usage:
    python -m payreq.cli.run_calls --script calls.json \
        [--store sqlite:///state.db] [--events events.jsonl] [--json] [--quiet]

Exit codes: 0 ok, 2 usage or input error.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from .. import logging as plog
from ..config import PayreqConfig, load_config, summary
from ..errors import (BadArgument, ConfigError, ContractError, DispatchError,
                      StoreError)
from ..runtime.context import ExecutionContext
from ..runtime.contract import PaymentRequestContract
from ..runtime.dispatcher import dispatch
from ..state.events import open_sink
from ..version import __version__
from ..state.kv import open_store
from ..types.address import address_hex

log = logging.getLogger(__name__)


def eprint(*args: object) -> None:
    print(*args, file=sys.stderr)


class ScriptError(ValueError):
    """The call script is unreadable or malformed."""


def load_script(path: Path) -> Dict[str, Any]:
    try:
        obj = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ScriptError(f"cannot read script {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ScriptError(f"invalid JSON in {path}: {e}") from e
    if not isinstance(obj, dict):
        raise ScriptError("script must be a JSON object")
    calls = obj.get("calls", [])
    if not isinstance(calls, list) or not all(isinstance(c, dict) and "method" in c for c in calls):
        raise ScriptError('"calls" must be a list of objects with a "method"')
    deploy = obj.get("deploy")
    if deploy is not None:
        missing = [k for k in ("caller", "total_supply", "name", "symbol", "service_fee") if k not in deploy]
        if missing:
            raise ScriptError(f'"deploy" is missing {missing}')
    return obj


def _ctx(call: Mapping[str, Any]) -> Optional[ExecutionContext]:
    caller = call.get("caller")
    return ExecutionContext.of(caller) if caller else None


def run_script(
    script: Mapping[str, Any],
    cfg: PayreqConfig,
) -> Dict[str, Any]:
    """
    Execute `script` and return {"deploy": {...} | None, "results": [CallResult.to_dict()...]}.
    Raises ScriptError for input problems (not deployed, bad call shape).
    """
    store = open_store(cfg.store_uri)
    sink = open_sink(cfg.events_path)
    try:
        deploy_out: Optional[Dict[str, Any]] = None
        d = script.get("deploy")
        if d is not None:
            try:
                ctx = ExecutionContext.of(d["caller"])
                contract = PaymentRequestContract.deploy(
                    ctx,
                    d["total_supply"],
                    d["name"],
                    d["symbol"],
                    d["service_fee"],
                    store=store,
                    sink=sink,
                    config=cfg,
                )
            except ContractError as e:
                raise ScriptError(f"deploy failed: [{e.code}] {e.message}") from e
            deploy_out = {"owner": address_hex(contract.owner()), "total_supply": contract.total_supply()}
        else:
            contract = PaymentRequestContract(store, sink, config=cfg)
            if not contract.access.is_deployed():
                raise ScriptError('store holds no deployed contract and the script has no "deploy" block')

        results: List[Dict[str, Any]] = []
        for i, call in enumerate(script.get("calls", [])):
            log.debug("call #%d %s", i, call["method"])
            try:
                res = dispatch(contract, _ctx(call), call["method"], call.get("args"))
            except (DispatchError, BadArgument) as e:
                raise ScriptError(f"call #{i}: {e.message}") from e
            results.append(res.to_dict())
        return {"deploy": deploy_out, "results": results}
    finally:
        sink.flush()
        sink.close()
        store.close()


def _parse_args(argv: List[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Replay a JSON call script against a payment-request contract.")
    p.add_argument("--script", required=True, type=Path, help="Path to the JSON call script")
    p.add_argument("--store", default=None, help="Store URI (memory:// or sqlite:///path.db)")
    p.add_argument("--events", default=None, help="Append delivered events to this JSONL file")
    p.add_argument("--json", action="store_true", help="Print one JSON document instead of summary lines")
    p.add_argument("--quiet", action="store_true", help="Only print results")
    return p.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    ns = _parse_args(sys.argv[1:] if argv is None else argv)

    overrides: Dict[str, Any] = {}
    if ns.store:
        overrides["store_uri"] = ns.store
    if ns.events:
        overrides["events_path"] = ns.events
    try:
        cfg = load_config(overrides=overrides)
    except ConfigError as e:
        eprint(f"[run_calls] {e.message}")
        return 2

    plog.configure(json=cfg.log_json, level="WARNING" if ns.quiet else cfg.log_level)
    if not ns.quiet:
        eprint(f"[run_calls] {summary(cfg)}")
    log.debug("payreq %s", __version__)

    try:
        script = load_script(ns.script)
        out = run_script(script, cfg)
    except (ScriptError, StoreError) as e:
        eprint(f"[run_calls] {e}")
        return 2

    if ns.json:
        out["version"] = __version__
        print(json.dumps(out, indent=2, sort_keys=True))
    else:
        if out["deploy"] is not None:
            print(f"deploy: owner={out['deploy']['owner']} total_supply={out['deploy']['total_supply']}")
        for r in out["results"]:
            print(_summary_line(r))
    return 0


def _summary_line(r: Mapping[str, Any]) -> str:
    err = r.get("error")
    if err:
        return f"{r['method']}: {r['status']} [{err['code']}] {err['message']}"
    return f"{r['method']}: {r['status']} -> {r['value']!r} ({len(r['events'])} events)"


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
