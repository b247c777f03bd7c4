"""
payreq.metrics — Prometheus counters & histograms for contract invocations.

Exposed metrics (names are prefixed with `payreq_`):
  - calls_total{method,result}   : Counter — invocations by outcome
  - events_emitted{method}       : Histogram — events delivered per invocation
  - call_seconds{method}         : Histogram — wall time per invocation

Labels:
  - result ∈ {success, false, revert, error}
  - method ∈ the contract's snake_case operation names, or "other"

`get_registry()` / `generate_latest_text()` expose the private registry for a
scrape endpoint. Recording a metric never fails an invocation.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

log = logging.getLogger(__name__)

_PREFIX = "payreq_"

KNOWN_METHODS = frozenset(
    (
        "deploy",
        "transfer_to",
        "transfer_from",
        "approve",
        "revise_service_fee",
        "create_request",
        "pay_request",
        "cancel_request",
    )
)

_EVENTS_BUCKETS = (0, 1, 2, 3, 4, 8, 16, 32, 64)
_SECONDS_BUCKETS = (0.0001, 0.00025, 0.0005, 0.001, 0.0025, 0.005, 0.01, 0.025, 0.05, 0.1, 0.5, 1.0)


# ------------------------------ registry & ctor ------------------------------

_registry: Optional[CollectorRegistry] = None

CALLS_TOTAL: Counter
EVENTS_EMITTED: Histogram
CALL_SECONDS: Histogram


def get_registry() -> CollectorRegistry:
    """Return the metrics registry, creating one on first use."""
    global _registry
    if _registry is None:
        _registry = CollectorRegistry()
        _build_metrics(_registry)
    return _registry


def _build_metrics(reg: CollectorRegistry) -> None:
    global CALLS_TOTAL, EVENTS_EMITTED, CALL_SECONDS

    CALLS_TOTAL = Counter(
        _PREFIX + "calls_total",
        "Contract invocations (by method and result).",
        labelnames=("method", "result"),
        registry=reg,
    )
    EVENTS_EMITTED = Histogram(
        _PREFIX + "events_emitted",
        "Events delivered per committed invocation.",
        labelnames=("method",),
        buckets=_EVENTS_BUCKETS,
        registry=reg,
    )
    CALL_SECONDS = Histogram(
        _PREFIX + "call_seconds",
        "Wall time per invocation.",
        labelnames=("method",),
        buckets=_SECONDS_BUCKETS,
        registry=reg,
    )


# ------------------------------ helpers -------------------------------------


def _norm_result(s: str) -> str:
    s = (s or "").strip().lower()
    if s in {"ok", "success"}:
        return "success"
    if s in {"false", "rejected"}:
        return "false"
    if s == "revert":
        return "revert"
    return "error"


def _norm_method(s: str) -> str:
    s = (s or "").strip().lower()
    return s if s in KNOWN_METHODS else "other"


def observe_call(*, method: str, result: str, events: int = 0, seconds: Optional[float] = None) -> None:
    """
    Record one invocation.

    Args:
        method:  snake_case operation name (unknown names are bucketed as "other")
        result:  {'success','false','revert','error'}
        events:  number of events delivered (≥ 0)
        seconds: wall time of the invocation, if measured
    """
    get_registry()
    m = _norm_method(method)
    try:
        CALLS_TOTAL.labels(method=m, result=_norm_result(result)).inc()
        if events >= 0:
            EVENTS_EMITTED.labels(method=m).observe(float(events))
        if seconds is not None:
            CALL_SECONDS.labels(method=m).observe(max(0.0, seconds))
    except ValueError:
        log.debug("metrics: observation dropped", exc_info=True)


@dataclass
class CallTimer:
    t0: float

    def elapsed(self) -> float:
        return max(0.0, time.perf_counter() - self.t0)


def start_timer() -> CallTimer:
    return CallTimer(t0=time.perf_counter())


def counter_value(method: str, result: str) -> float:
    """Current value of calls_total for a label pair (0.0 when never seen)."""
    reg = get_registry()
    v = reg.get_sample_value(
        _PREFIX + "calls_total",
        {"method": _norm_method(method), "result": _norm_result(result)},
    )
    return v or 0.0


# ------------------------------ exposition ----------------------------------


def generate_latest_text() -> bytes:
    """Prometheus exposition format for the current registry."""
    return generate_latest(get_registry())


__all__ = [
    "KNOWN_METHODS",
    "get_registry",
    "observe_call",
    "start_timer",
    "counter_value",
    "generate_latest_text",
    "CONTENT_TYPE_LATEST",
]
