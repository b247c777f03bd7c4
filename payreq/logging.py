"""
payreq.logging — process-wide log setup with invocation context fields.

- JSON or concise text formats
- Context-local fields via `contextvars` (invocation_id, method, caller)
- Safe JSON serialization (bytes → hex, dataclasses → dicts)
- stdlib only, so it is importable before anything else

Usage
-----
    from payreq import logging as plog

    plog.configure(json=False, level="INFO")  # once at process start
    log = logging.getLogger(__name__)

    with plog.invocation_scope(method="PayRequest", caller=addr):
        log.info("paying")
"""

from __future__ import annotations

import datetime as _dt
import io
import json as _json
import logging
import sys
import traceback
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import asdict, is_dataclass
from typing import Any, Dict, Iterator, Optional, Union

# ----------------------------
# Context
# ----------------------------

_LOG_CONTEXT: ContextVar[Dict[str, Any]] = ContextVar("_PAYREQ_LOG_CONTEXT", default={})

CONTEXT_KEYS = ("invocation_id", "method", "caller")

_RESERVED = frozenset(
    (
        "name", "msg", "args", "levelname", "levelno", "pathname", "filename",
        "module", "exc_info", "exc_text", "stack_info", "lineno", "funcName",
        "created", "msecs", "relativeCreated", "thread", "threadName",
        "processName", "process", "taskName", "message", "asctime",
    )
)


def context() -> Dict[str, Any]:
    """Return a *copy* of the active logging context."""
    return dict(_LOG_CONTEXT.get())


def bind(**fields: Any) -> None:
    """Merge fields into the active context."""
    cur = dict(_LOG_CONTEXT.get())
    cur.update({k: _coerce_value(v) for k, v in fields.items()})
    _LOG_CONTEXT.set(cur)


def new_invocation_id() -> str:
    return uuid.uuid4().hex[:12]


@contextmanager
def invocation_scope(
    invocation_id: Optional[str] = None, **fields: Any
) -> Iterator[str]:
    """
    Stamp every record emitted inside the scope with an invocation id plus
    any extra fields. Restores the prior context on exit.
    """
    prev = dict(_LOG_CONTEXT.get())
    iid = invocation_id or new_invocation_id()
    try:
        bind(invocation_id=iid, **fields)
        yield iid
    finally:
        _LOG_CONTEXT.set(prev)


# ----------------------------
# Formatters
# ----------------------------


def _coerce_value(v: Any) -> Any:
    if v is None or isinstance(v, (bool, int, float, str, list, dict)):
        return v
    if isinstance(v, (bytes, bytearray)):
        return "0x" + bytes(v).hex()
    if is_dataclass(v) and not isinstance(v, type):
        return asdict(v)
    return str(v)


def _utcnow_iso() -> str:
    return _dt.datetime.now(_dt.timezone.utc).isoformat(timespec="milliseconds")


def _extras(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        k: _coerce_value(v)
        for k, v in record.__dict__.items()
        if not k.startswith("_") and k not in _RESERVED
    }


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": _utcnow_iso(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        payload.update(context())
        for k, v in _extras(record).items():
            payload.setdefault(k, v)
        if record.exc_info:
            payload["err"] = "".join(traceback.format_exception(*record.exc_info)).rstrip()
        return _json.dumps(payload, separators=(",", ":"), default=_coerce_value)


class TextFormatter(logging.Formatter):
    """
    One-liner:
      2026-01-05T12:34:56.789+00:00 | INFO  | payreq.runtime.host | invocation_id=ab12 method=PayRequest | committed writes=3
    """

    def format(self, record: logging.LogRecord) -> str:
        ctx = context()
        ctx_str = " ".join(f"{k}={ctx[k]}" for k in CONTEXT_KEYS if ctx.get(k) is not None)
        extras = " ".join(f"{k}={v}" for k, v in _extras(record).items() if k not in ctx)

        line = f"{_utcnow_iso()} | {record.levelname:<5} | {record.name}"
        if ctx_str:
            line += f" | {ctx_str}"
        line += f" | {record.getMessage()}"
        if extras:
            line += f" {extras}"
        if record.exc_info:
            line += "\n" + "".join(traceback.format_exception(*record.exc_info)).rstrip()
        return line


# ----------------------------
# Public setup API
# ----------------------------

_HANDLER_NAME = "payreq-console"


def _coerce_level(level: Union[str, int]) -> int:
    if isinstance(level, int):
        return level
    lv = logging.getLevelName(str(level).upper())
    return lv if isinstance(lv, int) else logging.INFO


def configure(
    *,
    json: bool = False,
    level: Union[str, int] = "INFO",
    stream: Optional[io.TextIOBase] = None,
) -> logging.Handler:
    """
    Install the console handler on the `payreq` logger. Calling again
    replaces the previous handler instead of stacking another one.
    """
    logger = logging.getLogger("payreq")
    logger.setLevel(_coerce_level(level))
    for h in list(logger.handlers):
        if h.get_name() == _HANDLER_NAME:
            logger.removeHandler(h)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(JSONFormatter() if json else TextFormatter())
    logger.addHandler(handler)
    return handler


__all__ = [
    "CONTEXT_KEYS",
    "context",
    "bind",
    "new_invocation_id",
    "invocation_scope",
    "JSONFormatter",
    "TextFormatter",
    "configure",
]
