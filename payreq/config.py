"""
payreq.config — runtime configuration for the payment-request contract host.

This module centralizes knobs for:
  • Logging (level, JSON vs text)
  • State backend selection (in-memory or SQLite URI) and event log path
  • Feature flags (metrics)
  • Limits (optional description size cap, events per invocation)

Configuration may be provided via environment variables. Safe defaults are
chosen so a local developer run works out of the box.

Environment variables (all optional):
  PAYREQ_LOG_LEVEL            -> DEBUG/INFO/WARNING/ERROR (default: INFO)
  PAYREQ_LOG_JSON             -> 0/1/true/false (default: 0)
  PAYREQ_STORE                -> "memory://" or "sqlite:///path/to/state.db" (default: memory://)
  PAYREQ_EVENTS_PATH          -> JSONL event log path (default: unset → in-memory sink)
  PAYREQ_MAX_DESCRIPTION      -> e.g. "1KiB", "512" (default: unset → no limit)
  PAYREQ_MAX_EVENTS_PER_CALL  -> integer ≥ 2 (default: 64)
  PAYREQ_METRICS              -> 0/1 (default: 1)

Programmatic usage:
    from payreq.config import get_config
    cfg = get_config()
    if cfg.features.metrics:
        ...
"""

from __future__ import annotations

import os
import re
from dataclasses import asdict, dataclass, field
from functools import lru_cache
from typing import Dict, Mapping, Optional, Union

from .errors import ConfigError

# ----------------------------- helpers -------------------------------------


_BOOL_TRUE = {"1", "true", "t", "yes", "y", "on"}
_BOOL_FALSE = {"0", "false", "f", "no", "n", "off"}

_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET")


def _bool_env(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    v = value.strip().lower()
    if v in _BOOL_TRUE:
        return True
    if v in _BOOL_FALSE:
        return False
    return bool(v) if v != "" else default


_SIZE_RE = re.compile(r"^\s*(\d+)\s*([kKmM]i?[bB])?\s*$")

_SIZE_UNITS = {
    "b": 1,
    "kb": 1000,
    "kib": 1024,
    "mb": 1000**2,
    "mib": 1024**2,
}


def _parse_size_bytes(s: Union[str, int]) -> int:
    """
    Parse human-friendly byte sizes:
      "1KiB", "64KB", "512", 512 -> bytes (int)
    """
    if isinstance(s, int):
        if s < 0:
            raise ConfigError("size must be non-negative")
        return s

    m = _SIZE_RE.match(str(s))
    if not m:
        raise ConfigError(f"invalid size: {s!r}")
    unit = (m.group(2) or "B").lower()
    return int(m.group(1)) * _SIZE_UNITS[unit]


def _optional_size(s: Union[str, int, None]) -> Optional[int]:
    if s is None or (isinstance(s, str) and s.strip() == ""):
        return None
    return _parse_size_bytes(s)


def _parse_int(name: str, v: Union[str, int]) -> int:
    try:
        return int(v)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{name} must be an integer, got {v!r}", key=name) from e


# ------------------------------ dataclasses ---------------------------------


@dataclass(frozen=True)
class FeatureFlags:
    metrics: bool = True


MIN_EVENTS_PER_CALL = 2


@dataclass(frozen=True)
class Limits:
    max_description_bytes: Optional[int] = None
    max_events_per_call: int = 64


@dataclass(frozen=True)
class PayreqConfig:
    log_level: str = "INFO"
    log_json: bool = False
    store_uri: str = "memory://"
    events_path: Optional[str] = None
    features: FeatureFlags = field(default_factory=FeatureFlags)
    limits: Limits = field(default_factory=Limits)

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


# ------------------------------ loader --------------------------------------


def _validate(cfg: PayreqConfig) -> PayreqConfig:
    if cfg.log_level not in _LEVELS:
        raise ConfigError(f"unknown log level {cfg.log_level!r}", key="log_level")
    if not (cfg.store_uri.startswith("memory://") or cfg.store_uri.startswith("sqlite://")):
        raise ConfigError(f"unsupported store uri {cfg.store_uri!r}", key="store_uri")
    if cfg.limits.max_description_bytes is not None and cfg.limits.max_description_bytes < 0:
        raise ConfigError("max_description_bytes must be ≥ 0", key="max_description_bytes")
    # create_request and pay_request each raise two events.
    if cfg.limits.max_events_per_call < MIN_EVENTS_PER_CALL:
        raise ConfigError(
            f"max_events_per_call must be ≥ {MIN_EVENTS_PER_CALL}", key="max_events_per_call"
        )
    return cfg


def load_config(
    env: Optional[Mapping[str, str]] = None,
    *,
    overrides: Optional[Mapping[str, Union[str, int, bool, None]]] = None,
) -> PayreqConfig:
    """
    Build a PayreqConfig from environment and optional overrides.

    Args:
        env: mapping to read variables from (default: os.environ)
        overrides: explicit field overrides; keys support:
          'log_level', 'log_json', 'store_uri', 'events_path', 'metrics',
          'max_description_bytes', 'max_events_per_call'
    """
    env = os.environ if env is None else env
    overrides = dict(overrides or {})

    log_level = str(overrides.get("log_level", env.get("PAYREQ_LOG_LEVEL", "INFO"))).strip().upper()
    log_json = (
        bool(overrides["log_json"])
        if "log_json" in overrides
        else _bool_env(env.get("PAYREQ_LOG_JSON"), False)
    )
    store_uri = str(overrides.get("store_uri", env.get("PAYREQ_STORE", "memory://"))).strip()
    events_path = overrides.get("events_path", env.get("PAYREQ_EVENTS_PATH") or None)

    features = FeatureFlags(
        metrics=(
            bool(overrides["metrics"])
            if "metrics" in overrides
            else _bool_env(env.get("PAYREQ_METRICS"), True)
        ),
    )

    limits = Limits(
        max_description_bytes=_optional_size(
            overrides.get("max_description_bytes", env.get("PAYREQ_MAX_DESCRIPTION"))  # type: ignore[arg-type]
        ),
        max_events_per_call=_parse_int(
            "max_events_per_call",
            overrides.get("max_events_per_call", env.get("PAYREQ_MAX_EVENTS_PER_CALL", 64)),  # type: ignore[arg-type]
        ),
    )

    return _validate(
        PayreqConfig(
            log_level=log_level,
            log_json=log_json,
            store_uri=store_uri,
            events_path=(str(events_path) if events_path else None),
            features=features,
            limits=limits,
        )
    )


@lru_cache(maxsize=1)
def get_config() -> PayreqConfig:
    """Cached global config for application bootstraps."""
    return load_config()


def _fmt_bytes(n: Optional[int]) -> str:
    if n is None:
        return "unlimited"
    for unit, div in (("MiB", 1024**2), ("KiB", 1024)):
        if n >= div and n % div == 0:
            return f"{n // div}{unit}"
    return f"{n}B"


def summary(cfg: Optional[PayreqConfig] = None) -> str:
    """One-line summary of the most important knobs."""
    cfg = cfg or get_config()
    return (
        "payreq{"
        f"store={cfg.store_uri}, events={cfg.events_path or 'memory'}, "
        f"log={cfg.log_level}{'/json' if cfg.log_json else ''}, "
        f"metrics={int(cfg.features.metrics)}, "
        f"desc={_fmt_bytes(cfg.limits.max_description_bytes)}, "
        f"events_per_call={cfg.limits.max_events_per_call}"
        "}"
    )


__all__ = [
    "FeatureFlags",
    "Limits",
    "PayreqConfig",
    "load_config",
    "get_config",
    "summary",
]
