"""
payreq.runtime.host — invocation boundary: one call, one atomic unit.

`Host.invocation(ctx, method)` wraps a mutating operation:

  1. refuses to open while another invocation is active (REENTRANT);
  2. opens a Journal checkpoint; every state write is staged there;
  3. collects emitted events in a buffer (bounded by
     `Limits.max_events_per_call`, TOO_MANY_EVENTS beyond that);
  4. on clean exit, applies the write-set to the store in one batch, *then*
     delivers the buffered events to the sink with their `log_index`;
  5. on any exception, discards staged writes and buffered events, logs, and
     re-raises unchanged.

Metrics are recorded per invocation (success / false / revert / error).

Read-only getters never open an invocation; they read through the journal,
which holds no staged writes between invocations.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Iterator, List, Optional

from .. import logging as plog
from .. import metrics
from ..config import PayreqConfig, get_config
from ..errors import ContractError, ReentrancyError, Revert
from ..state.events import EventRecord, EventSink, InMemoryEventSink
from ..state.journal import Journal
from ..state.kv import KeyValueStore
from ..types.address import Address, short
from ..types.events import Event
from .context import ExecutionContext

log = logging.getLogger(__name__)


@dataclass
class Invocation:
    """Mutable state of the invocation currently in flight."""

    ctx: ExecutionContext
    method: str
    invocation_id: str
    max_events: int
    events: List[Event] = field(default_factory=list)
    delivered: List[EventRecord] = field(default_factory=list)
    value: Any = None
    writes: int = 0

    @property
    def caller(self) -> Address:
        return self.ctx.caller

    def emit(self, event: Event) -> None:
        if len(self.events) >= self.max_events:
            raise Revert(
                f"event limit exceeded ({self.max_events} per call)",
                code="TOO_MANY_EVENTS",
                data={"limit": self.max_events},
            )
        self.events.append(event)


class Host:
    """
    Owns the Journal over `store` and the event `sink` for one contract
    instance, and serializes invocations on it.
    """

    def __init__(
        self,
        store: KeyValueStore,
        sink: Optional[EventSink] = None,
        *,
        config: Optional[PayreqConfig] = None,
    ) -> None:
        self.store = store
        self.sink: EventSink = sink if sink is not None else InMemoryEventSink()
        self.config = config or get_config()
        self.journal = Journal(store)
        self._active: Optional[Invocation] = None
        self.last: Optional[Invocation] = None

    @property
    def active(self) -> Optional[Invocation]:
        return self._active

    @contextmanager
    def invocation(self, ctx: ExecutionContext, method: str) -> Iterator[Invocation]:
        if self._active is not None:
            raise ReentrancyError(
                f"{method} called while {self._active.method} is in progress",
                active=self._active.method,
                attempted=method,
            )

        inv = Invocation(
            ctx=ctx,
            method=method,
            invocation_id=ctx.invocation_id or plog.new_invocation_id(),
            max_events=self.config.limits.max_events_per_call,
        )
        timer = metrics.start_timer()
        self._active = inv
        try:
            with plog.invocation_scope(inv.invocation_id, method=method, caller=short(ctx.caller)):
                log.debug("invocation begin")
                self.journal.begin()
                try:
                    yield inv
                    self.journal.commit()
                    inv.writes = self.journal.apply()
                except ContractError as e:
                    self.journal.discard()
                    log.info("reverted [%s] %s", e.code, e.message)
                    self._observe(inv, "revert" if isinstance(e, Revert) else "error", timer)
                    raise
                except Exception:
                    self.journal.discard()
                    log.exception("unexpected failure")
                    self._observe(inv, "error", timer)
                    raise
                except BaseException:
                    self.journal.discard()
                    raise

                # State is durable from here on; a sink failure is reported, not rolled back.
                try:
                    for i, ev in enumerate(inv.events):
                        inv.delivered.append(
                            self.sink.append(ev, invocation_id=inv.invocation_id, log_index=i)
                        )
                except Exception:
                    log.exception("event delivery failed after commit (delivered=%d)", len(inv.delivered))
                    self._observe(inv, "error", timer)
                    raise
                log.debug("committed writes=%d events=%d", inv.writes, len(inv.events))
                self._observe(inv, "false" if inv.value is False else "success", timer)
        finally:
            self._active = None
            self.last = inv

    def _observe(self, inv: Invocation, result: str, timer: metrics.CallTimer) -> None:
        if not self.config.features.metrics:
            return
        metrics.observe_call(
            method=inv.method,
            result=result,
            events=len(inv.events) if result in ("success", "false") else 0,
            seconds=timer.elapsed(),
        )


__all__ = ["Host", "Invocation"]
