"""
payreq.types.status — lifecycle status of a payment request.

Integer codes are part of the persisted record format:
  - CREATED   = 0 : registered, awaiting payment or cancellation
  - CANCELLED = 1 : withdrawn by its creator (terminal)
  - PAID      = 2 : settled by its recipient (terminal)
"""

from __future__ import annotations

from enum import IntEnum


class RequestStatus(IntEnum):
    CREATED = 0
    CANCELLED = 1
    PAID = 2

    @property
    def is_terminal(self) -> bool:
        return self is not RequestStatus.CREATED

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.name.lower()


__all__ = ["RequestStatus"]
