"""
payreq.state.journal — staged writes with nested checkpoints.

A stack of overlays sits on top of a KeyValueStore. Writes go to the top
overlay; reads consult overlays from top → base and then the store. Nothing
reaches the store until `apply()` writes the merged root overlay in a single
atomic batch.

    j = Journal(store)
    j.begin()                       # checkpoint for one invocation
    j.set("Balance:0x01", enc_u64(5))
    j.commit()                      # merge into the root overlay
    j.apply()                       # one atomic batch to the store

`revert()` discards the top overlay; `discard()` drops every overlay.

Deletion is staged as an explicit ``None`` marker so it shadows lower layers.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from .kv import KeyValueStore, apply_writes

_Overlay = Dict[str, Optional[bytes]]


class Journal:
    """
    Copy-on-write write journal over `store`.

    The root overlay (depth 1) always exists; `begin()` pushes a checkpoint
    and returns the new depth.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store
        self._layers: List[_Overlay] = [{}]

    @property
    def store(self) -> KeyValueStore:
        return self._store

    # ------------------------------------------------------------------ #
    # Checkpointing
    # ------------------------------------------------------------------ #

    def depth(self) -> int:
        return len(self._layers)

    def begin(self) -> int:
        self._layers.append({})
        return len(self._layers)

    def commit(self) -> None:
        """Merge the top overlay into its parent."""
        if len(self._layers) < 2:
            raise RuntimeError("commit without matching begin")
        top = self._layers.pop()
        self._layers[-1].update(top)

    def revert(self) -> None:
        """Discard the top overlay."""
        if len(self._layers) < 2:
            raise RuntimeError("revert without matching begin")
        self._layers.pop()

    # ------------------------------------------------------------------ #
    # Reads / writes
    # ------------------------------------------------------------------ #

    def get(self, key: str) -> Optional[bytes]:
        for layer in reversed(self._layers):
            if key in layer:
                return layer[key]
        return self._store.get(key)

    def set(self, key: str, value: bytes) -> None:
        self._layers[-1][key] = bytes(value)

    def delete(self, key: str) -> None:
        self._layers[-1][key] = None

    def staged(self) -> Dict[str, Optional[bytes]]:
        """Effective write-set across all overlays (top wins)."""
        out: Dict[str, Optional[bytes]] = {}
        for layer in self._layers:
            out.update(layer)
        return out

    # ------------------------------------------------------------------ #
    # Persistence
    # ------------------------------------------------------------------ #

    def apply(self) -> int:
        """
        Write the root overlay to the store in one batch and clear it.
        Only valid when no checkpoint is open. Returns keys written.
        """
        if len(self._layers) != 1:
            raise RuntimeError(f"cannot apply with {len(self._layers) - 1} open checkpoint(s)")
        writes = self._layers[0]
        n = apply_writes(self._store, writes)
        self._layers[0] = {}
        return n

    def discard(self) -> None:
        """Drop everything staged, at every depth."""
        self._layers = [{}]


__all__ = ["Journal"]
