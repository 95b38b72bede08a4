"""
revsplit.state.journal — journaling writes, checkpoints, revert/commit.

A deterministic, in-memory write journal layered over a native-balance
mapping and a StorageView. It supports nested checkpoints via a stack of
overlays. Writes go to the top overlay; reads consult overlays from
top → base. `commit()` merges the top overlay into the next layer (or the
base state when it is the last one). `revert()` discards the top overlay.

Outside of any checkpoint (depth 0) writes go straight to the base; that is
how genesis balances and test fixtures are seeded.

Intended usage
--------------
    j = Journal(balances, storage)
    j.begin()                       # start a checkpoint
    j.set_balance(addr, 123)
    j.storage_set(addr, b"pl:td", value)
    j.commit()                      # apply to parent/base

The host opens one checkpoint per call, so a failing operation (including a
failing nested call) leaves no trace.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, MutableMapping, Optional

from ..errors import StateError
from .storage import StorageView


def _b(x: bytes | bytearray | memoryview, *, name: str) -> bytes:
    if not isinstance(x, (bytes, bytearray, memoryview)):
        raise TypeError(f"{name} must be bytes-like")
    return bytes(x)


@dataclass
class _Overlay:
    """
    A single journal layer.

    - `balances`: native balances written in this layer.
    - `storage`: staged storage changes. `None` marks a deletion.
    """

    balances: Dict[bytes, int] = field(default_factory=dict)
    storage: Dict[bytes, Dict[bytes, Optional[bytes]]] = field(default_factory=dict)

    def storage_lookup(self, addr: bytes, key: bytes) -> tuple[bool, Optional[bytes]]:
        m = self.storage.get(addr)
        if m is None or key not in m:
            return False, None
        return True, m[key]

    def stage(self, addr: bytes, key: bytes, value: Optional[bytes]) -> None:
        self.storage.setdefault(addr, {})[key] = value


class Journal:
    """
    A copy-on-write write journal with nested checkpoints.

    Parameters
    ----------
    balances : MutableMapping[bytes, int]
        The base (persisted) native balances.
    storage : StorageView
        The base storage view.
    """

    def __init__(self, balances: MutableMapping[bytes, int], storage: StorageView) -> None:
        self._base_balances = balances
        self._base_storage = storage
        self._layers: List[_Overlay] = []

    # ------------------------------------------------------------------ #
    # Checkpointing
    # ------------------------------------------------------------------ #

    def depth(self) -> int:
        """Number of open checkpoints (0 when idle)."""
        return len(self._layers)

    def begin(self) -> int:
        """Start a new checkpoint. Returns the new depth."""
        self._layers.append(_Overlay())
        return len(self._layers)

    def commit(self) -> None:
        """Merge the top overlay into its parent, or into the base if it is the last one."""
        if not self._layers:
            raise StateError("commit without an open checkpoint")
        top = self._layers.pop()
        if self._layers:
            self._merge(self._layers[-1], top)
        else:
            self._apply_to_base(top)

    def revert(self) -> None:
        """Discard the top overlay."""
        if not self._layers:
            raise StateError("revert without an open checkpoint")
        self._layers.pop()

    def revert_to(self, depth: int) -> None:
        """Revert repeatedly until the depth equals `depth`."""
        if depth < 0:
            raise ValueError("depth must be >= 0")
        while len(self._layers) > depth:
            self.revert()


    # ------------------------------------------------------------------ #
    # Native balances
    # ------------------------------------------------------------------ #

    def get_balance(self, addr: bytes) -> int:
        a = _b(addr, name="address")
        for layer in reversed(self._layers):
            if a in layer.balances:
                return layer.balances[a]
        return int(self._base_balances.get(a, 0))

    def set_balance(self, addr: bytes, value: int) -> None:
        a = _b(addr, name="address")
        if value < 0:
            raise StateError("negative balance", details={"address": a.hex(), "value": value})
        if self._layers:
            self._layers[-1].balances[a] = int(value)
        elif value == 0:
            self._base_balances.pop(a, None)
        else:
            self._base_balances[a] = int(value)

    # ------------------------------------------------------------------ #
    # Storage
    # ------------------------------------------------------------------ #

    def storage_get(self, addr: bytes, key: bytes) -> bytes:
        a = _b(addr, name="address")
        k = _b(key, name="key")
        for layer in reversed(self._layers):
            found, v = layer.storage_lookup(a, k)
            if found:
                return v if v is not None else b""
        return self._base_storage.get(a, k)

    def storage_set(self, addr: bytes, key: bytes, value: bytes) -> None:
        a = _b(addr, name="address")
        k = _b(key, name="key")
        v = _b(value, name="value")
        if self._layers:
            self._layers[-1].stage(a, k, v if v else None)
        else:
            self._base_storage.set(a, k, v)

    def storage_delete(self, addr: bytes, key: bytes) -> None:
        self.storage_set(addr, key, b"")

    # ------------------------------------------------------------------ #
    # Merge helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _merge(parent: _Overlay, child: _Overlay) -> None:
        parent.balances.update(child.balances)
        for addr, m in child.storage.items():
            parent.storage.setdefault(addr, {}).update(m)

    def _apply_to_base(self, top: _Overlay) -> None:
        for addr, value in top.balances.items():
            if value == 0:
                self._base_balances.pop(addr, None)
            else:
                self._base_balances[addr] = value
        for addr, m in top.storage.items():
            for key, value in m.items():
                if value is None:
                    self._base_storage.delete(addr, key)
                else:
                    self._base_storage.set(addr, key, value)


__all__ = ["Journal"]
