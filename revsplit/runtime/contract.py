"""
revsplit.runtime.contract — base class for host-resident contracts.

A contract is a thin Python object bound to (host, address). It holds no
state of its own: every value lives in the host's journaled storage under the
contract's address, so reverting a call reverts the contract too.

Integers are stored as 32-byte big-endian u256; zero is stored as "absent".
Per-id keys append the id as 4 big-endian bytes to a prefix, which keeps the
keys of one table ordered.
"""

from __future__ import annotations

from typing import Any, ClassVar, ContextManager, Mapping, Type, TypeVar

from ..math import U256_MAX
from ..types.address import AddressLike, require_address, to_address
from .context import CallContext

C = TypeVar("C", bound="Contract")


def u256_bytes(x: int) -> bytes:
    if x < 0 or x > U256_MAX:
        raise ValueError(f"value outside u256: {x}")
    return int(x).to_bytes(32, "big")


def key_index(prefix: bytes, i: int) -> bytes:
    if i < 0 or i > 0xFFFFFFFF:
        raise ValueError(f"index out of range: {i}")
    return prefix + int(i).to_bytes(4, "big")


class Contract:
    KIND: ClassVar[str] = "contract"

    def __init__(self, host: Any, address: bytes) -> None:
        self.host = host
        self.address = require_address(address)

    @classmethod
    def at(cls: Type[C], host: Any, address: AddressLike) -> C:
        """Attach to an existing deployment without touching storage."""
        obj = cls(host, to_address(address))
        host.bind(obj.address, obj)
        return obj

    # -- calls & events -----------------------------------------------------

    def _call(self, caller: AddressLike, op: str) -> ContextManager[CallContext]:
        return self.host.call(to_address(caller), self.address, op=f"{self.KIND}.{op}")

    def _emit(self, name: bytes, args: Mapping[str, Any]) -> None:
        self.host.events.emit(self.address, name, args)

    # -- storage --------------------------------------------------------------

    def _get(self, key: bytes) -> bytes:
        with self.host.view():
            return self.host.journal.storage_get(self.address, key)

    def _set(self, key: bytes, value: bytes) -> None:
        self.host.journal.storage_set(self.address, key, value)

    def _get_u256(self, key: bytes) -> int:
        raw = self._get(key)
        if not raw:
            return 0
        if len(raw) != 32:
            raise ValueError(f"corrupt u256 slot {key!r}")
        return int.from_bytes(raw, "big")

    def _set_u256(self, key: bytes, value: int) -> None:
        self._set(key, u256_bytes(value) if value else b"")

    def _get_flag(self, key: bytes) -> bool:
        return self._get(key) == b"\x01"

    def _set_flag(self, key: bytes, on: bool) -> None:
        self._set(key, b"\x01" if on else b"")

    def __repr__(self) -> str:  # pragma: no cover - human-only
        return f"{self.__class__.__name__}(0x{self.address.hex()})"


__all__ = ["Contract", "key_index", "u256_bytes"]
