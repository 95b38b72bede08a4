"""
revsplit.state.storage — per-contract storage (key/value)

A minimal, deterministic key/value storage view keyed by contract address
(`bytes`) and storage key (`bytes`) with `bytes` values. The journal layers
checkpoints on top of it; snapshots export/import it as hex.

Design goals
------------
- Bytes-in / bytes-out API (addresses, keys, values are bytes-like).
- Canonicalization: all inputs are copied to immutable `bytes`.
- "Empty means absent": storing an empty value deletes the key.
- Keys are free-form prefixes (e.g. b"pl:td"); an optional fixed key length
  can still be enforced.

Typical usage
-------------
    sv = StorageView()
    sv.set(addr, b"pl:td", value)
    value = sv.get(addr, b"pl:td")  # value or b""
    sv.delete(addr, b"pl:td")
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, Mapping, MutableMapping, Optional, Tuple


def _as_bytes(x: bytes | bytearray | memoryview, *, name: str) -> bytes:
    if not isinstance(x, (bytes, bytearray, memoryview)):
        raise TypeError(f"{name} must be bytes-like")
    return bytes(x)


def _check_len(x: bytes, *, expected: Optional[int], what: str) -> None:
    if expected is not None and len(x) != expected:
        raise ValueError(f"{what} must be exactly {expected} bytes (got {len(x)})")


@dataclass
class StorageView:
    """
    Parameters
    ----------
    backend :
        Optional external mapping {address: {key: value}}. An internal dict
        is used when omitted.
    key_len :
        If not None, enforce that all storage keys are exactly this length.
    """
    backend: Optional[MutableMapping[bytes, Dict[bytes, bytes]]] = None
    key_len: Optional[int] = None

    _store: MutableMapping[bytes, Dict[bytes, bytes]] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._store = self.backend if self.backend is not None else {}

    # ------------------------------ core ops --------------------------------

    def get(self, address: bytes, key: bytes, default: bytes = b"") -> bytes:
        addr_b = _as_bytes(address, name="address")
        key_b = _as_bytes(key, name="key")
        _check_len(key_b, expected=self.key_len, what="storage key")
        return self._store.get(addr_b, {}).get(key_b, default)

    def has(self, address: bytes, key: bytes) -> bool:
        addr_b = _as_bytes(address, name="address")
        key_b = _as_bytes(key, name="key")
        return key_b in self._store.get(addr_b, {})

    def set(self, address: bytes, key: bytes, value: bytes) -> None:
        """Set value for (address, key). An empty value deletes the key."""
        addr_b = _as_bytes(address, name="address")
        key_b = _as_bytes(key, name="key")
        _check_len(key_b, expected=self.key_len, what="storage key")
        val_b = _as_bytes(value, name="value")

        if len(val_b) == 0:
            self.delete(addr_b, key_b)
            return

        acc = self._store.get(addr_b)
        if acc is None:
            acc = {}
            self._store[addr_b] = acc
        acc[key_b] = val_b

    def delete(self, address: bytes, key: bytes) -> bool:
        """Delete (address, key). Returns True if a key existed and was removed."""
        addr_b = _as_bytes(address, name="address")
        key_b = _as_bytes(key, name="key")
        acc = self._store.get(addr_b)
        if acc is None:
            return False
        removed = acc.pop(key_b, None) is not None
        if not acc:
            self._store.pop(addr_b, None)
        return removed

    # ------------------------------ account ops -----------------------------

    def items(self, address: bytes) -> Iterator[Tuple[bytes, bytes]]:
        """Iterate (key, value) pairs for an address in lexicographic key order."""
        addr_b = _as_bytes(address, name="address")
        acc = self._store.get(addr_b, {})
        for k in sorted(acc.keys()):
            yield k, acc[k]

    def addresses(self) -> Iterator[bytes]:
        yield from sorted(self._store.keys())

    def account_len(self, address: bytes) -> int:
        return len(self._store.get(_as_bytes(address, name="address"), {}))

    # ------------------------------ export/import ---------------------------

    def export_hex(self) -> Dict[str, Dict[str, str]]:
        """Export everything as {addr_hex: {key_hex: value_hex}} (sorted)."""
        return {
            addr.hex(): {k.hex(): v.hex() for k, v in self.items(addr)}
            for addr in self.addresses()
        }

    def import_hex(self, data: Mapping[str, Mapping[str, str]]) -> None:
        """Replace the contents with an `export_hex()` document."""
        self._store.clear()
        for addr_hex, kv in data.items():
            addr = bytes.fromhex(addr_hex)
            for k_hex, v_hex in kv.items():
                self.set(addr, bytes.fromhex(k_hex), bytes.fromhex(v_hex))

    def total_keys(self) -> int:
        return sum(len(acc) for acc in self._store.values())

    def __repr__(self) -> str:  # pragma: no cover (human-only)
        return f"StorageView(accounts={len(self._store)}, total_keys={self.total_keys()})"


__all__ = ["StorageView"]
