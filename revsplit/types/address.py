"""
revsplit.types.address — address coercion helpers.

Addresses are raw 20-byte `bytes` everywhere inside the package. Outer layers
(CLI, HTTP, scenario files) may hand in 0x-hex strings or human labels
("alice"); labels map to a stable address derived with SHA3-256 so scenario
files stay readable and reproducible.
"""

from __future__ import annotations

import hashlib
from typing import Final, Union

ADDRESS_LEN: Final[int] = 20
ZERO_ADDRESS: Final[bytes] = b"\x00" * ADDRESS_LEN

Address = bytes
AddressLike = Union[bytes, bytearray, memoryview, str]


def _strip_0x(s: str) -> str:
    return s[2:] if s.startswith(("0x", "0X")) else s


def to_hex(b: Union[bytes, bytearray, memoryview]) -> str:
    """Encode bytes as 0x-prefixed lowercase hex."""
    return "0x" + bytes(b).hex()


def label_address(label: str) -> bytes:
    """Stable 20-byte address for a human label (tests, scenarios, CLI)."""
    return hashlib.sha3_256(b"revsplit/label|" + label.encode("utf-8")).digest()[:ADDRESS_LEN]


def to_address(value: AddressLike) -> bytes:
    """
    Coerce `value` to a 20-byte address.

    - bytes-like: copied as-is (length checked)
    - "0x…" hex string: decoded (length checked)
    - any other string: treated as a label, see `label_address`
    """
    if isinstance(value, (bytes, bytearray, memoryview)):
        out = bytes(value)
    elif isinstance(value, str):
        s = value.strip()
        if s.startswith(("0x", "0X")):
            h = _strip_0x(s)
            if len(h) % 2 != 0:
                raise ValueError(f"hex address must have even length: {value!r}")
            try:
                out = bytes.fromhex(h)
            except ValueError as e:
                raise ValueError(f"invalid hex address: {value!r}") from e
        else:
            if not s:
                raise ValueError("empty address label")
            return label_address(s)
    else:
        raise TypeError(f"cannot convert {type(value).__name__} to address")
    require_address(out)
    return out


def require_address(addr: bytes) -> bytes:
    if not isinstance(addr, (bytes, bytearray)):
        raise TypeError(f"address must be bytes, got {type(addr).__name__}")
    if len(addr) != ADDRESS_LEN:
        raise ValueError(f"address must be {ADDRESS_LEN} bytes (got {len(addr)})")
    return bytes(addr)


__all__ = [
    "ADDRESS_LEN",
    "ZERO_ADDRESS",
    "Address",
    "AddressLike",
    "to_hex",
    "label_address",
    "to_address",
    "require_address",
]
