"""
revsplit.types.events — event records emitted by contracts.

`Event` is the in-process record (emitting address, name, args). Its
canonical form encodes args as typed {"k","t","v"} entries so logs can be
printed as JSON or stored in snapshots:

    t="b" => bytes as 0x-hex
    t="i" => integer
    t="z" => boolean
    t="s" => string
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Sequence


@dataclass(frozen=True)
class Event:
    address: bytes
    name: bytes
    args: Mapping[str, Any]

    def get(self, key: str, default: Any = None) -> Any:
        return self.args.get(key, default)

    def canonical(self) -> "CanonicalEvent":
        enc: List[Dict[str, Any]] = []
        for k, v in self.args.items():
            if isinstance(v, (bytes, bytearray)):
                enc.append({"k": k, "t": "b", "v": "0x" + bytes(v).hex()})
            elif isinstance(v, bool):
                enc.append({"k": k, "t": "z", "v": v})
            elif isinstance(v, int):
                enc.append({"k": k, "t": "i", "v": int(v)})
            else:
                enc.append({"k": k, "t": "s", "v": str(v)})
        return CanonicalEvent(
            address="0x" + self.address.hex(),
            name=self.name.decode("ascii", errors="replace"),
            args=tuple(enc),
        )


@dataclass(frozen=True)
class CanonicalEvent:
    address: str
    name: str
    args: Sequence[Mapping[str, Any]]

    def to_dict(self) -> Dict[str, Any]:
        return {"address": self.address, "name": self.name, "args": [dict(a) for a in self.args]}


__all__ = ["Event", "CanonicalEvent"]
