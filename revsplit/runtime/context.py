"""
revsplit.runtime.context — per-call environment handed to contract code.

A CallContext is pure data: who is calling (`sender`), which contract is
executing (`address`), the operation label used for logs/metrics and the
journal depth the call runs at. Contracts never read ambient globals; they
receive the context from `Host.call(...)`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

from ..types.address import require_address, to_hex


@dataclass(frozen=True)
class CallContext:
    sender: bytes
    address: bytes
    op: str = "call"
    depth: int = 1

    def __post_init__(self) -> None:
        object.__setattr__(self, "sender", require_address(self.sender))
        object.__setattr__(self, "address", require_address(self.address))
        if self.depth < 1:
            raise ValueError(f"depth must be >= 1, got {self.depth}")

    @property
    def is_top_level(self) -> bool:
        return self.depth == 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sender": to_hex(self.sender),
            "address": to_hex(self.address),
            "op": self.op,
            "depth": self.depth,
        }


__all__ = ["CallContext"]
