"""
revsplit.state — deterministic state layer under the host.

Submodules:
- storage:   per-contract key/value view
- journal:   journaling writes, checkpoints, revert/commit
- snapshot:  dump/restore a host as CBOR or JSON
"""

from __future__ import annotations

from importlib import import_module as _imp
from typing import Any, Dict, Tuple

_exports: Dict[str, Tuple[str, str]] = {
    "StorageView": ("storage", "StorageView"),
    "Journal": ("journal", "Journal"),
    "dumps": ("snapshot", "dumps"),
    "loads": ("snapshot", "loads"),
}

__all__ = tuple(_exports.keys())


def __getattr__(name: str) -> Any:
    if name in _exports:
        submod, symbol = _exports[name]
        return getattr(_imp(f"{__name__}.{submod}"), symbol)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
