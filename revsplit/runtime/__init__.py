"""
revsplit.runtime — host, call context, event sink and the contract base.

Public API (lazily imported):
    from revsplit.runtime import Host, CallContext, EventSink, Contract
"""

from __future__ import annotations

from importlib import import_module
from typing import Any

__all__ = ["Host", "CallContext", "EventSink", "Contract"]

_where = {
    "Host": ".host",
    "CallContext": ".context",
    "EventSink": ".event_sink",
    "Contract": ".contract",
}


def __getattr__(name: str) -> Any:
    mod = _where.get(name)
    if mod is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    return getattr(import_module(mod, __name__), name)


def __dir__() -> list[str]:  # pragma: no cover - cosmetic
    return sorted(list(globals().keys()) + __all__)
