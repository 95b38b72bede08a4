"""
revsplit — weighted revenue splitting for member-owned treasuries.

A fixed set of weighted memberships shares every balance that reaches a
splitter, either by *pulling* (deposit/register, then each member claims) or
by *pushing* (one call pays every member its share right now).

This package exposes only lightweight metadata at import time. The common
symbols are lazily re-exported from their submodules on first access:

    from revsplit import Host, Splitter, FungibleToken

Submodules:
- math:         share calculator and overflow guard
- errors:       typed failures (setup, authorization, empty, overflow, transfer)
- config:       widths/caps, logging level, metrics toggle
- state:        storage view, journal (checkpoint/commit/revert), snapshots
- runtime:      host, call context, event sink, contract base
- assets:       fungible token contract and native-currency adapter
- registry:     membership ownership registry
- members:      weight table
- ledger:       pull ledger (deposit/register/claim)
- distributor:  push distributor (distribute/simulate)
- splitter:     the splitter contract tying it together
- factory:      clone + one-time initialization
- metadata:     membership metadata rendering
"""

from __future__ import annotations

from importlib import import_module as _imp
from typing import Any, Dict, Tuple

from .version import __version__

# Map of public attributes → (submodule, symbol)
_exports: Dict[str, Tuple[str, str]] = {
    "Host": ("runtime.host", "Host"),
    "CallContext": ("runtime.context", "CallContext"),
    "FungibleToken": ("assets.token", "FungibleToken"),
    "NativeAsset": ("assets.native", "NativeAsset"),
    "MembershipRegistry": ("registry", "MembershipRegistry"),
    "Splitter": ("splitter", "Splitter"),
    "SplitterFactory": ("factory", "SplitterFactory"),
    "Payout": ("strategy", "Payout"),
    "share": ("math", "share"),
    "clamp": ("math", "clamp"),
    "get_config": ("config", "get_config"),
    "SplitError": ("errors", "SplitError"),
}

__all__ = tuple(["__version__", *_exports.keys()])


def __getattr__(name: str) -> Any:
    if name in _exports:
        submod, symbol = _exports[name]
        mod = _imp(f"{__name__}.{submod}")
        return getattr(mod, symbol)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__() -> list[str]:  # pragma: no cover
    return sorted(list(globals().keys()) + list(__all__))
