"""
revsplit.metrics — Prometheus counters for splitter operations.

Centralized registry: consumers call `get_registry()` / `generate_latest_text()`
to expose metrics over HTTP (see revsplit.rpc.app).

Exposed metrics (names are prefixed with `revsplit_`):
  - ops_total{op,result}          : Counter — top-level host calls by outcome
  - registered_amount_total       : Counter — units folded into total_deposited
  - claimed_amount_total          : Counter — units paid out by claims
  - distributed_amount_total      : Counter — units paid out by push distributions

Labels:
  - op     : operation name ("deposit", "register", "claim", "distribute", ...)
  - result : "ok" or the failing error code (e.g. "SPLIT_EMPTY")

Amounts can exceed a float's exact range; counters are best-effort gauges of
activity, never an accounting source.
"""

from __future__ import annotations

from typing import Optional

from prometheus_client import (CONTENT_TYPE_LATEST, CollectorRegistry, Counter,
                               generate_latest)

from .config import get_config

_PREFIX = "revsplit_"

_registry: Optional[CollectorRegistry] = None
OPS_TOTAL: Optional[Counter] = None
REGISTERED_AMOUNT: Optional[Counter] = None
CLAIMED_AMOUNT: Optional[Counter] = None
DISTRIBUTED_AMOUNT: Optional[Counter] = None


def _build_metrics() -> None:
    global OPS_TOTAL, REGISTERED_AMOUNT, CLAIMED_AMOUNT, DISTRIBUTED_AMOUNT
    OPS_TOTAL = Counter(
        _PREFIX + "ops_total",
        "Top-level splitter/registry/token calls by outcome",
        labelnames=("op", "result"),
        registry=_registry,
    )
    REGISTERED_AMOUNT = Counter(
        _PREFIX + "registered_amount_total",
        "Units registered into total_deposited",
        registry=_registry,
    )
    CLAIMED_AMOUNT = Counter(
        _PREFIX + "claimed_amount_total",
        "Units paid out by pull claims",
        registry=_registry,
    )
    DISTRIBUTED_AMOUNT = Counter(
        _PREFIX + "distributed_amount_total",
        "Units paid out by push distributions",
        registry=_registry,
    )


def set_registry(registry: CollectorRegistry) -> None:
    """
    Inject a custom CollectorRegistry. Must be called before the first metric
    is recorded; later calls are ignored.
    """
    global _registry
    if _registry is not None:
        return
    _registry = registry
    _build_metrics()


def get_registry() -> CollectorRegistry:
    if _registry is None:
        set_registry(CollectorRegistry(auto_describe=True))
    assert _registry is not None
    return _registry


def _enabled() -> bool:
    return get_config().metrics_enabled


def observe_op(op: str, result: str = "ok") -> None:
    if not _enabled():
        return
    get_registry()
    OPS_TOTAL.labels(op=op, result=result).inc()  # type: ignore[union-attr]


def observe_registered(amount: int) -> None:
    if _enabled() and amount > 0:
        get_registry()
        REGISTERED_AMOUNT.inc(float(amount))  # type: ignore[union-attr]


def observe_claimed(amount: int) -> None:
    if _enabled() and amount > 0:
        get_registry()
        CLAIMED_AMOUNT.inc(float(amount))  # type: ignore[union-attr]


def observe_distributed(amount: int) -> None:
    if _enabled() and amount > 0:
        get_registry()
        DISTRIBUTED_AMOUNT.inc(float(amount))  # type: ignore[union-attr]


def generate_latest_text() -> bytes:
    return generate_latest(get_registry())


__all__ = [
    "CONTENT_TYPE_LATEST",
    "set_registry",
    "get_registry",
    "observe_op",
    "observe_registered",
    "observe_claimed",
    "observe_distributed",
    "generate_latest_text",
]
