"""
revsplit.strategy — the distribution strategy seam.

A splitter is initialized with one strategy kind and keeps it forever:

- "pull" (revsplit.ledger.PullLedger): funds are registered into a running
  total and each member claims its entitlement whenever it likes.
- "push" (revsplit.distributor.PushDistributor): a specific amount is split
  and paid out to every member right now; nothing per-member is persisted.

Both satisfy `DistributionStrategy`; there is no common base class.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Protocol, runtime_checkable

from .errors import SetupError
from .runtime.context import CallContext

STRATEGY_KINDS = ("pull", "push")


@dataclass(frozen=True)
class Payout:
    """One member's amount in a preview or a distribution."""
    membership_id: int
    owner: bytes
    weight: int
    amount: int

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["owner"] = "0x" + self.owner.hex()
        return d


@runtime_checkable
class DistributionStrategy(Protocol):
    kind: str

    def preview(self) -> List[Payout]:
        """What every member would receive if paid out now."""
        ...

    def payout(self, ctx: CallContext, membership_id: int, amount: int) -> int:
        """Pay `amount` to the current owner of `membership_id`; returns the amount paid."""
        ...


def make_strategy(kind: str, splitter: Any) -> DistributionStrategy:
    if kind == "pull":
        from .ledger import PullLedger
        return PullLedger(splitter)
    if kind == "push":
        from .distributor import PushDistributor
        return PushDistributor(splitter)
    raise SetupError("unknown strategy kind", details={"kind": kind, "allowed": list(STRATEGY_KINDS)})


__all__ = ["Payout", "DistributionStrategy", "make_strategy", "STRATEGY_KINDS"]
