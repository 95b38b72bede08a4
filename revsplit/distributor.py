"""
revsplit.distributor — the push distributor.

Splits a specific amount right now: every membership, in ascending id order,
is paid `share(weight, total_weight, amount)` from the source. Nothing is
persisted per member; truncation dust stays with the source.

Amounts are clamped to the configured cap; the excess stays at the source for
a follow-up call. An explicit amount above the cap is an AmountOverflowError.

A refused payout raises TransferError and the host reverts the whole call,
including payouts already made earlier in it.
"""

from __future__ import annotations

import logging
from typing import Any, Final, List, Optional, Tuple

from .errors import EmptyOperationError, TransferError
from .math import clamp, require_fits, share
from .runtime.context import CallContext
from .strategy import Payout
from .types.address import to_hex

log = logging.getLogger(__name__)

EVT_DISTRIBUTED: Final[bytes] = b"Distributed"


class PushDistributor:
    kind = "push"

    def __init__(self, splitter: Any) -> None:
        self.s = splitter

    def amount_for(self, asset: Any, source: bytes, amount: Optional[int] = None) -> Tuple[int, int]:
        """(amount to split now, remainder left at the source)."""
        cap = self.s.limits().max_amount
        if amount is not None:
            return require_fits(int(amount), cap), 0
        return clamp(asset.balance_of(source), cap)

    def plan(self, amount: int) -> List[Payout]:
        table = self.s.weights
        registry = self.s.registry()
        total_weight = table.total_weight()
        bits = self.s.limits().accumulator_bits
        out: List[Payout] = []
        for i in table.ids():
            w = table.weight_of(i)
            out.append(Payout(i, registry.owner_of(i), w, share(w, total_weight, amount, accumulator_bits=bits)))
        return out

    def preview(self, amount: Optional[int] = None, *, asset: Any = None, source: Optional[bytes] = None) -> List[Payout]:
        asset = asset if asset is not None else self.s.asset()
        usable, _ = self.amount_for(asset, source if source is not None else self.s.address, amount)
        return self.plan(usable)

    def payout(
        self,
        ctx: CallContext,
        membership_id: int,
        amount: int,
        *,
        asset: Any = None,
        source: Optional[bytes] = None,
    ) -> int:
        if amount == 0:
            return 0
        asset = asset if asset is not None else self.s.asset()
        src = source if source is not None else ctx.address
        owner = self.s.registry().owner_of(membership_id)
        if src == ctx.address:
            ok = asset.transfer(ctx.address, owner, amount)
        else:
            ok = asset.transfer_from(ctx.address, src, owner, amount)
        if not ok:
            raise TransferError("distribution payout refused", asset=to_hex(asset.address), to=to_hex(owner), amount=amount)
        return amount

    def distribute(
        self,
        ctx: CallContext,
        asset: Any,
        source: Optional[bytes] = None,
        amount: Optional[int] = None,
    ) -> List[Payout]:
        src = source if source is not None else ctx.address
        usable, remainder = self.amount_for(asset, src, amount)
        if usable == 0:
            raise EmptyOperationError("nothing to distribute", details={"source": to_hex(src)})
        payouts = self.plan(usable)
        paid = 0
        for p in payouts:
            paid += self.payout(ctx, p.membership_id, p.amount, asset=asset, source=src)
        self.s._emit(EVT_DISTRIBUTED, {
            "asset": asset.address,
            "source": src,
            "amount": usable,
            "paid": paid,
            "remainder": remainder,
        })
        log.debug("distributed asset=%s amount=%d paid=%d remainder=%d",
                  to_hex(asset.address), usable, paid, remainder)
        return payouts


__all__ = ["PushDistributor", "EVT_DISTRIBUTED"]
