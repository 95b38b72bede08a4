"""
revsplit.ledger — the pull ledger: reconciliation and claims.

Accounting model
----------------
    total_deposited   running total of everything ever registered (monotone)
    total_claimed     running total of everything ever paid out (monotone)
    claimed[id]       what membership `id` has been paid so far (monotone)

    entitlement(id) = floor(total_deposited * weight[id] / total_weight)
    claimable(id)   = entitlement(id) - claimed[id]

Reconciliation folds newly arrived funds into `total_deposited`:

    unaccounted = balance(self) + total_claimed - total_deposited

so tokens pulled with `deposit` and tokens sent directly and then announced
with `register` are both counted exactly once. Truncation dust stays in the
contract and is picked up by the next reconciliation.

Storage (splitter address, `pl:` prefix):
    b"pl:td"             -> u256 total deposited
    b"pl:tc"             -> u256 total claimed
    b"pl:c:" + u32(id)   -> u256 claimed by membership

All methods taking a `ctx` must run inside the splitter's host call.
"""

from __future__ import annotations

import logging
from typing import Any, Final, List

from .errors import (EmptyOperationError, StateError, TransferError,
                     UnsupportedOperationError)
from .math import require_fits, share, u256_add
from .runtime.context import CallContext
from .runtime.contract import key_index
from .strategy import Payout
from .types.address import AddressLike, to_address, to_hex

log = logging.getLogger(__name__)

K_DEPOSITED: Final[bytes] = b"pl:td"
K_CLAIMED: Final[bytes] = b"pl:tc"
P_CLAIMED: Final[bytes] = b"pl:c:"

EVT_DEPOSITED: Final[bytes] = b"Deposited"
EVT_CLAIMED: Final[bytes] = b"Claimed"


class PullLedger:
    kind = "pull"

    def __init__(self, splitter: Any) -> None:
        self.s = splitter

    # ------------------------------------------------------------------ views

    def total_deposited(self) -> int:
        return self.s._get_u256(K_DEPOSITED)

    def total_claimed(self) -> int:
        return self.s._get_u256(K_CLAIMED)

    def claimed_of(self, membership_id: int) -> int:
        self.s.weights.weight_of(membership_id)
        return self.s._get_u256(key_index(P_CLAIMED, membership_id))

    def entitlement(self, membership_id: int) -> int:
        table = self.s.weights
        return share(
            table.weight_of(membership_id),
            table.total_weight(),
            self.total_deposited(),
            accumulator_bits=self.s.limits().accumulator_bits,
        )

    def claimable(self, membership_id: int) -> int:
        return self.entitlement(membership_id) - self.claimed_of(membership_id)

    def unaccounted(self) -> int:
        balance = self.s.asset().balance_of(self.s.address)
        return max(0, balance + self.total_claimed() - self.total_deposited())

    def preview(self) -> List[Payout]:
        registry = self.s.registry()
        return [
            Payout(i, registry.owner_of(i), self.s.weights.weight_of(i), self.claimable(i))
            for i in self.s.weights.ids()
        ]

    # -------------------------------------------------------------- mutations

    def deposit(self, ctx: CallContext, source: AddressLike) -> int:
        """Pull the whole asset balance of `source`, then reconcile."""
        asset = self.s.asset()
        if getattr(asset, "is_native", False):
            raise UnsupportedOperationError("deposit needs an allowance; native currency has none, send and register instead")
        src = to_address(source)
        amount = asset.balance_of(src)
        if amount == 0:
            raise EmptyOperationError("source has no balance to deposit", details={"source": to_hex(src)})
        require_fits(amount, self.s.limits().max_amount)
        if not asset.transfer_from(ctx.address, src, ctx.address, amount):
            raise TransferError("deposit pull refused", asset=to_hex(asset.address), to=to_hex(ctx.address), amount=amount)
        return self.reconcile(ctx)

    def reconcile(self, ctx: CallContext) -> int:
        amount = self.unaccounted()
        if amount == 0:
            raise EmptyOperationError("no unregistered balance")
        cap = self.s.limits().max_amount
        require_fits(amount, cap)
        total = require_fits(u256_add(self.total_deposited(), amount), cap)
        self.s._set_u256(K_DEPOSITED, total)
        self.s._emit(EVT_DEPOSITED, {"amount": amount, "total": total})
        log.debug("reconciled splitter=%s amount=%d total=%d", to_hex(ctx.address), amount, total)
        return amount

    def payout(self, ctx: CallContext, membership_id: int, amount: int) -> int:
        if amount == 0:
            return 0
        if amount > self.claimable(membership_id):
            raise StateError("payout exceeds claimable", details={"membership_id": membership_id, "amount": amount})
        owner = self.s.registry().owner_of(membership_id)
        key = key_index(P_CLAIMED, membership_id)
        self.s._set_u256(key, u256_add(self.s._get_u256(key), amount))
        self.s._set_u256(K_CLAIMED, u256_add(self.total_claimed(), amount))
        self.s._emit(EVT_CLAIMED, {"membership_id": membership_id, "owner": owner, "amount": amount})
        asset = self.s.asset()
        if not asset.transfer(ctx.address, owner, amount):
            raise TransferError("claim transfer refused", asset=to_hex(asset.address), to=to_hex(owner), amount=amount)
        log.debug("claimed id=%d owner=%s amount=%d", membership_id, to_hex(owner), amount)
        return amount

    def claim(self, ctx: CallContext, membership_id: int) -> int:
        return self.payout(ctx, membership_id, self.claimable(membership_id))


__all__ = ["PullLedger", "EVT_DEPOSITED", "EVT_CLAIMED"]
