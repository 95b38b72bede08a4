# -*- coding: utf-8 -*-
"""
revsplit.splitter
=================

The splitter contract: a fixed set of weighted memberships sharing every
balance of one asset (a token, or the native currency) that reaches it.

Lifecycle
---------
    Uninitialized --initialize()--> Initialized

`Splitter.deploy(...)` creates and initializes in one atomic call. A clone
made by the factory starts uninitialized; its `initialize(...)` runs exactly
once and any other operation on it fails with SetupError until then.

Initialization writes the weight table, deploys a MembershipRegistry (the
splitter is its minter, the initializer its admin) and mints one membership
per (owner, weight) pair, ids dense from 0. Weights and the arithmetic limits
are persisted and never change afterwards.

Strategies
----------
- pull: `deposit`, `register`, `claim`, `claim_many`, `claimable_tokens`,
  `unregistered_tokens`
- push: `distribute`, `distribute_batch`, `distribute_native`, `simulate`,
  `simulate_native`

Calling an operation the splitter's strategy does not offer raises
UnsupportedOperationError. `preview()` works for both.

Authorization
-------------
Every entrypoint requires the caller to hold at least one membership. `claim`
additionally requires the caller to own the id, read from the registry at
call time.

Storage (`sp:` prefix; see also members.py and ledger.py)
-------------------------------------------------------
    b"sp:init"                       -> b"\\x01" once initialized
    b"sp:name" / b"sp:symbol"        -> utf-8 bytes
    b"sp:kind"                       -> b"pull" | b"push"
    b"sp:asset"                      -> token address (absent for native)
    b"sp:reg"                        -> registry address
    b"sp:ab" / "sp:wb" / "sp:ib" / "sp:cb" -> u256 limit widths

Events
------
- b"Initialized" {kind, members, total_weight, asset, registry}
- b"Deposited"   {amount, total}
- b"Claimed"     {membership_id, owner, amount}
- b"Distributed" {asset, source, amount, paid, remainder}
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Final, Iterable, List, Optional, Sequence, Tuple

from . import metrics
from .assets.native import NATIVE_ADDRESS, NativeAsset
from .config import Limits, get_config
from .errors import (AlreadyInitializedError, AuthorizationError,
                     EmptyOperationError, SetupError,
                     UnsupportedOperationError)
from .ledger import K_CLAIMED, K_DEPOSITED, PullLedger
from .members import WeightTable, validate_weights
from .registry import MembershipRegistry
from .runtime.contract import Contract
from .strategy import STRATEGY_KINDS, DistributionStrategy, Payout, make_strategy
from .types.address import AddressLike, to_address, to_hex

log = logging.getLogger(__name__)

K_INIT: Final[bytes] = b"sp:init"
K_NAME: Final[bytes] = b"sp:name"
K_SYMBOL: Final[bytes] = b"sp:symbol"
K_KIND: Final[bytes] = b"sp:kind"
K_ASSET: Final[bytes] = b"sp:asset"
K_REGISTRY: Final[bytes] = b"sp:reg"
K_AMOUNT_BITS: Final[bytes] = b"sp:ab"
K_WEIGHT_BITS: Final[bytes] = b"sp:wb"
K_ID_BITS: Final[bytes] = b"sp:ib"
K_ACC_BITS: Final[bytes] = b"sp:cb"

EVT_INITIALIZED: Final[bytes] = b"Initialized"

MemberSpec = Tuple[AddressLike, int]


class Splitter(Contract):
    KIND = "splitter"

    def __init__(self, host: Any, address: bytes) -> None:
        super().__init__(host, address)
        self.weights = WeightTable(self)
        self._strategy: Optional[DistributionStrategy] = None

    # ------------------------------------------------------------------ #
    # Deployment
    # ------------------------------------------------------------------ #

    @classmethod
    def create(cls, host: Any, deployer: AddressLike, *, salt: bytes = b"splitter") -> "Splitter":
        """Install an uninitialized splitter (clone)."""
        creator = to_address(deployer)
        sp = cls(host, host.new_address(creator, salt))
        with sp._call(creator, "create"):
            host.install(sp.address, cls.KIND, sp)
        return sp

    @classmethod
    def deploy(
        cls,
        host: Any,
        deployer: AddressLike,
        *,
        name: str,
        symbol: str,
        members: Sequence[MemberSpec],
        asset: Any = None,
        kind: str = "pull",
        transferable: bool = False,
        limits: Optional[Limits] = None,
    ) -> "Splitter":
        creator = to_address(deployer)
        sp = cls(host, host.new_address(creator, b"splitter"))
        with sp._call(creator, "deploy"):
            host.install(sp.address, cls.KIND, sp)
            sp.initialize(creator, name=name, symbol=symbol, members=members, asset=asset,
                          kind=kind, transferable=transferable, limits=limits)
        return sp

    def initialize(
        self,
        caller: AddressLike,
        *,
        name: str,
        symbol: str,
        members: Sequence[MemberSpec],
        asset: Any = None,
        kind: str = "pull",
        transferable: bool = False,
        limits: Optional[Limits] = None,
    ) -> None:
        who = to_address(caller)
        lim = limits if limits is not None else get_config().limits
        try:
            lim.validate()
        except ValueError as e:
            raise SetupError(str(e)) from e

        with self._call(who, "initialize"):
            if self._get_flag(K_INIT):
                raise AlreadyInitializedError(address=to_hex(self.address))
            if kind not in STRATEGY_KINDS:
                raise SetupError("unknown strategy kind", details={"kind": kind})
            owners, weights = _split_members(members)
            total = validate_weights(weights, max_weight=lim.max_weight, max_members=lim.max_members)
            asset_addr = self._asset_address_for_init(asset)

            self._set(K_NAME, name.encode("utf-8"))
            self._set(K_SYMBOL, symbol.encode("utf-8"))
            self._set(K_KIND, kind.encode("ascii"))
            self._set(K_ASSET, asset_addr)
            self._set_u256(K_AMOUNT_BITS, lim.amount_bits)
            self._set_u256(K_WEIGHT_BITS, lim.weight_bits)
            self._set_u256(K_ID_BITS, lim.id_bits)
            self._set_u256(K_ACC_BITS, lim.accumulator_bits)
            self.weights.write(weights)

            registry = MembershipRegistry.deploy(
                self.host, self.address, name=name, symbol=symbol, admin=who, transferable=transferable
            )
            self._set(K_REGISTRY, registry.address)
            for owner in owners:
                registry.mint(self.address, owner)

            self._set_flag(K_INIT, True)
            self._emit(EVT_INITIALIZED, {
                "kind": kind,
                "members": len(weights),
                "total_weight": total,
                "asset": asset_addr or NATIVE_ADDRESS,
                "registry": registry.address,
            })
        log.info("splitter initialized address=%s kind=%s members=%d total_weight=%d",
                 to_hex(self.address), kind, len(weights), total)

    def _asset_address_for_init(self, asset: Any) -> bytes:
        if asset is None or isinstance(asset, NativeAsset) or asset == "native":
            return b""
        addr = asset.address if isinstance(asset, Contract) else to_address(asset)
        if self.host.kind_of(addr) != "token":
            raise SetupError("asset is not a token contract", details={"asset": to_hex(addr)})
        return addr

    # ------------------------------------------------------------------ #
    # Views
    # ------------------------------------------------------------------ #

    def is_initialized(self) -> bool:
        return self._get_flag(K_INIT)

    def name(self) -> str:
        return self._get(K_NAME).decode("utf-8")

    def symbol(self) -> str:
        return self._get(K_SYMBOL).decode("utf-8")

    def kind(self) -> str:
        self._require_init()
        return self._get(K_KIND).decode("ascii")

    def limits(self) -> Limits:
        self._require_init()
        return Limits(
            amount_bits=self._get_u256(K_AMOUNT_BITS),
            weight_bits=self._get_u256(K_WEIGHT_BITS),
            id_bits=self._get_u256(K_ID_BITS),
            accumulator_bits=self._get_u256(K_ACC_BITS),
        )

    def asset(self) -> Any:
        self._require_init()
        addr = self._get(K_ASSET)
        return self.host.contract_at(addr) if addr else NativeAsset(self.host)

    def registry(self) -> MembershipRegistry:
        self._require_init()
        return self.host.contract_at(self._get(K_REGISTRY))

    @property
    def strategy(self) -> DistributionStrategy:
        kind = self.kind()
        if self._strategy is None or self._strategy.kind != kind:
            self._strategy = make_strategy(kind, self)
        return self._strategy

    def total_weight(self) -> int:
        self._require_init()
        return self.weights.total_weight()

    def total_supply(self) -> int:
        return self.registry().total_supply()

    def total_deposited(self) -> int:
        return self._get_u256(K_DEPOSITED)

    def total_claimed(self) -> int:
        return self._get_u256(K_CLAIMED)

    def weight_of(self, membership_id: int) -> int:
        self._require_init()
        return self.weights.weight_of(membership_id)

    def owner_of(self, membership_id: int) -> bytes:
        return self.registry().owner_of(membership_id)

    def claimed_of(self, membership_id: int) -> int:
        self._require_init()
        return PullLedger(self).claimed_of(membership_id)

    def claimable_tokens(self, membership_id: int) -> int:
        with self.host.view():
            return self._pull().claimable(membership_id)

    def unregistered_tokens(self) -> int:
        with self.host.view():
            return self._pull().unaccounted()

    def preview(self) -> List[Payout]:
        with self.host.view():
            return self.strategy.preview()

    def simulate(self, asset: Any = None, source: Optional[AddressLike] = None, amount: Optional[int] = None) -> List[Payout]:
        src = to_address(source) if source is not None else self.address
        with self.host.view():
            push = self._push()
            return push.preview(amount, asset=self._resolve_asset(asset), source=src)

    def simulate_native(self) -> List[Payout]:
        with self.host.view():
            return self._push().preview(asset=NativeAsset(self.host), source=self.address)

    # ------------------------------------------------------------------ #
    # Pull entrypoints
    # ------------------------------------------------------------------ #

    def deposit(self, caller: AddressLike, source: AddressLike) -> int:
        """Pull the whole balance of `source` (which must have approved us) and register it."""
        with self._call(caller, "deposit") as ctx:
            ledger = self._pull()
            self._require_member(ctx.sender)
            amount = ledger.deposit(ctx, source)
        metrics.observe_registered(amount)
        log.info("deposit splitter=%s amount=%d total=%d", to_hex(self.address), amount, self.total_deposited())
        return amount

    def register(self, caller: AddressLike) -> int:
        """Fold funds that arrived by direct transfer into total_deposited."""
        with self._call(caller, "register") as ctx:
            ledger = self._pull()
            self._require_member(ctx.sender)
            amount = ledger.reconcile(ctx)
        metrics.observe_registered(amount)
        log.info("register splitter=%s amount=%d total=%d", to_hex(self.address), amount, self.total_deposited())
        return amount

    def claim(self, caller: AddressLike, membership_id: int) -> int:
        with self._call(caller, "claim") as ctx:
            ledger = self._pull()
            self._require_owner(ctx.sender, membership_id)
            amount = ledger.claim(ctx, membership_id)
        metrics.observe_claimed(amount)
        log.info("claim splitter=%s id=%d amount=%d", to_hex(self.address), membership_id, amount)
        return amount

    def claim_many(self, caller: AddressLike, membership_ids: Iterable[int]) -> int:
        """Claim several ids in the given order, all or nothing. Returns the total paid."""
        ids = list(membership_ids)
        with self._call(caller, "claim_many") as ctx:
            ledger = self._pull()
            if not ids:
                raise EmptyOperationError("no membership ids given")
            paid = 0
            for membership_id in ids:
                self._require_owner(ctx.sender, membership_id)
                paid += ledger.claim(ctx, membership_id)
        metrics.observe_claimed(paid)
        log.info("claim_many splitter=%s ids=%s amount=%d", to_hex(self.address), ids, paid)
        return paid

    # ------------------------------------------------------------------ #
    # Push entrypoints
    # ------------------------------------------------------------------ #

    def distribute(
        self,
        caller: AddressLike,
        asset: Any = None,
        source: Optional[AddressLike] = None,
        amount: Optional[int] = None,
    ) -> List[Payout]:
        with self._call(caller, "distribute") as ctx:
            push = self._push()
            self._require_member(ctx.sender)
            src = to_address(source) if source is not None else None
            payouts = push.distribute(ctx, self._resolve_asset(asset), src, amount)
        self._observe_payouts("distribute", payouts)
        return payouts

    def distribute_batch(
        self,
        caller: AddressLike,
        assets: Sequence[Any],
        source: Optional[AddressLike] = None,
    ) -> List[List[Payout]]:
        """One full distribution per asset, in order, inside a single atomic call."""
        with self._call(caller, "distribute_batch") as ctx:
            push = self._push()
            self._require_member(ctx.sender)
            if not assets:
                raise EmptyOperationError("no assets given")
            src = to_address(source) if source is not None else None
            batches = [push.distribute(ctx, self._resolve_asset(a), src) for a in assets]
        for payouts in batches:
            self._observe_payouts("distribute_batch", payouts)
        return batches

    def distribute_native(self, caller: AddressLike) -> List[Payout]:
        with self._call(caller, "distribute_native") as ctx:
            push = self._push()
            self._require_member(ctx.sender)
            payouts = push.distribute(ctx, NativeAsset(self.host))
        self._observe_payouts("distribute_native", payouts)
        return payouts

    # ------------------------------------------------------------------ #
    # Presentation
    # ------------------------------------------------------------------ #

    def summary(self) -> Dict[str, Any]:
        with self.host.view():
            return self._summary()

    def _summary(self) -> Dict[str, Any]:
        self._require_init()
        kind = self.kind()
        asset_addr = self._get(K_ASSET)
        members = []
        for i in self.weights.ids():
            row: Dict[str, Any] = {
                "id": i,
                "owner": to_hex(self.owner_of(i)),
                "weight": self.weights.weight_of(i),
            }
            if kind == "pull":
                row["claimed"] = self.claimed_of(i)
                row["claimable"] = self.claimable_tokens(i)
            members.append(row)
        out: Dict[str, Any] = {
            "address": to_hex(self.address),
            "name": self.name(),
            "symbol": self.symbol(),
            "kind": kind,
            "asset": to_hex(asset_addr) if asset_addr else "native",
            "registry": to_hex(self._get(K_REGISTRY)),
            "total_weight": self.total_weight(),
            "total_supply": self.total_supply(),
            "members": members,
        }
        if kind == "pull":
            out["total_deposited"] = self.total_deposited()
            out["total_claimed"] = self.total_claimed()
            out["unregistered"] = self.unregistered_tokens()
        return out

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _require_init(self) -> None:
        if not self._get_flag(K_INIT):
            raise SetupError("splitter is not initialized", details={"address": to_hex(self.address)})

    def _pull(self) -> PullLedger:
        strategy = self.strategy
        if not isinstance(strategy, PullLedger):
            raise UnsupportedOperationError("operation requires a pull splitter", details={"kind": strategy.kind})
        return strategy

    def _push(self) -> Any:
        strategy = self.strategy
        if strategy.kind != "push":
            raise UnsupportedOperationError("operation requires a push splitter", details={"kind": strategy.kind})
        return strategy

    def _require_member(self, caller: bytes) -> None:
        if self.registry().balance_of(caller) == 0:
            raise AuthorizationError("caller holds no membership", caller=to_hex(caller))

    def _require_owner(self, caller: bytes, membership_id: int) -> None:
        self._require_member(caller)
        if self.registry().owner_of(membership_id) != caller:
            raise AuthorizationError("caller does not own membership",
                                     caller=to_hex(caller), membership_id=membership_id)

    def _resolve_asset(self, asset: Any) -> Any:
        if asset is None:
            return self.asset()
        if isinstance(asset, NativeAsset) or asset == "native":
            return NativeAsset(self.host)
        if isinstance(asset, Contract):
            addr = asset.address
        else:
            addr = to_address(asset)
        if self.host.kind_of(addr) != "token":
            raise SetupError("asset is not a token contract", details={"asset": to_hex(addr)})
        return self.host.contract_at(addr)

    def _observe_payouts(self, op: str, payouts: List[Payout]) -> None:
        paid = sum(p.amount for p in payouts)
        metrics.observe_distributed(paid)
        log.info("%s splitter=%s members=%d paid=%d", op, to_hex(self.address), len(payouts), paid)


def _split_members(members: Sequence[MemberSpec]) -> Tuple[List[bytes], List[int]]:
    owners: List[bytes] = []
    weights: List[int] = []
    for i, entry in enumerate(members):
        try:
            owner, weight = entry
            owners.append(to_address(owner))
        except (TypeError, ValueError) as e:
            raise SetupError("invalid membership entry", details={"index": i, "error": str(e)}) from e
        weights.append(weight)
    return owners, weights


__all__ = ["Splitter", "EVT_INITIALIZED"]
