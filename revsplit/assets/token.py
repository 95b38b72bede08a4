# -*- coding: utf-8 -*-
"""
Fungible token contract
=======================

Storage-backed fungible token living on a revsplit Host. It is the external
asset splitters deposit and distribute.

Highlights
----------
- Explicit `caller` parameters for mutating calls (no ambient sender).
- `transfer` / `transfer_from` *report* failure with False (insufficient
  balance or allowance, or a frozen recipient) and leave state untouched.
- Owner-gated `mint` and `freeze`. A frozen address refuses incoming
  transfers, which is how a failing recipient is modelled.
- Events:
    - b"Transfer" {from, to, value}
    - b"Approval" {owner, spender, value}

Storage layout (under the token address)
----------------------------------------
    b"tok:name" / b"tok:symbol"  -> ASCII bytes
    b"tok:dec"                   -> u256 decimals
    b"tok:total"                 -> u256 total supply
    b"tok:owner"                 -> owner address
    b"tok:bal:" + addr           -> u256 balance
    b"tok:alw:" + owner + spender-> u256 allowance
    b"tok:frz:" + addr           -> b"\\x01" when frozen
"""

from __future__ import annotations

import logging
from typing import Any, Final, Optional

from ..errors import AuthorizationError, SetupError
from ..math import require_u256, u256_add, u256_sub
from ..runtime.contract import Contract
from ..types.address import AddressLike, ZERO_ADDRESS, to_address, to_hex

log = logging.getLogger(__name__)

K_NAME: Final[bytes] = b"tok:name"
K_SYMBOL: Final[bytes] = b"tok:symbol"
K_DECIMALS: Final[bytes] = b"tok:dec"
K_TOTAL: Final[bytes] = b"tok:total"
K_OWNER: Final[bytes] = b"tok:owner"
P_BAL: Final[bytes] = b"tok:bal:"
P_ALLOW: Final[bytes] = b"tok:alw:"
P_FROZEN: Final[bytes] = b"tok:frz:"

EVT_TRANSFER: Final[bytes] = b"Transfer"
EVT_APPROVAL: Final[bytes] = b"Approval"


class FungibleToken(Contract):
    KIND = "token"
    is_native = False

    @classmethod
    def deploy(
        cls,
        host: Any,
        deployer: AddressLike,
        *,
        name: str,
        symbol: str,
        decimals: int = 18,
        supply: int = 0,
        owner: Optional[AddressLike] = None,
    ) -> "FungibleToken":
        creator = to_address(deployer)
        if not name or not symbol:
            raise SetupError("token name and symbol are required")
        if not 0 <= decimals <= 36:
            raise SetupError("decimals out of range", details={"decimals": decimals})
        require_u256(supply)
        token = cls(host, host.new_address(creator, b"token"))
        holder = to_address(owner) if owner is not None else creator
        with token._call(creator, "deploy"):
            host.install(token.address, cls.KIND, token)
            token._set(K_NAME, name.encode("ascii"))
            token._set(K_SYMBOL, symbol.encode("ascii"))
            token._set_u256(K_DECIMALS, decimals)
            token._set(K_OWNER, holder)
            if supply:
                token._mint_to(holder, supply)
        log.info("token deployed address=%s symbol=%s supply=%d", to_hex(token.address), symbol, supply)
        return token

    # ------------------------------------------------------------------ views

    def name(self) -> str:
        return self._get(K_NAME).decode("ascii")

    def symbol(self) -> str:
        return self._get(K_SYMBOL).decode("ascii")

    def decimals(self) -> int:
        return self._get_u256(K_DECIMALS)

    def total_supply(self) -> int:
        return self._get_u256(K_TOTAL)

    def owner(self) -> bytes:
        return self._get(K_OWNER)

    def balance_of(self, addr: AddressLike) -> int:
        return self._get_u256(P_BAL + to_address(addr))

    def allowance(self, owner: AddressLike, spender: AddressLike) -> int:
        return self._get_u256(P_ALLOW + to_address(owner) + to_address(spender))

    def is_frozen(self, addr: AddressLike) -> bool:
        return self._get_flag(P_FROZEN + to_address(addr))

    # -------------------------------------------------------------- mutations

    def transfer(self, caller: AddressLike, to: AddressLike, amount: int) -> bool:
        src, dst = to_address(caller), to_address(to)
        require_u256(amount)
        with self._call(src, "transfer"):
            if not self._can_move(src, dst, amount):
                return False
            self._move(src, dst, amount)
            return True

    def approve(self, caller: AddressLike, spender: AddressLike, amount: int) -> bool:
        owner, sp = to_address(caller), to_address(spender)
        require_u256(amount)
        with self._call(owner, "approve"):
            self._set_u256(P_ALLOW + owner + sp, amount)
            self._emit(EVT_APPROVAL, {"owner": owner, "spender": sp, "value": amount})
        return True

    def transfer_from(self, caller: AddressLike, owner: AddressLike, to: AddressLike, amount: int) -> bool:
        """Spender (`caller`) moves `amount` from `owner` to `to` using its allowance."""
        spender, src, dst = to_address(caller), to_address(owner), to_address(to)
        require_u256(amount)
        with self._call(spender, "transfer_from"):
            key = P_ALLOW + src + spender
            allowed = self._get_u256(key)
            if allowed < amount or not self._can_move(src, dst, amount):
                return False
            self._set_u256(key, u256_sub(allowed, amount))
            self._move(src, dst, amount)
            return True

    def mint(self, caller: AddressLike, to: AddressLike, amount: int) -> None:
        who = to_address(caller)
        require_u256(amount)
        with self._call(who, "mint"):
            self._require_owner(who)
            self._mint_to(to_address(to), amount)

    def freeze(self, caller: AddressLike, addr: AddressLike, frozen: bool = True) -> None:
        who = to_address(caller)
        with self._call(who, "freeze"):
            self._require_owner(who)
            self._set_flag(P_FROZEN + to_address(addr), frozen)

    # ---------------------------------------------------------------- helpers

    def _require_owner(self, caller: bytes) -> None:
        if caller != self.owner():
            raise AuthorizationError("only the token owner", caller=to_hex(caller))

    def _can_move(self, src: bytes, dst: bytes, amount: int) -> bool:
        if self._get_flag(P_FROZEN + dst):
            log.debug("transfer refused: recipient frozen to=%s", to_hex(dst))
            return False
        return self._get_u256(P_BAL + src) >= amount

    def _move(self, src: bytes, dst: bytes, amount: int) -> None:
        if amount and src != dst:
            self._set_u256(P_BAL + src, u256_sub(self._get_u256(P_BAL + src), amount))
            self._set_u256(P_BAL + dst, u256_add(self._get_u256(P_BAL + dst), amount))
        self._emit(EVT_TRANSFER, {"from": src, "to": dst, "value": amount})

    def _mint_to(self, to: bytes, amount: int) -> None:
        self._set_u256(K_TOTAL, u256_add(self.total_supply(), amount))
        self._set_u256(P_BAL + to, u256_add(self._get_u256(P_BAL + to), amount))
        self._emit(EVT_TRANSFER, {"from": ZERO_ADDRESS, "to": to, "value": amount})


__all__ = ["FungibleToken", "EVT_TRANSFER", "EVT_APPROVAL"]
