"""
revsplit.registry — membership ownership registry.

One token-like identity per membership. Ids are dense, minted in order from
0 by the registry's minter (the splitter that deployed it). Memberships are
non-transferable unless the admin enables transfers; the admin can always
reassign one (recovery of a lost key).

The splitter reads `owner_of(id)` on every claim and payout, so ownership
changes take effect immediately and nothing is cached on the splitter side.

Storage (under the registry address):
    b"mr:name", b"mr:symbol"   -> ASCII bytes
    b"mr:admin", b"mr:minter"  -> address
    b"mr:xfer"                 -> b"\\x01" when owners may transfer
    b"mr:n"                    -> u256 total supply
    b"mr:o:" + u32(id)         -> owner address
    b"mr:b:" + addr            -> u256 memberships held

Events:
    b"MembershipTransfer" {membership_id, from, to}   (from = zero on mint)
"""

from __future__ import annotations

import logging
from typing import Any, Final, List

from .errors import AuthorizationError, SetupError, UnknownMembershipError
from .runtime.contract import Contract, key_index
from .types.address import ZERO_ADDRESS, AddressLike, to_address, to_hex

log = logging.getLogger(__name__)

K_NAME: Final[bytes] = b"mr:name"
K_SYMBOL: Final[bytes] = b"mr:symbol"
K_ADMIN: Final[bytes] = b"mr:admin"
K_MINTER: Final[bytes] = b"mr:minter"
K_TRANSFERABLE: Final[bytes] = b"mr:xfer"
K_SUPPLY: Final[bytes] = b"mr:n"
P_OWNER: Final[bytes] = b"mr:o:"
P_BALANCE: Final[bytes] = b"mr:b:"

EVT_TRANSFER: Final[bytes] = b"MembershipTransfer"


class MembershipRegistry(Contract):
    KIND = "registry"

    @classmethod
    def deploy(
        cls,
        host: Any,
        deployer: AddressLike,
        *,
        name: str,
        symbol: str,
        admin: AddressLike,
        transferable: bool = False,
    ) -> "MembershipRegistry":
        """Deploy a registry whose minter is `deployer`."""
        minter = to_address(deployer)
        reg = cls(host, host.new_address(minter, b"registry"))
        with reg._call(minter, "deploy"):
            host.install(reg.address, cls.KIND, reg)
            reg._set(K_NAME, name.encode("utf-8"))
            reg._set(K_SYMBOL, symbol.encode("utf-8"))
            reg._set(K_ADMIN, to_address(admin))
            reg._set(K_MINTER, minter)
            reg._set_flag(K_TRANSFERABLE, transferable)
        return reg

    # ------------------------------------------------------------------ views

    def name(self) -> str:
        return self._get(K_NAME).decode("utf-8")

    def symbol(self) -> str:
        return self._get(K_SYMBOL).decode("utf-8")

    def admin(self) -> bytes:
        return self._get(K_ADMIN)

    def minter(self) -> bytes:
        return self._get(K_MINTER)

    def transferable(self) -> bool:
        return self._get_flag(K_TRANSFERABLE)

    def total_supply(self) -> int:
        return self._get_u256(K_SUPPLY)

    def balance_of(self, addr: AddressLike) -> int:
        return self._get_u256(P_BALANCE + to_address(addr))

    def owner_of(self, membership_id: int) -> bytes:
        n = self.total_supply()
        if not 0 <= membership_id < n:
            raise UnknownMembershipError(membership_id, count=n)
        return self._get(key_index(P_OWNER, membership_id))

    def ids_of(self, addr: AddressLike) -> List[int]:
        who = to_address(addr)
        return [i for i in range(self.total_supply()) if self._get(key_index(P_OWNER, i)) == who]

    # -------------------------------------------------------------- mutations

    def mint(self, caller: AddressLike, to: AddressLike) -> int:
        who, dst = to_address(caller), to_address(to)
        with self._call(who, "mint"):
            if who != self.minter():
                raise AuthorizationError("only the minter can mint memberships", caller=to_hex(who))
            if dst == ZERO_ADDRESS:
                raise SetupError("membership owner must not be the zero address")
            new_id = self.total_supply()
            self._set(key_index(P_OWNER, new_id), dst)
            self._set_u256(K_SUPPLY, new_id + 1)
            self._bump(dst, +1)
            self._emit(EVT_TRANSFER, {"membership_id": new_id, "from": ZERO_ADDRESS, "to": dst})
        return new_id

    def transfer(self, caller: AddressLike, membership_id: int, to: AddressLike) -> None:
        """
        Reassign `membership_id` to `to`.

        The current owner may do so only while transfers are enabled; the
        admin may always do so.
        """
        who, dst = to_address(caller), to_address(to)
        with self._call(who, "transfer"):
            owner = self.owner_of(membership_id)
            if who != self.admin():
                if who != owner:
                    raise AuthorizationError("caller does not own membership",
                                             caller=to_hex(who), membership_id=membership_id)
                if not self.transferable():
                    raise AuthorizationError("memberships are not transferable",
                                             caller=to_hex(who), membership_id=membership_id)
            if dst == ZERO_ADDRESS:
                raise SetupError("membership owner must not be the zero address")
            if dst == owner:
                return
            self._set(key_index(P_OWNER, membership_id), dst)
            self._bump(owner, -1)
            self._bump(dst, +1)
            self._emit(EVT_TRANSFER, {"membership_id": membership_id, "from": owner, "to": dst})
        log.info("membership transferred id=%d from=%s to=%s", membership_id, to_hex(owner), to_hex(dst))

    def set_transferable(self, caller: AddressLike, transferable: bool) -> None:
        who = to_address(caller)
        with self._call(who, "set_transferable"):
            if who != self.admin():
                raise AuthorizationError("only the admin can change transferability", caller=to_hex(who))
            self._set_flag(K_TRANSFERABLE, transferable)

    def _bump(self, addr: bytes, delta: int) -> None:
        self._set_u256(P_BALANCE + addr, self._get_u256(P_BALANCE + addr) + delta)


__all__ = ["MembershipRegistry", "EVT_TRANSFER"]
