"""
revsplit.assets.native — native currency as an Asset.

The native currency has no allowances: `transfer_from` is unsupported and a
splitter can only distribute native units it already holds. Transfers use the
host's push-payment primitive, which reports a refusing recipient as False.
"""

from __future__ import annotations

from typing import Any

from ..errors import UnsupportedOperationError
from ..types.address import ZERO_ADDRESS, AddressLike, to_address

#: Asset identity used in events for the native currency.
NATIVE_ADDRESS = ZERO_ADDRESS


class NativeAsset:
    address = NATIVE_ADDRESS
    is_native = True

    def __init__(self, host: Any) -> None:
        self.host = host

    def balance_of(self, addr: AddressLike) -> int:
        return self.host.balance_of(addr)

    def transfer(self, caller: AddressLike, to: AddressLike, amount: int) -> bool:
        return self.host.push_payment(to_address(caller), to_address(to), int(amount))

    def transfer_from(self, caller: AddressLike, owner: AddressLike, to: AddressLike, amount: int) -> bool:
        raise UnsupportedOperationError("native currency has no allowances")

    def __repr__(self) -> str:  # pragma: no cover
        return "NativeAsset()"


__all__ = ["NativeAsset", "NATIVE_ADDRESS"]
