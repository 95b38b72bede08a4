"""
revsplit.assets — the asset transfer primitive seen by splitters.

A splitter never touches balances directly; it talks to an `Asset`:

    balance_of(addr) -> int
    transfer(caller, to, amount) -> bool             # caller pays
    transfer_from(caller, owner, to, amount) -> bool # caller spends an allowance

Both transfer calls *report* failure by returning False. The splitter turns a
False into TransferError, which reverts the whole operation.

Implementations:
- token.FungibleToken : storage-backed fungible token contract
- native.NativeAsset  : adapter over the host's native currency (push-payments)
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from .native import NATIVE_ADDRESS, NativeAsset
from .token import FungibleToken


@runtime_checkable
class Asset(Protocol):
    address: bytes

    def balance_of(self, addr: bytes) -> int: ...

    def transfer(self, caller: bytes, to: bytes, amount: int) -> bool: ...

    def transfer_from(self, caller: bytes, owner: bytes, to: bytes, amount: int) -> bool: ...


__all__ = ["Asset", "FungibleToken", "NativeAsset", "NATIVE_ADDRESS"]
