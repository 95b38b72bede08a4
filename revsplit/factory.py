"""
revsplit.factory — splitter factory with clone + one-time initialization.

`create(...)` installs and initializes a splitter in one atomic call (the
caller becomes the registry admin). `clone(...)` installs an uninitialized
splitter that anyone may `initialize` exactly once later; until then every
operation on it raises SetupError.

Storage (`fac:` prefix):
    b"fac:n"            -> u256 number of splitters created
    b"fac:i:" + u32(i)  -> splitter address

Events:
    b"SplitterCreated" {splitter, creator, kind, index, initialized}
"""

from __future__ import annotations

import logging
from typing import Any, Final, List, Optional, Sequence

from .config import Limits
from .errors import SetupError
from .runtime.contract import Contract, key_index
from .splitter import MemberSpec, Splitter
from .strategy import STRATEGY_KINDS
from .types.address import AddressLike, to_address, to_hex

log = logging.getLogger(__name__)

K_COUNT: Final[bytes] = b"fac:n"
P_INSTANCE: Final[bytes] = b"fac:i:"

EVT_CREATED: Final[bytes] = b"SplitterCreated"


class SplitterFactory(Contract):
    KIND = "factory"

    @classmethod
    def deploy(cls, host: Any, deployer: AddressLike) -> "SplitterFactory":
        creator = to_address(deployer)
        fac = cls(host, host.new_address(creator, b"factory"))
        with fac._call(creator, "deploy"):
            host.install(fac.address, cls.KIND, fac)
        return fac

    def instances(self) -> List[bytes]:
        return [self._get(key_index(P_INSTANCE, i)) for i in range(self._get_u256(K_COUNT))]

    def create(
        self,
        caller: AddressLike,
        kind: str,
        name: str,
        symbol: str,
        members: Sequence[MemberSpec],
        asset: Any = None,
        *,
        transferable: bool = False,
        limits: Optional[Limits] = None,
    ) -> Splitter:
        who = to_address(caller)
        with self._call(who, "create"):
            sp = Splitter.create(self.host, self.address, salt=self._salt())
            sp.initialize(who, name=name, symbol=symbol, members=members, asset=asset,
                          kind=kind, transferable=transferable, limits=limits)
            self._record(sp, who, kind, initialized=True)
        return sp

    def clone(self, caller: AddressLike, kind: str = "pull") -> Splitter:
        """Uninitialized splitter; `kind` is the intended strategy, recorded in the event."""
        who = to_address(caller)
        with self._call(who, "clone"):
            if kind not in STRATEGY_KINDS:
                raise SetupError("unknown strategy kind", details={"kind": kind})
            sp = Splitter.create(self.host, self.address, salt=self._salt())
            self._record(sp, who, kind, initialized=False)
        return sp

    def _salt(self) -> bytes:
        return b"splitter|" + self._get_u256(K_COUNT).to_bytes(8, "big")

    def _record(self, sp: Splitter, creator: bytes, kind: str, *, initialized: bool) -> None:
        index = self._get_u256(K_COUNT)
        self._set(key_index(P_INSTANCE, index), sp.address)
        self._set_u256(K_COUNT, index + 1)
        self._emit(EVT_CREATED, {
            "splitter": sp.address,
            "creator": creator,
            "kind": kind,
            "index": index,
            "initialized": initialized,
        })
        log.info("splitter created factory=%s splitter=%s kind=%s initialized=%s",
                 to_hex(self.address), to_hex(sp.address), kind, initialized)


__all__ = ["SplitterFactory", "EVT_CREATED"]
