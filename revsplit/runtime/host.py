"""
revsplit.runtime.host — serial, all-or-nothing execution host.

The Host owns every piece of mutable state in a deployment:

* native balances and contract storage, both behind one `Journal`
* the `EventSink`
* the table of live contract objects (a cache; the persisted truth is the
  reserved kind key in each contract's storage)

Semantics
---------
Every state-changing contract method runs inside `Host.call(...)`:

    with host.call(caller, contract_address, op="splitter.claim") as ctx:
        ...  # reads/writes through host.journal, emits through host.events

`call` opens a journal checkpoint and an event mark. Leaving the block
normally commits; any exception reverts the checkpoint, truncates the events
and re-raises. Calls nest (a splitter calling a token), and a failing inner
call that the outer code turns into an error unwinds everything. A re-entrant
lock serialises callers, so operations are totally ordered.

Reads take the same lock (`Host.view()`), as do writes made outside a call
(`mint_native`, `refuse_payments`, `restore`, `new_address`). A reader on
another thread therefore waits for an in-flight call to commit or revert and
never observes its open journal layer:

    with host.view():
        claimable = splitter.claimable_tokens(0)
        pending = splitter.unregistered_tokens()

Native currency
---------------
`push_payment(src, dst, amount) -> bool` is the push-payment primitive: it
reports failure instead of raising (insufficient balance, or a recipient
that refuses payments, see `refuse_payments`). Callers decide whether a
refusal is fatal.
"""

from __future__ import annotations

import hashlib
import importlib
import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Mapping, Optional, Set, Tuple

from .. import metrics
from ..errors import StateError, TransferError
from ..state.journal import Journal
from ..state.storage import StorageView
from ..types.address import AddressLike, require_address, to_address, to_hex
from .context import CallContext
from .event_sink import EventSink

log = logging.getLogger(__name__)

#: Reserved storage key holding the contract kind (b"token", b"splitter", ...).
KIND_KEY = b"__kind__"

# kind → (module, class) used to re-attach contract objects after a restore.
_KINDS: Dict[str, Tuple[str, str]] = {
    "token": ("revsplit.assets.token", "FungibleToken"),
    "registry": ("revsplit.registry", "MembershipRegistry"),
    "splitter": ("revsplit.splitter", "Splitter"),
    "factory": ("revsplit.factory", "SplitterFactory"),
}


class Host:
    def __init__(self, *, balances: Optional[Mapping[AddressLike, int]] = None) -> None:
        self._balances: Dict[bytes, int] = {}
        self._storage = StorageView()
        self.journal = Journal(self._balances, self._storage)
        self.events = EventSink()
        self._contracts: Dict[bytes, Any] = {}
        self._refusing: Set[bytes] = set()
        self._nonce = 0
        self._lock = threading.RLock()
        for addr, amount in (balances or {}).items():
            self.mint_native(addr, int(amount))

    # ------------------------------------------------------------------ #
    # Base state (snapshots)
    # ------------------------------------------------------------------ #

    @property
    def base_storage(self) -> StorageView:
        return self._storage

    @property
    def base_balances(self) -> Dict[bytes, int]:
        return self._balances

    @property
    def nonce(self) -> int:
        return self._nonce

    def restore(self, *, balances: Mapping[bytes, int], storage: Mapping[str, Mapping[str, str]], nonce: int) -> None:
        """Replace the base state (used by revsplit.state.snapshot)."""
        with self._lock:
            if self.journal.depth():
                raise StateError("cannot restore while a call is open")
            self._balances.clear()
            self._balances.update({require_address(a): int(v) for a, v in balances.items() if int(v)})
            self._storage.import_hex(storage)
            self._contracts.clear()
            self._nonce = int(nonce)

    @contextmanager
    def view(self) -> Iterator["Host"]:
        """Hold the host lock for a consistent read of committed state.

        Re-entrant: views nest, and a view opened inside a call on the same
        thread sees that call's pending writes.
        """
        with self._lock:
            yield self

    # ------------------------------------------------------------------ #
    # Calls
    # ------------------------------------------------------------------ #

    @contextmanager
    def call(self, caller: bytes, address: bytes, *, op: str = "call") -> Iterator[CallContext]:
        with self._lock:
            depth = self.journal.begin()
            mark = self.events.mark()
            try:
                yield CallContext(sender=caller, address=address, op=op, depth=depth)
            except Exception as exc:
                self.journal.revert_to(depth - 1)
                self.events.truncate(mark)
                if depth == 1:
                    code = getattr(exc, "code", exc.__class__.__name__)
                    log.warning("call reverted op=%s caller=%s err=%s", op, to_hex(caller), exc)
                    metrics.observe_op(op, str(code))
                raise
            else:
                self.journal.commit()
                if depth == 1:
                    log.debug("call committed op=%s caller=%s events=%d",
                              op, to_hex(caller), self.events.mark() - mark)
                    metrics.observe_op(op)

    def new_address(self, deployer: bytes, salt: bytes = b"") -> bytes:
        """Fresh deterministic address: sha3(deployer | salt | host nonce)[:20].

        The nonce is not journaled: a reverted deploy still consumes it, so an
        address is never handed out twice.
        """
        with self._lock:
            self._nonce += 1
            nonce = self._nonce
        h = hashlib.sha3_256(
            b"revsplit/create|" + bytes(deployer) + b"|" + bytes(salt) + nonce.to_bytes(8, "big")
        )
        return h.digest()[:20]

    # ------------------------------------------------------------------ #
    # Contracts
    # ------------------------------------------------------------------ #

    def install(self, address: bytes, kind: str, contract: Any) -> None:
        """Mark `address` as holding a contract of `kind` (journaled) and cache the object."""
        if self.kind_of(address):
            raise StateError("address already holds a contract", details={"address": to_hex(address)})
        self.journal.storage_set(address, KIND_KEY, kind.encode("ascii"))
        self._contracts[bytes(address)] = contract

    def bind(self, address: bytes, contract: Any) -> None:
        self._contracts[bytes(address)] = contract

    def kind_of(self, address: bytes) -> Optional[str]:
        with self._lock:
            raw = self.journal.storage_get(address, KIND_KEY)
        return raw.decode("ascii") if raw else None

    def contract_at(self, address: AddressLike) -> Any:
        addr = to_address(address)
        kind = self.kind_of(addr)
        if kind is None:
            raise StateError("no contract at address", details={"address": to_hex(addr)})
        obj = self._contracts.get(addr)
        if obj is None or getattr(obj, "KIND", None) != kind:
            if kind not in _KINDS:
                raise StateError("unknown contract kind", details={"kind": kind})
            mod_name, cls_name = _KINDS[kind]
            cls = getattr(importlib.import_module(mod_name), cls_name)
            obj = cls.at(self, addr)
        return obj

    def contracts(self) -> Dict[bytes, str]:
        """All committed contract addresses with their kind."""
        out: Dict[bytes, str] = {}
        with self._lock:
            for addr in self._storage.addresses():
                kind = self.kind_of(addr)
                if kind:
                    out[addr] = kind
        return out

    # ------------------------------------------------------------------ #
    # Native currency
    # ------------------------------------------------------------------ #

    def balance_of(self, address: AddressLike) -> int:
        addr = to_address(address)
        with self._lock:
            return self.journal.get_balance(addr)

    def mint_native(self, address: AddressLike, amount: int) -> None:
        """Credit native units out of thin air (genesis allocations, faucets, tests)."""
        if amount < 0:
            raise ValueError("amount must be non-negative")
        addr = to_address(address)
        with self._lock:
            self.journal.set_balance(addr, self.journal.get_balance(addr) + int(amount))

    def refuse_payments(self, address: AddressLike, refuse: bool = True) -> None:
        """Make `address` reject (or accept again) incoming native push-payments."""
        addr = to_address(address)
        with self._lock:
            if refuse:
                self._refusing.add(addr)
            else:
                self._refusing.discard(addr)

    def push_payment(self, src: bytes, dst: bytes, amount: int) -> bool:
        if amount < 0:
            raise ValueError("amount must be non-negative")
        if dst in self._refusing:
            return False
        bal = self.journal.get_balance(src)
        if bal < amount:
            return False
        if amount == 0 or src == dst:
            return True
        self.journal.set_balance(src, bal - amount)
        self.journal.set_balance(dst, self.journal.get_balance(dst) + amount)
        return True

    def send_native(self, sender: AddressLike, to: AddressLike, amount: int) -> None:
        """Plain top-level native transfer; raises TransferError if refused."""
        src = to_address(sender)
        dst = to_address(to)
        with self.call(src, dst, op="native.send"):
            if not self.push_payment(src, dst, int(amount)):
                raise TransferError("native payment refused", asset="native", to=to_hex(dst), amount=amount)


__all__ = ["Host", "KIND_KEY"]
