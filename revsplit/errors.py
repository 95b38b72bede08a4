"""
revsplit.errors — typed failures for splitters, registries and assets.

Every public operation either commits completely or raises one of these and
commits nothing (the host reverts the call's journal layer). The errors are
small, serializable and safe to surface over the CLI/HTTP layers.

Hierarchy
---------
SplitError (base)
 ├─ SetupError                 : bad membership list, zero total weight, uninitialized
 │   └─ AlreadyInitializedError: one-time initializer called twice
 ├─ AuthorizationError         : caller holds no membership / does not own the id
 ├─ EmptyOperationError        : nothing to deposit, register, claim or distribute
 ├─ AmountOverflowError        : amount exceeds the configured cap (also OverflowError)
 ├─ TransferError              : asset transfer or native push-payment refused
 ├─ UnknownMembershipError     : membership id outside the table
 ├─ UnsupportedOperationError  : operation not offered by this strategy/asset
 └─ StateError                 : host/journal misuse (e.g. snapshot mid-call)

None of these are retried internally; the caller resolves the cause (approve,
fund, use the right account) and submits the whole operation again.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Mapping, Optional


class SplitError(Exception):
    """Base class for revsplit domain errors."""

    code: str = "SPLIT_ERROR"

    def __init__(self, message: str = "", *, details: Optional[Mapping[str, Any]] = None) -> None:
        self.message = message or self.__class__.__name__
        self.details = dict(details or {})
        super().__init__(self.__str__())

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}

    def __str__(self) -> str:  # pragma: no cover - trivial
        if self.details:
            try:
                packed = json.dumps(self.details, sort_keys=True, separators=(",", ":"), default=str)
            except (TypeError, ValueError):
                packed = str(self.details)
            return f"{self.code}: {self.message} [{packed}]"
        return f"{self.code}: {self.message}"


class SetupError(SplitError):
    """Invalid construction input or use of an uninitialized instance."""
    code = "SPLIT_SETUP"


class AlreadyInitializedError(SetupError):
    code = "SPLIT_ALREADY_INITIALIZED"

    def __init__(self, *, address: Optional[str] = None, message: str = "already initialized") -> None:
        super().__init__(message, details={"address": address} if address else None)


class AuthorizationError(SplitError):
    """
    Caller is not allowed to run the operation: it holds no membership, or it
    does not own the specific membership id it is acting on.
    """
    code = "SPLIT_UNAUTHORIZED"

    def __init__(
        self,
        message: str = "unauthorized",
        *,
        caller: Optional[str] = None,
        membership_id: Optional[int] = None,
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        d = dict(details or {})
        if caller is not None:
            d.setdefault("caller", caller)
        if membership_id is not None:
            d.setdefault("membership_id", int(membership_id))
        super().__init__(message, details=d)


class EmptyOperationError(SplitError):
    """Nothing to do: zero source balance, no unaccounted funds, empty batch."""
    code = "SPLIT_EMPTY"


class AmountOverflowError(SplitError, OverflowError):
    """An amount does not fit the ledger's fixed accumulator width."""
    code = "SPLIT_OVERFLOW"

    def __init__(
        self,
        message: str = "amount exceeds cap",
        *,
        amount: Optional[int] = None,
        cap: Optional[int] = None,
    ) -> None:
        d: Dict[str, Any] = {}
        if amount is not None:
            d["amount"] = int(amount)
        if cap is not None:
            d["cap_bits"] = int(cap).bit_length()
        super().__init__(message, details=d)


class TransferError(SplitError):
    """The asset transfer primitive (or native push-payment) reported failure."""
    code = "SPLIT_TRANSFER_FAILED"

    def __init__(
        self,
        message: str = "transfer failed",
        *,
        asset: Optional[str] = None,
        to: Optional[str] = None,
        amount: Optional[int] = None,
    ) -> None:
        d: Dict[str, Any] = {}
        if asset is not None:
            d["asset"] = asset
        if to is not None:
            d["to"] = to
        if amount is not None:
            d["amount"] = int(amount)
        super().__init__(message, details=d)


class UnknownMembershipError(SplitError):
    code = "SPLIT_UNKNOWN_MEMBERSHIP"

    def __init__(self, membership_id: int, *, count: Optional[int] = None) -> None:
        d: Dict[str, Any] = {"membership_id": int(membership_id)}
        if count is not None:
            d["count"] = int(count)
        super().__init__("unknown membership id", details=d)


class UnsupportedOperationError(SplitError):
    code = "SPLIT_UNSUPPORTED"


class StateError(SplitError):
    code = "SPLIT_STATE"


def error_to_dict(err: BaseException) -> Dict[str, Any]:
    """Map any exception to a JSON-safe error payload."""
    if isinstance(err, SplitError):
        return err.to_dict()
    return {"code": "INTERNAL", "message": str(err) or err.__class__.__name__, "details": {}}


__all__ = [
    "SplitError",
    "SetupError",
    "AlreadyInitializedError",
    "AuthorizationError",
    "EmptyOperationError",
    "AmountOverflowError",
    "TransferError",
    "UnknownMembershipError",
    "UnsupportedOperationError",
    "StateError",
    "error_to_dict",
]
