"""
HTTP models: typed JSON shapes accepted/returned by the splitter app.

Addresses are strings: 0x-prefixed 20-byte hex, or a label (see
revsplit.types.address). Amounts are plain JSON integers.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..types.address import to_address


def _check_address(v: str) -> str:
    to_address(v)
    return v


class CallerRequest(BaseModel):
    model_config = ConfigDict(frozen=True)
    caller: str

    @field_validator("caller")
    @classmethod
    def _caller_ok(cls, v: str) -> str:
        return _check_address(v)


class DepositRequest(CallerRequest):
    source: str

    @field_validator("source")
    @classmethod
    def _source_ok(cls, v: str) -> str:
        return _check_address(v)


class ClaimRequest(CallerRequest):
    ids: List[int] = Field(min_length=1)

    @field_validator("ids")
    @classmethod
    def _ids_ok(cls, v: List[int]) -> List[int]:
        if any(i < 0 for i in v):
            raise ValueError("membership ids must be non-negative")
        return v


class DistributeRequest(CallerRequest):
    source: Optional[str] = None
    amount: Optional[int] = Field(default=None, ge=0)
    native: bool = False

    @field_validator("source")
    @classmethod
    def _source_ok(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else _check_address(v)


class AmountView(BaseModel):
    model_config = ConfigDict(frozen=True)
    amount: int


class PayoutView(BaseModel):
    model_config = ConfigDict(frozen=True)
    membership_id: int
    owner: str
    weight: int
    amount: int


class MemberView(BaseModel):
    model_config = ConfigDict(frozen=True)
    id: int
    owner: str
    weight: int
    claimed: Optional[int] = None
    claimable: Optional[int] = None
    token_uri: str


class ErrorView(BaseModel):
    model_config = ConfigDict(frozen=True)
    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


__all__ = [
    "CallerRequest",
    "DepositRequest",
    "ClaimRequest",
    "DistributeRequest",
    "AmountView",
    "PayoutView",
    "MemberView",
    "ErrorView",
]
