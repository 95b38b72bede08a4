# -*- coding: utf-8 -*-
"""
revsplit.math
=============

Share calculator and overflow guard.

Everything here is integer-only and pure. Two styles of safety:

1) **Checked**: raise on overflow/underflow/div-by-zero (`share`, `u256_add`,
   `u256_sub`, `require_fits`).
2) **Clamping**: cap to a bound and hand back the excess (`clamp`).

The ledger reasons about `value * weight` as a wide multiply-then-divide: the
product is computed with Python ints but must fit `accumulator_bits`
(default 256) or the call fails. With amounts capped at `amount_bits` and
weights at `weight_bits`, `amount_bits + weight_bits <= accumulator_bits`
makes that failure unreachable for valid inputs.

Rounding is always floor. Dust (the remainder of floor division) is never
redistributed; it stays with the holder and is picked up by the next
reconciliation or distribution.

Examples
--------
    >>> share(1, 4, 100)
    25
    >>> clamp(10, 7)
    (7, 3)
"""

from __future__ import annotations

from typing import Final, List, Sequence, Tuple

from .errors import AmountOverflowError, SetupError

U256_MAX: Final[int] = (1 << 256) - 1


def bits_max(bits: int) -> int:
    """Largest unsigned value representable in `bits` bits."""
    return (1 << int(bits)) - 1


def require_u256(*xs: int) -> None:
    for x in xs:
        if not isinstance(x, int) or isinstance(x, bool):
            raise TypeError(f"expected int, got {type(x).__name__}")
        if x < 0 or x > U256_MAX:
            raise AmountOverflowError("value outside u256", amount=x, cap=U256_MAX)


def require_fits(amount: int, cap: int) -> int:
    """Return `amount` unchanged, or raise AmountOverflowError if it exceeds `cap`."""
    if amount < 0:
        raise ValueError(f"amount must be non-negative, got {amount}")
    if amount > cap:
        raise AmountOverflowError(amount=amount, cap=cap)
    return amount


def u256_add(x: int, y: int) -> int:
    """Checked add: raise on overflow."""
    require_u256(x, y)
    s = x + y
    if s > U256_MAX:
        raise AmountOverflowError("u256 add overflow", amount=s, cap=U256_MAX)
    return s


def u256_sub(x: int, y: int) -> int:
    """Checked sub: raise on underflow (y > x)."""
    require_u256(x, y)
    if y > x:
        raise ValueError(f"u256 underflow: {x} - {y}")
    return x - y


# ---------------------------------------------------------------------------
# Share calculator
# ---------------------------------------------------------------------------

def share(weight: int, total_weight: int, value: int, *, accumulator_bits: int = 256) -> int:
    """
    floor(value * weight / total_weight).

    Raises SetupError when `total_weight` is zero (no division is defined) and
    AmountOverflowError when the product does not fit the accumulator.
    """
    if weight < 0 or value < 0:
        raise ValueError("weight and value must be non-negative")
    if total_weight <= 0:
        raise SetupError("total weight is zero", details={"total_weight": int(total_weight)})
    if weight == 0 or value == 0:
        return 0
    product = value * weight
    if product.bit_length() > accumulator_bits:
        raise AmountOverflowError("share product exceeds accumulator", amount=value, cap=bits_max(accumulator_bits))
    return product // total_weight


def shares(weights: Sequence[int], value: int, *, accumulator_bits: int = 256) -> List[int]:
    """Shares of `value` for every weight, in order."""
    total = sum(weights)
    return [share(w, total, value, accumulator_bits=accumulator_bits) for w in weights]


def dust(weights: Sequence[int], value: int) -> int:
    """Truncation remainder left over by `shares(weights, value)`; always < len(weights)."""
    return value - sum(shares(weights, value))


# ---------------------------------------------------------------------------
# Overflow guard
# ---------------------------------------------------------------------------

def clamp(amount: int, cap: int) -> Tuple[int, int]:
    """
    Split `amount` into (usable, remainder) where usable = min(amount, cap).

    The remainder is not consumed; callers leave it where it is for a
    follow-up call.
    """
    if amount < 0:
        raise ValueError(f"amount must be non-negative, got {amount}")
    if cap < 0:
        raise ValueError(f"cap must be non-negative, got {cap}")
    if amount <= cap:
        return amount, 0
    return cap, amount - cap


__all__ = [
    "U256_MAX",
    "bits_max",
    "require_u256",
    "require_fits",
    "u256_add",
    "u256_sub",
    "share",
    "shares",
    "dust",
    "clamp",
]
