import pytest

from revsplit.errors import AmountOverflowError, SetupError
from revsplit.math import (U256_MAX, bits_max, clamp, dust, require_fits,
                           share, shares, u256_add, u256_sub)


def test_share_floors():
    assert share(1, 4, 100) == 25
    assert share(1, 3, 100) == 33
    assert share(2, 3, 100) == 66


def test_zero_weight_or_value_is_zero():
    assert share(0, 4, 100) == 0
    assert share(3, 4, 0) == 0


def test_zero_total_weight_fails_fast():
    with pytest.raises(SetupError):
        share(1, 0, 100)


def test_product_must_fit_accumulator():
    with pytest.raises(AmountOverflowError) as ei:
        share(2, 3, 1 << 255)
    assert isinstance(ei.value, OverflowError)
    # exactly 256 bits is fine
    assert share(1, 2, U256_MAX) == U256_MAX // 2


def test_shares_and_dust():
    assert shares([1, 1, 2], 100) == [25, 25, 50]
    assert shares([1, 1, 1], 100) == [33, 33, 33]
    assert dust([1, 1, 1], 100) == 1
    assert dust([1, 1, 2], 7) == 2


def test_clamp():
    assert clamp(10, 7) == (7, 3)
    assert clamp(5, 7) == (5, 0)
    assert clamp(0, 0) == (0, 0)
    with pytest.raises(ValueError):
        clamp(-1, 7)


def test_require_fits():
    cap = bits_max(8)
    assert require_fits(255, cap) == 255
    with pytest.raises(AmountOverflowError) as ei:
        require_fits(256, cap)
    assert ei.value.details == {"amount": 256, "cap_bits": 8}


def test_checked_u256():
    assert u256_add(1, 2) == 3
    with pytest.raises(AmountOverflowError):
        u256_add(U256_MAX, 1)
    with pytest.raises(ValueError):
        u256_sub(1, 2)
