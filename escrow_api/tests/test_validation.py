from datetime import timedelta

import pytest
from django.utils import timezone

from escrow.errors import ArithmeticOverflowError, ArrayLengthMismatchError
from escrow.validation import (
    MAX_AMOUNT,
    UINT256_MAX,
    ZERO_ADDRESS,
    calculate_fee,
    calculate_total_amount,
    checked_add,
    checked_mul,
    is_deadline_valid,
    is_valid_address,
    validate_milestone_arrays,
)


@pytest.mark.parametrize('amount, percent, expected', [
    (1000, 20, (200, 800)),
    (1000, 5, (50, 950)),
    (999, 5, (49, 950)),
    (1, 30, (0, 1)),
    (0, 20, (0, 0)),
    (1000, 0, (0, 1000)),
])
def test_calculate_fee_floors_and_conserves(amount, percent, expected):
    fee, remainder = calculate_fee(amount, percent)
    assert (fee, remainder) == expected
    assert fee + remainder == amount


def test_calculate_fee_overflow_raises():
    with pytest.raises(ArithmeticOverflowError):
        calculate_fee(UINT256_MAX, 2)


def test_checked_arithmetic_bounds():
    assert checked_add(MAX_AMOUNT - 1, 1) == MAX_AMOUNT
    with pytest.raises(ArithmeticOverflowError):
        checked_add(MAX_AMOUNT, 1)
    assert checked_mul(2 ** 128, 2 ** 127) == 2 ** 255
    with pytest.raises(ArithmeticOverflowError):
        checked_mul(2 ** 128, 2 ** 128)


def test_validate_milestone_arrays():
    validate_milestone_arrays(0, 0, 0)
    validate_milestone_arrays(3, 3, 3)
    with pytest.raises(ArrayLengthMismatchError):
        validate_milestone_arrays(2, 3, 2)


def test_calculate_total_amount():
    assert calculate_total_amount([]) == 0
    assert calculate_total_amount([300, 700]) == 1000
    with pytest.raises(ArithmeticOverflowError):
        calculate_total_amount([MAX_AMOUNT, 1])


def test_is_valid_address():
    assert is_valid_address('0xabc')
    assert not is_valid_address('')
    assert not is_valid_address(None)
    assert not is_valid_address(ZERO_ADDRESS)


def test_is_deadline_valid_is_strict():
    now = timezone.now()
    assert is_deadline_valid(now + timedelta(seconds=1), now)
    assert not is_deadline_valid(now, now)
    assert not is_deadline_valid(now - timedelta(days=1), now)
    assert not is_deadline_valid(None, now)
