"""
Fee arithmetic and input checks shared by the escrow state machine and the
milestone tracker. Everything here is pure: no database, no settlement.

Amounts are integers in the smallest currency unit. Sums are bounded by
``MAX_AMOUNT`` (the range an escrow amount column can hold) and products by
``UINT256_MAX``; crossing either bound raises instead of wrapping.
"""
from django.utils import timezone

from .errors import ArithmeticOverflowError, ArrayLengthMismatchError

UINT256_MAX = 2 ** 256 - 1
MAX_AMOUNT = 2 ** 63 - 1
ZERO_ADDRESS = '0x' + '0' * 40


def checked_add(a, b, limit=MAX_AMOUNT):
    total = a + b
    if total > limit:
        raise ArithmeticOverflowError(f"Sum exceeds {limit}")
    return total


def checked_mul(a, b, limit=UINT256_MAX):
    product = a * b
    if product > limit:
        raise ArithmeticOverflowError(f"Product exceeds {limit}")
    return product


def calculate_fee(amount, fee_percent):
    """
    Split ``amount`` into ``(fee, remainder)``.

    The fee is ``floor(amount * fee_percent / 100)`` and the remainder takes
    whatever is left, so ``fee + remainder == amount`` always holds.
    """
    fee = checked_mul(amount, fee_percent) // 100
    return fee, amount - fee


def validate_milestone_arrays(len1, len2, len3):
    if not (len1 == len2 == len3):
        raise ArrayLengthMismatchError(
            f"Milestone arrays differ in length ({len1}, {len2}, {len3})"
        )


def calculate_total_amount(amounts):
    total = 0
    for amount in amounts:
        total = checked_add(total, amount)
    return total


def is_valid_address(address):
    return bool(address) and address != ZERO_ADDRESS


def is_deadline_valid(deadline, now=None):
    now = now or timezone.now()
    return deadline is not None and deadline > now
