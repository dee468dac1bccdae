"""
Integer-only money arithmetic.

All amounts are unsigned integers in the token's smallest unit, bounded by
the 256-bit range of the token ledger. Division always floors; rounding
residue is never redistributed.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from staking.logic.exceptions import ArithmeticOverflowError, InvariantViolationError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from staking.logic.state import StakeEntry

UINT256_MAX = (1 << 256) - 1


def checked_add(a: int, b: int) -> int:
    result = a + b
    if result > UINT256_MAX:
        raise ArithmeticOverflowError(f"{a} + {b} exceeds uint256")
    return result


def checked_sub(a: int, b: int) -> int:
    if b > a:
        raise ArithmeticOverflowError(f"{a} - {b} underflows uint256")
    return a - b


def checked_mul(a: int, b: int) -> int:
    result = a * b
    if result > UINT256_MAX:
        raise ArithmeticOverflowError(f"{a} * {b} exceeds uint256")
    return result


def pool_deduction(entry_fee: int, percentage: int) -> int:
    """Portion of one entry fee credited to the entry-fee pool, floored."""
    return checked_mul(entry_fee, percentage) // 100


def prorated_refund(elapsed: int, entry_fee: int, duration: int) -> int:
    """
    Linear time-prorated entry fee refund.

    Elapsed time is clamped to [0, duration] so the refund never exceeds the
    fee that was paid, whatever the clock reports.
    """
    elapsed = max(0, min(elapsed, duration))
    return checked_mul(elapsed, entry_fee) // duration


def pool_share(pool: int, staked: int, total_staked: int) -> int:
    """
    Floor of pool * staked / total_staked.

    A zero total with a non-zero stake means the ledger totals drifted apart;
    surface that instead of letting ZeroDivisionError escape.
    """
    if staked == 0:
        return 0
    if total_staked == 0:
        raise InvariantViolationError(f"participant holds {staked} staked but total_stakes is 0")
    if staked > total_staked:
        raise InvariantViolationError(f"participant stake {staked} exceeds total_stakes {total_staked}")
    return checked_mul(pool, staked) // total_staked


def stake_seconds(entries: Iterable[StakeEntry], end_time: int) -> int:
    """Sum of amount * (end_time - deposit time) over every stake entry."""
    total = 0
    for entry in entries:
        held = end_time - entry.timestamp
        if held < 0:
            raise InvariantViolationError(f"stake entry at {entry.timestamp} is later than end time {end_time}")
        total = checked_add(total, checked_mul(entry.amount, held))
    return total
