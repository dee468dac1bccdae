"""
Reward distribution at game end.

Two pools are paid out:
- the entry-fee pool, split across every participant with a stake in
  proportion to total_staked / total_stakes (floored; the residue stays in
  custody as dust);
- the time-weighted bonus, paid to the winner only: the sum over the
  winner's stake entries of amount * (end_time - deposit time).

Each participant's outstanding stake is returned as principal in the same
payout. Stakes are cleared as each payout is computed, so a participant can
never be paid twice from the same ledger state.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

from staking.logic.amounts import checked_add, checked_sub, pool_share, stake_seconds
from staking.logic.exceptions import InvariantViolationError

if TYPE_CHECKING:
    from staking.logic.state import ParticipantBook


class Payout(BaseModel):
    """One participant's share of the distribution."""

    model_config = ConfigDict(frozen=True)

    address: str
    principal: int
    pool_share: int
    bonus: int = 0

    @property
    def total(self) -> int:
        return self.principal + self.pool_share + self.bonus


class Distribution(BaseModel):
    """Full result of settling one game."""

    model_config = ConfigDict(frozen=True)

    winner: str
    end_time: int
    entry_fee_pool: int
    total_stakes: int
    winner_bonus: int
    payouts: tuple[Payout, ...]
    dust: int

    @property
    def total(self) -> int:
        return sum(payout.total for payout in self.payouts)


def settle_participants(
    book: ParticipantBook,
    *,
    entry_fee_pool: int,
    total_stakes: int,
    winner: str,
    end_time: int,
) -> Distribution:
    """
    Compute every participant's payout, clearing their stakes as it goes.

    Visits each participant exactly once in book order. The caller performs
    the transfers and rolls the book back if any of them fails.
    """
    if winner not in book:
        raise InvariantViolationError(f"winner {winner} is not a participant")

    payouts: list[Payout] = []
    distributed_pool = 0
    returned_principal = 0
    winner_bonus = 0
    for record in book:
        share = pool_share(entry_fee_pool, record.total_staked, total_stakes)
        bonus = stake_seconds(record.stakes, end_time) if record.address == winner else 0
        principal = record.clear_stakes()
        payouts.append(Payout(address=record.address, principal=principal, pool_share=share, bonus=bonus))
        distributed_pool = checked_add(distributed_pool, share)
        returned_principal = checked_add(returned_principal, principal)
        if bonus:
            winner_bonus = bonus

    if returned_principal != total_stakes:
        raise InvariantViolationError(f"returned principal {returned_principal} != total_stakes {total_stakes}")

    return Distribution(
        winner=winner,
        end_time=end_time,
        entry_fee_pool=entry_fee_pool,
        total_stakes=total_stakes,
        winner_bonus=winner_bonus,
        payouts=tuple(payouts),
        dust=checked_sub(entry_fee_pool, distributed_pool),
    )
