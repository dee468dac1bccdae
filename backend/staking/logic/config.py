"""Immutable per-game configuration, validated once at construction."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator

from staking.logic.amounts import UINT256_MAX, pool_deduction
from staking.logic.enums import WinnerReduction

MIN_GAME_DURATION = 60  # seconds


class GameConfig(BaseModel):
    """
    Configuration for a single staking game.

    Never mutated after creation. Bounds are enforced by pydantic, so an
    invalid combination raises ValidationError before any ledger exists.
    """

    model_config = ConfigDict(frozen=True)

    token: str = Field(min_length=1)
    min_participants: int = Field(ge=1)
    max_participants: int
    entry_fee: int = Field(gt=0, le=UINT256_MAX)
    game_duration: int = Field(gt=MIN_GAME_DURATION)
    entry_fee_pool_percentage_deduction: int = Field(ge=0, le=100)
    min_stake_amount: int = Field(gt=0, le=UINT256_MAX)

    # --- Variant switches ---
    winner_reduction: WinnerReduction = WinnerReduction.SCALED
    auto_cancel_below_minimum: bool = True

    @model_validator(mode="after")
    def _check_participant_bounds(self) -> GameConfig:
        if self.max_participants <= self.min_participants:
            raise ValueError(
                f"max_participants ({self.max_participants}) must be greater than "
                f"min_participants ({self.min_participants})",
            )
        return self

    @property
    def pool_deduction(self) -> int:
        """Share of each entry fee that goes into the entry-fee pool (floored)."""
        return pool_deduction(self.entry_fee, self.entry_fee_pool_percentage_deduction)
