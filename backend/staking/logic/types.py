"""
Read-only views of ledger state.

GameLedger never hands out its mutable records; callers get these frozen
models instead.
"""

from pydantic import BaseModel, ConfigDict

from staking.logic.enums import GamePhase


class StakeEntryView(BaseModel):
    model_config = ConfigDict(frozen=True)

    amount: int
    timestamp: int


class ParticipantView(BaseModel):
    model_config = ConfigDict(frozen=True)

    address: str
    join_timestamp: int
    total_staked: int
    stakes: tuple[StakeEntryView, ...]


class LedgerSnapshot(BaseModel):
    """Point-in-time view of a whole ledger."""

    model_config = ConfigDict(frozen=True)

    ledger_id: str
    phase: GamePhase
    participants: tuple[ParticipantView, ...]
    entry_fee_pool: int
    total_stakes: int
    start_time: int
    end_time: int
    winner: str | None
    custody_balance: int
