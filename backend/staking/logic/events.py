"""Ledger event models.

Every mutating GameLedger operation returns the events it produced. Events
are notifications only: they are built inside the operation but handed back
to the caller only after the operation has committed.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, ConfigDict

from staking.logic.enums import RemovalReason


class LedgerEventType(StrEnum):
    """Types of ledger events."""

    GAME_STARTED = "game_started"
    GAME_ENDED = "game_ended"
    GAME_CANCELLED = "game_cancelled"
    GAME_RESET = "game_reset"
    PARTICIPANT_JOINED = "participant_joined"
    PARTICIPANT_LEFT = "participant_left"
    STAKED = "staked"
    UNSTAKED = "unstaked"
    WINNER_SELECTED = "winner_selected"
    REWARD_DISTRIBUTED = "reward_distributed"
    FUNDS_WITHDRAWN = "funds_withdrawn"
    REWARDS_FUNDED = "rewards_funded"


class LedgerEvent(BaseModel):
    """Base class for all ledger events."""

    model_config = ConfigDict(frozen=True)

    type: LedgerEventType
    ledger_id: str
    timestamp: int


class GameStartedEvent(LedgerEvent):
    type: Literal[LedgerEventType.GAME_STARTED] = LedgerEventType.GAME_STARTED
    participants: tuple[str, ...]


class GameEndedEvent(LedgerEvent):
    type: Literal[LedgerEventType.GAME_ENDED] = LedgerEventType.GAME_ENDED
    winner: str
    total_paid: int
    dust: int


class GameCancelledEvent(LedgerEvent):
    """Game was cancelled by the owner or because membership dropped below the minimum."""

    type: Literal[LedgerEventType.GAME_CANCELLED] = LedgerEventType.GAME_CANCELLED
    automatic: bool = False


class GameResetEvent(LedgerEvent):
    type: Literal[LedgerEventType.GAME_RESET] = LedgerEventType.GAME_RESET


class ParticipantJoinedEvent(LedgerEvent):
    type: Literal[LedgerEventType.PARTICIPANT_JOINED] = LedgerEventType.PARTICIPANT_JOINED
    participant: str
    entry_fee: int
    pool_contribution: int


class ParticipantLeftEvent(LedgerEvent):
    type: Literal[LedgerEventType.PARTICIPANT_LEFT] = LedgerEventType.PARTICIPANT_LEFT
    participant: str
    reason: RemovalReason
    refund: int
    forfeited_stake: int = 0


class StakedEvent(LedgerEvent):
    type: Literal[LedgerEventType.STAKED] = LedgerEventType.STAKED
    participant: str
    amount: int
    total_staked: int


class UnstakedEvent(LedgerEvent):
    type: Literal[LedgerEventType.UNSTAKED] = LedgerEventType.UNSTAKED
    participant: str
    amount: int
    total_staked: int


class WinnerSelectedEvent(LedgerEvent):
    type: Literal[LedgerEventType.WINNER_SELECTED] = LedgerEventType.WINNER_SELECTED
    winner: str
    participant_count: int


class RewardDistributedEvent(LedgerEvent):
    type: Literal[LedgerEventType.REWARD_DISTRIBUTED] = LedgerEventType.REWARD_DISTRIBUTED
    participant: str
    principal: int
    pool_share: int
    bonus: int
    amount: int


class FundsWithdrawnEvent(LedgerEvent):
    type: Literal[LedgerEventType.FUNDS_WITHDRAWN] = LedgerEventType.FUNDS_WITHDRAWN
    recipient: str
    amount: int


class RewardsFundedEvent(LedgerEvent):
    type: Literal[LedgerEventType.REWARDS_FUNDED] = LedgerEventType.REWARDS_FUNDED
    funder: str
    amount: int
