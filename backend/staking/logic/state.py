"""
Ledger state models for the staking game.

LedgerState is the complete mutable state of one game. GameLedger deep-copies
it at the start of every mutating operation and restores the copy when the
operation fails, which is what makes operations all-or-nothing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from staking.logic.enums import GamePhase
from staking.logic.exceptions import (
    AlreadyParticipantError,
    InvalidAmountError,
    InvariantViolationError,
    NotParticipantError,
)

if TYPE_CHECKING:
    from collections.abc import Iterator


@dataclass
class StakeEntry:
    """One deposit event."""

    amount: int
    timestamp: int


@dataclass
class Participant:
    """
    A participant's stake record.

    total_staked always equals the sum of stakes[*].amount; entries are kept
    in deposit order and are never merged.
    """

    address: str
    join_timestamp: int
    total_staked: int = 0
    stakes: list[StakeEntry] = field(default_factory=list)

    def add_stake(self, amount: int, timestamp: int) -> None:
        self.stakes.append(StakeEntry(amount=amount, timestamp=timestamp))
        self.total_staked += amount

    def remove_stake(self, amount: int) -> None:
        """
        Remove amount from the newest entries first.

        Fully consumed entries are popped; the last touched entry may be
        partially reduced. Older entries are left intact.
        """
        if amount <= 0 or amount > self.total_staked:
            raise InvalidAmountError(f"cannot unstake {amount} of {self.total_staked} staked")
        remaining = amount
        while remaining > 0:
            newest = self.stakes[-1]
            if newest.amount <= remaining:
                remaining -= newest.amount
                self.stakes.pop()
            else:
                newest.amount -= remaining
                remaining = 0
        self.total_staked -= amount

    def clear_stakes(self) -> int:
        """Drop every entry and return the amount that was staked."""
        amount = self.total_staked
        self.stakes.clear()
        self.total_staked = 0
        return amount

    def check_consistency(self) -> None:
        entry_sum = sum(entry.amount for entry in self.stakes)
        if entry_sum != self.total_staked:
            raise InvariantViolationError(
                f"{self.address}: total_staked {self.total_staked} != sum of entries {entry_sum}",
            )


class ParticipantBook:
    """
    Insertion-ordered participant set with O(1) membership and removal.

    Removal swaps the leaving address with the last one and truncates, so
    order among the remaining participants is not preserved.
    """

    def __init__(self) -> None:
        self._order: list[str] = []
        self._index: dict[str, int] = {}
        self._records: dict[str, Participant] = {}

    def __contains__(self, address: object) -> bool:
        return address in self._records

    def __len__(self) -> int:
        return len(self._order)

    def __iter__(self) -> Iterator[Participant]:
        for address in self._order:
            yield self._records[address]

    @property
    def addresses(self) -> tuple[str, ...]:
        return tuple(self._order)

    def get(self, address: str) -> Participant:
        record = self._records.get(address)
        if record is None:
            raise NotParticipantError(f"{address} is not a participant")
        return record

    def add(self, participant: Participant) -> None:
        if participant.address in self._records:
            raise AlreadyParticipantError(f"{participant.address} already joined")
        self._index[participant.address] = len(self._order)
        self._order.append(participant.address)
        self._records[participant.address] = participant

    def remove(self, address: str) -> Participant:
        record = self.get(address)
        position = self._index.pop(address)
        last = self._order.pop()
        if last != address:
            self._order[position] = last
            self._index[last] = position
        del self._records[address]
        return record

    def clear(self) -> None:
        self._order.clear()
        self._index.clear()
        self._records.clear()

    def total_staked(self) -> int:
        return sum(record.total_staked for record in self._records.values())


@dataclass
class LedgerState:
    """Mutable state of one game ledger."""

    participants: ParticipantBook = field(default_factory=ParticipantBook)
    entry_fee_pool: int = 0
    total_stakes: int = 0
    start_time: int = 0
    end_time: int = 0
    phase: GamePhase = GamePhase.FORMING
    winner: str | None = None

    @property
    def in_progress(self) -> bool:
        return self.phase == GamePhase.IN_PROGRESS

    def check_invariants(self) -> None:
        """Raise InvariantViolationError if the stake totals have drifted apart."""
        for record in self.participants:
            record.check_consistency()
        book_total = self.participants.total_staked()
        if book_total != self.total_stakes:
            raise InvariantViolationError(f"total_stakes {self.total_stakes} != sum of participant stakes {book_total}")
