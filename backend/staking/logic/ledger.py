"""
GameLedger: participant ledger and lifecycle state machine for one staking game.

Phases: FORMING -> IN_PROGRESS -> SETTLED, or FORMING -> IN_PROGRESS -> CANCELLED.
SETTLED and CANCELLED are inert until the owner calls reset().

Every mutating operation runs inside _operation(), which:
- holds a per-ledger lock and rejects re-entrant calls from the same thread;
- deep-copies the ledger state and restores it if anything raises;
- wraps token calls in token.atomic(), so transfers already made by a failed
  operation are undone as well (when the token ledger supports it);
- re-checks the stake totals and the custody balance before committing.

Preconditions are all checked before the first transfer of an operation.
"""

from __future__ import annotations

import contextlib
import copy
import hashlib
import threading
import time
import uuid
from typing import TYPE_CHECKING

import structlog

from staking.logic.address import normalize_address
from staking.logic.amounts import checked_add, checked_mul, checked_sub, prorated_refund
from staking.logic.entropy import SystemEntropyProvider
from staking.logic.enums import GamePhase, RemovalReason
from staking.logic.events import (
    FundsWithdrawnEvent,
    GameCancelledEvent,
    GameEndedEvent,
    GameResetEvent,
    GameStartedEvent,
    ParticipantJoinedEvent,
    ParticipantLeftEvent,
    RewardDistributedEvent,
    RewardsFundedEvent,
    StakedEvent,
    UnstakedEvent,
    WinnerSelectedEvent,
)
from staking.logic.exceptions import (
    AlreadyParticipantError,
    CapacityExceededError,
    InsufficientFundsError,
    InvalidAmountError,
    InvalidPhaseError,
    InvariantViolationError,
    ReentrancyError,
    StakingError,
    TransferFailedError,
    UnauthorizedError,
)
from staking.logic.payout import settle_participants
from staking.logic.state import LedgerState, Participant
from staking.logic.types import LedgerSnapshot, ParticipantView, StakeEntryView
from staking.logic.winner import select_winner

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from staking.logic.config import GameConfig
    from staking.logic.entropy import EntropyProvider
    from staking.logic.events import LedgerEvent
    from staking.logic.payout import Distribution
    from staking.token.base import TokenLedger

logger = structlog.get_logger()

_ADDRESS_DOMAIN_PREFIX = b"staking-ledger-v1:"


def system_clock() -> int:
    """Current unix time in whole seconds."""
    return int(time.time())


def derive_ledger_address(ledger_id: str) -> str:
    """Deterministic custody address for a ledger id."""
    digest = hashlib.sha256(_ADDRESS_DOMAIN_PREFIX + ledger_id.encode()).hexdigest()
    return f"0x{digest[:40]}"


class GameLedger:
    """
    Bookkeeping and lifecycle for one staking game.

    The ledger custodies funds at self.address on the injected token ledger.
    Owner-only operations: start, end, cancel, kick, fund, reset, withdraw.
    Participant operations: join, leave, stake, unstake.
    """

    def __init__(
        self,
        config: GameConfig,
        *,
        owner: str,
        token: TokenLedger,
        entropy: EntropyProvider | None = None,
        clock: Callable[[], int] = system_clock,
        ledger_id: str | None = None,
        address: str | None = None,
    ) -> None:
        self.config = config
        self.owner = normalize_address(owner)
        self.ledger_id = ledger_id or uuid.uuid4().hex
        self.address = normalize_address(address) if address else derive_ledger_address(self.ledger_id)
        self._token = token
        self._entropy = entropy or SystemEntropyProvider()
        self._clock = clock
        self._state = LedgerState()
        self._lock = threading.RLock()
        self._in_flight = False
        self._last_distribution: Distribution | None = None

    # --- Read-only views ---

    @property
    def phase(self) -> GamePhase:
        return self._state.phase

    @property
    def in_progress(self) -> bool:
        return self._state.in_progress

    @property
    def participants(self) -> tuple[str, ...]:
        return self._state.participants.addresses

    @property
    def entry_fee_pool(self) -> int:
        return self._state.entry_fee_pool

    @property
    def total_stakes(self) -> int:
        return self._state.total_stakes

    @property
    def start_time(self) -> int:
        return self._state.start_time

    @property
    def end_time(self) -> int:
        return self._state.end_time

    @property
    def winner(self) -> str | None:
        return self._state.winner

    @property
    def last_distribution(self) -> Distribution | None:
        return self._last_distribution

    def is_participant(self, address: str) -> bool:
        return normalize_address(address) in self._state.participants

    def participant(self, address: str) -> ParticipantView:
        record = self._state.participants.get(normalize_address(address))
        return ParticipantView(
            address=record.address,
            join_timestamp=record.join_timestamp,
            total_staked=record.total_staked,
            stakes=tuple(StakeEntryView(amount=e.amount, timestamp=e.timestamp) for e in record.stakes),
        )

    def custody_balance(self) -> int:
        return self._token.balance_of(self.address)

    def liabilities(self) -> int:
        """
        Funds the ledger owes participants in the current phase.

        While FORMING every participant may still leave with a full refund;
        while IN_PROGRESS the pool and the outstanding stakes are owed; a
        settled or cancelled game owes nothing.
        """
        state = self._state
        if state.phase == GamePhase.FORMING:
            return max(checked_mul(len(state.participants), self.config.entry_fee), state.entry_fee_pool)
        if state.phase == GamePhase.IN_PROGRESS:
            return checked_add(state.entry_fee_pool, state.total_stakes)
        return 0

    def snapshot(self) -> LedgerSnapshot:
        state = self._state
        return LedgerSnapshot(
            ledger_id=self.ledger_id,
            phase=state.phase,
            participants=tuple(self.participant(address) for address in state.participants.addresses),
            entry_fee_pool=state.entry_fee_pool,
            total_stakes=state.total_stakes,
            start_time=state.start_time,
            end_time=state.end_time,
            winner=state.winner,
            custody_balance=self.custody_balance(),
        )

    # --- Participant operations ---

    def join(self, caller: str) -> list[LedgerEvent]:
        caller = normalize_address(caller)
        with self._operation("join") as state:
            self._require_phase(state, GamePhase.FORMING)
            if caller in state.participants:
                raise AlreadyParticipantError(f"{caller} already joined")
            if len(state.participants) >= self.config.max_participants:
                raise CapacityExceededError(f"game is full ({self.config.max_participants} participants)")
            self._require_payable(caller, self.config.entry_fee)

            now = self._now()
            contribution = self.config.pool_deduction
            state.entry_fee_pool = checked_add(state.entry_fee_pool, contribution)
            state.participants.add(Participant(address=caller, join_timestamp=now))
            self._pull(caller, self.config.entry_fee, "join")

            logger.info("participant joined", participant=caller, pool_contribution=contribution)
            return [
                ParticipantJoinedEvent(
                    ledger_id=self.ledger_id,
                    timestamp=now,
                    participant=caller,
                    entry_fee=self.config.entry_fee,
                    pool_contribution=contribution,
                ),
            ]

    def leave(self, caller: str) -> list[LedgerEvent]:
        caller = normalize_address(caller)
        with self._operation("leave") as state:
            return self._remove_participant(state, caller, RemovalReason.LEFT)

    def stake(self, caller: str, amount: int) -> list[LedgerEvent]:
        caller = normalize_address(caller)
        with self._operation("stake") as state:
            self._require_phase(state, GamePhase.IN_PROGRESS)
            record = state.participants.get(caller)
            self._require_amount(amount)
            if amount < self.config.min_stake_amount:
                raise InvalidAmountError(f"stake {amount} is below the minimum of {self.config.min_stake_amount}")
            self._require_payable(caller, amount)

            now = self._now()
            state.total_stakes = checked_add(state.total_stakes, amount)
            record.add_stake(amount, now)
            self._pull(caller, amount, "stake")

            logger.info("staked", participant=caller, amount=amount, total_staked=record.total_staked)
            return [
                StakedEvent(
                    ledger_id=self.ledger_id,
                    timestamp=now,
                    participant=caller,
                    amount=amount,
                    total_staked=record.total_staked,
                ),
            ]

    def unstake(self, caller: str, amount: int) -> list[LedgerEvent]:
        caller = normalize_address(caller)
        with self._operation("unstake") as state:
            self._require_phase(state, GamePhase.IN_PROGRESS)
            record = state.participants.get(caller)
            self._require_amount(amount)
            if amount <= 0 or amount > record.total_staked:
                raise InvalidAmountError(f"cannot unstake {amount} of {record.total_staked} staked")
            self._require_custody(amount)

            now = self._now()
            record.remove_stake(amount)
            state.total_stakes = checked_sub(state.total_stakes, amount)
            self._push(caller, amount, "unstake")

            logger.info("unstaked", participant=caller, amount=amount, total_staked=record.total_staked)
            return [
                UnstakedEvent(
                    ledger_id=self.ledger_id,
                    timestamp=now,
                    participant=caller,
                    amount=amount,
                    total_staked=record.total_staked,
                ),
            ]

    # --- Owner operations ---

    def start(self, caller: str) -> list[LedgerEvent]:
        with self._operation("start") as state:
            self._require_owner(caller)
            self._require_phase(state, GamePhase.FORMING)
            if len(state.participants) < self.config.min_participants:
                raise InvalidPhaseError(
                    f"need at least {self.config.min_participants} participants, have {len(state.participants)}",
                )

            state.start_time = self._now()
            state.phase = GamePhase.IN_PROGRESS

            logger.info("game started", participant_count=len(state.participants))
            return [
                GameStartedEvent(
                    ledger_id=self.ledger_id,
                    timestamp=state.start_time,
                    participants=state.participants.addresses,
                ),
            ]

    def kick(self, caller: str, participant: str) -> list[LedgerEvent]:
        participant = normalize_address(participant)
        with self._operation("kick") as state:
            self._require_owner(caller)
            return self._remove_participant(state, participant, RemovalReason.KICKED)

    def cancel(self, caller: str) -> list[LedgerEvent]:
        """
        Cancel a running game without distributing anything.

        Contributed funds are not refunded here; they stay in custody and can
        be recovered by the owner with withdraw().
        """
        with self._operation("cancel") as state:
            self._require_owner(caller)
            self._require_phase(state, GamePhase.IN_PROGRESS)
            return self._cancel(state, automatic=False)

    def end(self, caller: str) -> list[LedgerEvent]:
        """Select the winner, pay every participant, and settle the game."""
        with self._operation("end") as state:
            self._require_owner(caller)
            self._require_phase(state, GamePhase.IN_PROGRESS)
            now = self._now()
            ends_at = state.start_time + self.config.game_duration
            if now < ends_at:
                raise InvalidPhaseError(f"game cannot end before {ends_at} (now {now})")
            if not state.participants:
                raise InvariantViolationError("game is in progress with no participants")

            winner = select_winner(self._entropy.draw(), state.participants.addresses, self.config.winner_reduction)
            distribution = settle_participants(
                state.participants,
                entry_fee_pool=state.entry_fee_pool,
                total_stakes=state.total_stakes,
                winner=winner,
                end_time=now,
            )
            self._require_custody(distribution.total)

            events: list[LedgerEvent] = [
                WinnerSelectedEvent(
                    ledger_id=self.ledger_id,
                    timestamp=now,
                    winner=winner,
                    participant_count=len(state.participants),
                ),
            ]
            for payout in distribution.payouts:
                self._push(payout.address, payout.total, "end")
                events.append(
                    RewardDistributedEvent(
                        ledger_id=self.ledger_id,
                        timestamp=now,
                        participant=payout.address,
                        principal=payout.principal,
                        pool_share=payout.pool_share,
                        bonus=payout.bonus,
                        amount=payout.total,
                    ),
                )

            state.participants.clear()
            state.entry_fee_pool = 0
            state.total_stakes = 0
            state.end_time = now
            state.winner = winner
            state.phase = GamePhase.SETTLED

            logger.info(
                "game ended",
                winner=winner,
                winner_bonus=distribution.winner_bonus,
                total_paid=distribution.total,
                dust=distribution.dust,
            )
            events.append(
                GameEndedEvent(
                    ledger_id=self.ledger_id,
                    timestamp=now,
                    winner=winner,
                    total_paid=distribution.total,
                    dust=distribution.dust,
                ),
            )
        self._last_distribution = distribution
        return events

    def fund(self, caller: str, amount: int) -> list[LedgerEvent]:
        """Deposit tokens into custody to back the winner's time-weighted bonus."""
        with self._operation("fund"):
            funder = self._require_owner(caller)
            self._require_amount(amount)
            if amount <= 0:
                raise InvalidAmountError(f"cannot fund {amount}")
            self._require_payable(funder, amount)
            self._pull(funder, amount, "fund")

            logger.info("rewards funded", amount=amount)
            return [RewardsFundedEvent(ledger_id=self.ledger_id, timestamp=self._now(), funder=funder, amount=amount)]

    def reset(self, caller: str) -> list[LedgerEvent]:
        """Return a settled or cancelled game to FORMING with zeroed totals."""
        with self._operation("reset") as state:
            self._require_owner(caller)
            self._require_phase(state, GamePhase.SETTLED, GamePhase.CANCELLED)
            self._zero(state)
            state.phase = GamePhase.FORMING

            logger.info("game reset")
            return [GameResetEvent(ledger_id=self.ledger_id, timestamp=self._now())]

    def withdraw(self, caller: str) -> list[LedgerEvent]:
        """Send the custody balance not owed to participants to the owner."""
        with self._operation("withdraw") as state:
            owner = self._require_owner(caller)
            if state.in_progress:
                raise InvalidPhaseError("cannot withdraw while the game is in progress")
            available = self.custody_balance() - self.liabilities()
            if available <= 0:
                logger.info("nothing to withdraw")
                return []
            self._push(owner, available, "withdraw")

            logger.info("funds withdrawn", amount=available)
            return [
                FundsWithdrawnEvent(ledger_id=self.ledger_id, timestamp=self._now(), recipient=owner, amount=available),
            ]

    # --- Internals ---

    @contextlib.contextmanager
    def _operation(self, name: str) -> Iterator[LedgerState]:
        with self._lock:
            if self._in_flight:
                raise ReentrancyError(f"{name} called while another ledger operation is in flight")
            self._in_flight = True
            saved = copy.deepcopy(self._state)
            try:
                with structlog.contextvars.bound_contextvars(ledger_id=self.ledger_id, operation=name):
                    try:
                        with self._token.atomic():
                            yield self._state
                            self._check_invariants()
                    except StakingError as e:
                        logger.warning("ledger operation rejected", error=str(e), error_type=type(e).__name__)
                        raise
            except BaseException:
                self._state = saved
                raise
            finally:
                self._in_flight = False

    def _check_invariants(self) -> None:
        state = self._state
        state.check_invariants()
        held = checked_add(state.entry_fee_pool, state.total_stakes)
        balance = self.custody_balance()
        if balance < held:
            raise InvariantViolationError(f"custody balance {balance} does not cover pool and stakes {held}")

    def _remove_participant(self, state: LedgerState, address: str, reason: RemovalReason) -> list[LedgerEvent]:
        """
        Remove a participant and refund (part of) their entry fee.

        FORMING: full entry fee back, and their pool contribution is taken out
        of the pool. IN_PROGRESS: the fee is refunded pro rata to elapsed game
        time, capped by what custody holds beyond the remaining liabilities;
        any outstanding stake is forfeited to custody.
        """
        self._require_phase(state, GamePhase.FORMING, GamePhase.IN_PROGRESS)
        record = state.participants.get(address)
        now = self._now()

        forfeited = 0
        if state.phase == GamePhase.FORMING:
            refund = self.config.entry_fee
            state.entry_fee_pool = checked_sub(state.entry_fee_pool, self.config.pool_deduction)
            self._require_custody(refund)
        else:
            forfeited = record.total_staked
            state.total_stakes = checked_sub(state.total_stakes, forfeited)
            surplus = max(0, self.custody_balance() - checked_add(state.entry_fee_pool, state.total_stakes))
            prorated = prorated_refund(now - state.start_time, self.config.entry_fee, self.config.game_duration)
            refund = min(surplus, prorated)

        state.participants.remove(address)
        self._push(address, refund, reason.value)

        logger.info("participant removed", participant=address, reason=reason, refund=refund, forfeited=forfeited)
        events: list[LedgerEvent] = [
            ParticipantLeftEvent(
                ledger_id=self.ledger_id,
                timestamp=now,
                participant=address,
                reason=reason,
                refund=refund,
                forfeited_stake=forfeited,
            ),
        ]
        if (
            state.in_progress
            and self.config.auto_cancel_below_minimum
            and len(state.participants) < self.config.min_participants
        ):
            events.extend(self._cancel(state, automatic=True))
        return events

    def _cancel(self, state: LedgerState, *, automatic: bool) -> list[LedgerEvent]:
        self._zero(state)
        state.phase = GamePhase.CANCELLED
        logger.info("game cancelled", automatic=automatic)
        return [GameCancelledEvent(ledger_id=self.ledger_id, timestamp=self._now(), automatic=automatic)]

    @staticmethod
    def _zero(state: LedgerState) -> None:
        state.participants.clear()
        state.entry_fee_pool = 0
        state.total_stakes = 0
        state.start_time = 0
        state.end_time = 0
        state.winner = None

    def _now(self) -> int:
        return self._clock()

    def _require_owner(self, caller: str) -> str:
        caller = normalize_address(caller)
        if caller != self.owner:
            raise UnauthorizedError(f"{caller} is not the owner of ledger {self.ledger_id}")
        return caller

    @staticmethod
    def _require_phase(state: LedgerState, *phases: GamePhase) -> None:
        if state.phase not in phases:
            allowed = ", ".join(p.value for p in phases)
            raise InvalidPhaseError(f"operation requires phase {allowed}, game is {state.phase.value}")

    @staticmethod
    def _require_amount(amount: object) -> None:
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise InvalidAmountError(f"amount must be an integer, got {amount!r}")

    def _require_payable(self, payer: str, amount: int) -> None:
        balance = self._token.balance_of(payer)
        if balance < amount:
            raise InsufficientFundsError(required=amount, available=balance, reason="balance too low")
        allowed = self._token.allowance(payer, self.address)
        if allowed < amount:
            raise InsufficientFundsError(required=amount, available=allowed, reason="allowance too low")

    def _require_custody(self, amount: int) -> None:
        balance = self.custody_balance()
        if balance < amount:
            raise InsufficientFundsError(required=amount, available=balance, reason="ledger custody too low")

    def _pull(self, source: str, amount: int, operation: str) -> None:
        self._call_token(
            f"{operation}: transfer_from",
            self._token.transfer_from,
            self.address,
            source,
            self.address,
            amount,
        )

    def _push(self, recipient: str, amount: int, operation: str) -> None:
        if amount == 0:
            return
        self._call_token(f"{operation}: transfer", self._token.transfer, self.address, recipient, amount)

    @staticmethod
    def _call_token(operation: str, call: Callable[..., bool], *args: object) -> None:
        try:
            ok = call(*args)
        except StakingError:
            raise
        except Exception as e:
            raise TransferFailedError(operation=operation, reason=str(e)) from e
        if not ok:
            raise TransferFailedError(operation=operation, reason="token ledger rejected the transfer")
