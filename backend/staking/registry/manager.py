"""Factory and index of game ledgers."""

from __future__ import annotations

import threading
import uuid
from typing import TYPE_CHECKING

import structlog

from staking.logic.address import normalize_address
from staking.logic.exceptions import LedgerNotFoundError, UnauthorizedError
from staking.logic.ledger import GameLedger, system_clock
from staking.registry.types import LedgerInfo
from staking.server.settings import StakingSettings

if TYPE_CHECKING:
    from collections.abc import Callable

    from staking.logic.config import GameConfig
    from staking.logic.entropy import EntropyProvider
    from staking.token.base import TokenLedger

logger = structlog.get_logger()


class GameRegistry:
    """Create ledgers and look them up by id.

    The registry is the one place that wires the token ledger, entropy
    provider and clock into new games; every ledger it creates shares them.
    """

    def __init__(
        self,
        *,
        token: TokenLedger,
        settings: StakingSettings | None = None,
        entropy: EntropyProvider | None = None,
        clock: Callable[[], int] = system_clock,
    ) -> None:
        self._token = token
        self._settings = settings or StakingSettings()
        self._entropy = entropy
        self._clock = clock
        self._ledgers: dict[str, GameLedger] = {}
        self._lock = threading.Lock()

    @property
    def ledger_count(self) -> int:
        return len(self._ledgers)

    def create(self, owner: str, config: GameConfig | None = None) -> str:
        """Create a ledger owned by owner and return its id."""
        owner = normalize_address(owner)
        if self._settings.operators and owner not in self._settings.operators:
            raise UnauthorizedError(f"{owner} is not allowed to create games")
        ledger_id = uuid.uuid4().hex
        ledger = GameLedger(
            config or self._settings.default_game_config(),
            owner=owner,
            token=self._token,
            entropy=self._entropy,
            clock=self._clock,
            ledger_id=ledger_id,
        )
        with self._lock:
            self._ledgers[ledger_id] = ledger
        logger.info("ledger created", ledger_id=ledger_id, owner=owner, address=ledger.address)
        return ledger_id

    def get(self, ledger_id: str) -> GameLedger:
        ledger = self._ledgers.get(ledger_id)
        if ledger is None:
            raise LedgerNotFoundError(ledger_id)
        return ledger

    def list_ids(self) -> list[str]:
        with self._lock:
            return list(self._ledgers)

    def list_info(self) -> list[LedgerInfo]:
        with self._lock:
            ledgers = list(self._ledgers.values())
        return [
            LedgerInfo(
                ledger_id=ledger.ledger_id,
                owner=ledger.owner,
                address=ledger.address,
                phase=ledger.phase,
                participant_count=len(ledger.participants),
                max_participants=ledger.config.max_participants,
            )
            for ledger in ledgers
        ]

    def remove(self, ledger_id: str) -> GameLedger:
        with self._lock:
            ledger = self._ledgers.pop(ledger_id, None)
        if ledger is None:
            raise LedgerNotFoundError(ledger_id)
        logger.info("ledger removed", ledger_id=ledger_id)
        return ledger
