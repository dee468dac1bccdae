"""Process-level wiring: settings, logging, token ledger and the game registry."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from shared.logging import setup_logging
from staking.logic.ledger import system_clock
from staking.registry.manager import GameRegistry
from staking.server.settings import StakingSettings
from staking.token.memory import InMemoryTokenLedger

if TYPE_CHECKING:
    from collections.abc import Callable

    from staking.logic.entropy import EntropyProvider
    from staking.token.base import TokenLedger

logger = structlog.get_logger()


def create_registry(
    settings: StakingSettings | None = None,
    *,
    token: TokenLedger | None = None,
    entropy: EntropyProvider | None = None,
    clock: Callable[[], int] = system_clock,
    configure_logging: bool = True,
) -> GameRegistry:
    """Build a GameRegistry from settings.

    Without an explicit token ledger, games run against an in-process one
    named after the configured token.
    """
    if settings is None:
        settings = StakingSettings()
    if configure_logging:
        setup_logging(log_dir=settings.log_dir, name="staking")
    if token is None:
        token = InMemoryTokenLedger(symbol=settings.token)

    registry = GameRegistry(token=token, settings=settings, entropy=entropy, clock=clock)
    logger.info("staking registry ready", token=settings.token, operators=len(settings.operators))
    return registry
