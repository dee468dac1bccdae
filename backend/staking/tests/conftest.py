from __future__ import annotations

from typing import Any

import pytest

from staking.logic.config import GameConfig
from staking.logic.entropy import FixedEntropyProvider
from staking.logic.ledger import GameLedger
from staking.token.memory import InMemoryTokenLedger

OWNER = "0x00000000000000000000000000000000000000f0"
START_BALANCE = 10_000

# ============================================================================
# Test Builder Helpers
# ============================================================================


def addr(n: int) -> str:
    """Deterministic participant address for tests."""
    return f"0x{n:040x}"


class ManualClock:
    """Clock the test advances explicitly."""

    def __init__(self, now: int = 1_000_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


def make_config(**overrides: Any) -> GameConfig:  # noqa: ANN401
    """GameConfig matching the reference scenario: 3..100 players, fee 10, 300s, 10%, min stake 1."""
    values: dict[str, Any] = {
        "token": "TST",
        "min_participants": 3,
        "max_participants": 100,
        "entry_fee": 10,
        "game_duration": 300,
        "entry_fee_pool_percentage_deduction": 10,
        "min_stake_amount": 1,
    }
    values.update(overrides)
    return GameConfig(**values)


def fund_account(token: InMemoryTokenLedger, ledger: GameLedger, account: str, amount: int = START_BALANCE) -> None:
    """Mint tokens to account and approve the ledger to pull all of them."""
    token.mint(account, amount)
    token.approve(account, ledger.address, amount)


def join_all(ledger: GameLedger, token: InMemoryTokenLedger, *accounts: str) -> None:
    for account in accounts:
        fund_account(token, ledger, account)
        ledger.join(account)


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def token() -> InMemoryTokenLedger:
    return InMemoryTokenLedger(symbol="TST")


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def entropy() -> FixedEntropyProvider:
    return FixedEntropyProvider(b"\x11" * 32, b"\x22" * 32)


@pytest.fixture
def config() -> GameConfig:
    return make_config()


@pytest.fixture
def ledger(config, token, entropy, clock) -> GameLedger:
    return GameLedger(config, owner=OWNER, token=token, entropy=entropy, clock=clock, ledger_id="test-ledger")


@pytest.fixture
def players(ledger, token) -> tuple[str, str, str]:
    """Three joined participants in a FORMING game."""
    accounts = (addr(1), addr(2), addr(3))
    join_all(ledger, token, *accounts)
    return accounts


@pytest.fixture
def started(ledger, players) -> tuple[str, str, str]:
    """Three participants in a started game."""
    ledger.start(OWNER)
    return players
