"""Tests for the operation guard: re-entrancy, token failures and rollback."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

import pytest

from staking.logic.enums import GamePhase
from staking.logic.exceptions import ReentrancyError, TransferFailedError
from staking.logic.ledger import GameLedger
from staking.tests.conftest import OWNER, START_BALANCE, addr, fund_account, join_all, make_config
from staking.token.memory import InMemoryTokenLedger

if TYPE_CHECKING:
    from collections.abc import Callable


class HookedTokenLedger(InMemoryTokenLedger):
    """Calls back into arbitrary code before every pull, like a malicious token contract."""

    def __init__(self) -> None:
        super().__init__(symbol="HOOK")
        self.hook: Callable[[], None] | None = None

    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> bool:
        if self.hook is not None:
            hook, self.hook = self.hook, None
            hook()
        return super().transfer_from(spender, owner, recipient, amount)


class ExplodingTokenLedger(InMemoryTokenLedger):
    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        raise RuntimeError("token node unreachable")


class TestReentrancy:
    def test_reentrant_call_rejected_and_rolled_back(self, entropy, clock):
        token = HookedTokenLedger()
        ledger = GameLedger(make_config(), owner=OWNER, token=token, entropy=entropy, clock=clock)
        fund_account(token, ledger, addr(1))
        fund_account(token, ledger, addr(2))
        token.hook = lambda: ledger.join(addr(2))

        with pytest.raises(ReentrancyError):
            ledger.join(addr(1))

        assert ledger.participants == ()
        assert ledger.entry_fee_pool == 0
        assert token.balance_of(addr(1)) == START_BALANCE
        assert token.balance_of(addr(2)) == START_BALANCE

    def test_guard_released_after_rejection(self, entropy, clock):
        token = HookedTokenLedger()
        ledger = GameLedger(make_config(), owner=OWNER, token=token, entropy=entropy, clock=clock)
        fund_account(token, ledger, addr(1))
        token.hook = lambda: ledger.leave(addr(1))

        with pytest.raises(ReentrancyError):
            ledger.join(addr(1))
        ledger.join(addr(1))

        assert ledger.participants == (addr(1),)


class TestTokenFailures:
    def test_raising_token_wrapped_in_transfer_failed(self, entropy, clock):
        token = ExplodingTokenLedger()
        ledger = GameLedger(make_config(), owner=OWNER, token=token, entropy=entropy, clock=clock)
        join_all(ledger, token, addr(1))

        with pytest.raises(TransferFailedError) as exc_info:
            ledger.leave(addr(1))

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert ledger.participants == (addr(1),)
        assert ledger.entry_fee_pool == 1

    def test_rejected_pull_rolls_back_join(self, ledger, token):
        fund_account(token, ledger, addr(1))
        token.fail_transfers_for(addr(1))

        with pytest.raises(TransferFailedError):
            ledger.join(addr(1))

        assert ledger.participants == ()
        assert ledger.entry_fee_pool == 0
        assert ledger.custody_balance() == 0
        assert token.allowance(addr(1), ledger.address) == START_BALANCE


class TestConcurrency:
    def test_concurrent_joins_all_land(self, ledger, token):
        accounts = [addr(n) for n in range(1, 21)]
        for account in accounts:
            fund_account(token, ledger, account)
        errors: list[Exception] = []

        def join(account: str) -> None:
            try:
                ledger.join(account)
            except Exception as e:  # noqa: BLE001
                errors.append(e)

        threads = [threading.Thread(target=join, args=(account,)) for account in accounts]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert sorted(ledger.participants) == sorted(accounts)
        assert ledger.entry_fee_pool == 20
        assert ledger.custody_balance() == 200
        assert ledger.phase == GamePhase.FORMING
