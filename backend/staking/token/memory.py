"""In-process token ledger.

Backs local games and tests. Supports snapshot/restore through atomic(), so
a GameLedger operation that fails midway leaves balances exactly as they
were before it started.
"""

from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING

import structlog

from staking.logic.amounts import UINT256_MAX
from staking.token.base import TokenLedger

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = structlog.get_logger()


class InMemoryTokenLedger(TokenLedger):
    def __init__(self, symbol: str = "TKN") -> None:
        self.symbol = symbol
        self._balances: dict[str, int] = {}
        self._allowances: dict[tuple[str, str], int] = {}
        self._failing: set[str] = set()

    # --- Token ledger interface ---

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((owner, spender), 0)

    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        if recipient in self._failing or not self._can_move(sender, recipient, amount):
            return False
        self._move(sender, recipient, amount)
        return True

    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> bool:
        allowed = self.allowance(owner, spender)
        if owner in self._failing or allowed < amount or not self._can_move(owner, recipient, amount):
            return False
        self._allowances[(owner, spender)] = allowed - amount
        self._move(owner, recipient, amount)
        return True

    @contextlib.contextmanager
    def atomic(self) -> Iterator[None]:
        balances = dict(self._balances)
        allowances = dict(self._allowances)
        try:
            yield
        except BaseException:
            self._balances = balances
            self._allowances = allowances
            logger.debug("token ledger rolled back", symbol=self.symbol)
            raise

    # --- Administration ---

    def mint(self, account: str, amount: int) -> None:
        if amount < 0 or self.balance_of(account) + amount > UINT256_MAX:
            raise ValueError(f"cannot mint {amount} to {account}")
        self._balances[account] = self.balance_of(account) + amount

    def approve(self, owner: str, spender: str, amount: int) -> None:
        if amount < 0 or amount > UINT256_MAX:
            raise ValueError(f"invalid allowance {amount}")
        self._allowances[(owner, spender)] = amount

    def fail_transfers_for(self, account: str) -> None:
        """Make every transfer to (or pulled from) account fail, simulating a rejecting recipient."""
        self._failing.add(account)

    def restore_transfers_for(self, account: str) -> None:
        self._failing.discard(account)

    def _can_move(self, sender: str, recipient: str, amount: int) -> bool:
        if amount < 0 or self.balance_of(sender) < amount:
            return False
        return sender == recipient or self.balance_of(recipient) + amount <= UINT256_MAX

    def _move(self, sender: str, recipient: str, amount: int) -> None:
        self._balances[sender] = self.balance_of(sender) - amount
        self._balances[recipient] = self.balance_of(recipient) + amount
