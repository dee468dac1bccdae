from __future__ import annotations

import contextlib
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator


class TokenLedger(ABC):
    """
    Abstract interface for the external fungible-token ledger.

    Transfer methods return False (or raise) on failure; GameLedger turns
    either into TransferFailedError and aborts the enclosing operation.
    """

    @abstractmethod
    def balance_of(self, account: str) -> int: ...

    @abstractmethod
    def allowance(self, owner: str, spender: str) -> int: ...

    @abstractmethod
    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        """Move amount from sender's own balance to recipient."""
        ...

    @abstractmethod
    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> bool:
        """Move amount from owner to recipient, consuming spender's allowance."""
        ...

    @contextlib.contextmanager
    def atomic(self) -> Iterator[None]:
        """
        Group several transfers so they apply together or not at all.

        The default does nothing; ledgers that can snapshot their balances
        override it.
        """
        yield
