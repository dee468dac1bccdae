"""Typed domain exceptions for staking ledger operations.

All ledger rule violations use subclasses of StakingError rather than raw
ValueError. Every error is raised before the enclosing operation commits, so
a caught StakingError always means the ledger is unchanged.
"""


class StakingError(Exception):
    """Base exception for staking ledger errors."""


class PreconditionViolation(StakingError):
    """Operation is not permitted in the current ledger state or for this caller."""


class InvalidPhaseError(PreconditionViolation):
    """Operation is not valid in the current lifecycle phase."""


class UnauthorizedError(PreconditionViolation):
    """Caller is not the ledger owner."""


class NotParticipantError(PreconditionViolation):
    """Caller (or target) is not a participant of this game."""


class AlreadyParticipantError(PreconditionViolation):
    """Caller already joined this game."""


class InvalidAmountError(PreconditionViolation):
    """Amount is zero, below the minimum, or above what the participant holds."""


class CapacityExceededError(PreconditionViolation):
    """The game already holds max_participants."""


class ArithmeticOverflowError(PreconditionViolation):
    """An amount would leave the unsigned 256-bit range."""


class ReentrancyError(PreconditionViolation):
    """A mutating operation was invoked while another is still in flight."""


class InvalidAddressError(PreconditionViolation):
    """Address is not a 0x-prefixed 20-byte hex string."""


class InsufficientFundsError(StakingError):
    """Balance or allowance does not cover the requested movement of funds.

    Attributes:
        required: Amount the operation needs.
        available: Amount actually available.

    """

    def __init__(self, *, required: int, available: int, reason: str = "insufficient funds") -> None:
        self.required = required
        self.available = available
        super().__init__(f"{reason}: required {required}, available {available}")


class TransferFailedError(StakingError):
    """An external token call failed; the enclosing operation was aborted."""

    def __init__(self, *, operation: str, reason: str) -> None:
        self.operation = operation
        self.reason = reason
        super().__init__(f"token {operation} failed: {reason}")


class InvariantViolationError(StakingError):
    """Internal bookkeeping reached a state the precondition checks should rule out."""


class LedgerNotFoundError(StakingError):
    """No ledger is registered under the given id."""

    def __init__(self, ledger_id: str) -> None:
        self.ledger_id = ledger_id
        super().__init__(f"Ledger {ledger_id} not found")
