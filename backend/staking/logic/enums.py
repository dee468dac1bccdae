"""
String enum definitions for staking game concepts.
"""

from enum import Enum


class GamePhase(str, Enum):
    """Lifecycle phase of a game ledger."""

    FORMING = "forming"
    IN_PROGRESS = "in_progress"
    SETTLED = "settled"
    CANCELLED = "cancelled"


class WinnerReduction(str, Enum):
    """How the 256-bit selection digest is reduced to a participant index."""

    SCALED = "scaled"  # (digest // (UINT256_MAX // n)) % n
    MODULO = "modulo"  # digest % n


class RemovalReason(str, Enum):
    """Why a participant left the game."""

    LEFT = "left"
    KICKED = "kicked"
