"""
Winner selection.

The winner is a pure function of the ordered participant list and the
entropy words:

1. digest = SHA-256(entropy words || each address as a 32-byte word)
2. index = reduce(digest, n)
3. winner = participants[index]

Two reductions are supported. SCALED divides the digest by
UINT256_MAX // n before taking the modulo; MODULO reduces the digest
directly. Both keep the small modulo bias of a 256-bit digest against a
small n, which is accepted; there is no rejection sampling.
"""

from __future__ import annotations

import hashlib
from typing import TYPE_CHECKING

from staking.logic.address import address_word
from staking.logic.amounts import UINT256_MAX
from staking.logic.entropy import ENTROPY_WORD_BYTES
from staking.logic.enums import WinnerReduction
from staking.logic.exceptions import InvariantViolationError

if TYPE_CHECKING:
    from collections.abc import Sequence


def selection_digest(entropy: Sequence[bytes], participants: Sequence[str]) -> int:
    """Hash the entropy words followed by the participant addresses into a 256-bit integer."""
    hasher = hashlib.sha256()
    for word in entropy:
        if len(word) != ENTROPY_WORD_BYTES:
            raise ValueError(f"Entropy words must be {ENTROPY_WORD_BYTES} bytes, got {len(word)}")
        hasher.update(word)
    for address in participants:
        hasher.update(address_word(address))
    return int.from_bytes(hasher.digest(), byteorder="big")


def reduce_index(digest: int, count: int, reduction: WinnerReduction = WinnerReduction.SCALED) -> int:
    """Reduce a 256-bit digest to an index in [0, count)."""
    if count <= 0:
        raise InvariantViolationError("cannot select a winner from an empty participant set")
    if reduction == WinnerReduction.MODULO:
        return digest % count
    # digest // divisor may equal count when digest sits in the top bucket; the modulo folds it back
    return (digest // (UINT256_MAX // count)) % count


def select_winner(
    entropy: Sequence[bytes],
    participants: Sequence[str],
    reduction: WinnerReduction = WinnerReduction.SCALED,
) -> str:
    if not participants:
        raise InvariantViolationError("cannot select a winner from an empty participant set")
    digest = selection_digest(entropy, participants)
    return participants[reduce_index(digest, len(participants), reduction)]
