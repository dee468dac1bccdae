"""
Entropy sources for winner selection.

The ledger never generates randomness itself; it asks an injected provider
for fresh 32-byte values at selection time. SystemEntropyProvider stands in
for the block hash and randomness beacon of the execution environment;
FixedEntropyProvider replays recorded values for tests and audits.
"""

from __future__ import annotations

import secrets
from abc import ABC, abstractmethod

ENTROPY_WORD_BYTES = 32
SYSTEM_ENTROPY_WORDS = 2  # recent block hash + difficulty/randomness value


def validate_entropy_hex(value_hex: str) -> bytes:
    """Decode a 64-character hex entropy word.

    Raises TypeError for non-string input, ValueError for invalid format.
    """
    if not isinstance(value_hex, str):
        raise TypeError(f"Entropy must be a string, got {type(value_hex).__name__}")
    expected_length = ENTROPY_WORD_BYTES * 2
    if len(value_hex) != expected_length:
        raise ValueError(f"Entropy must be exactly {expected_length} hex characters, got {len(value_hex)}")
    try:
        return bytes.fromhex(value_hex)
    except ValueError:
        raise ValueError("Entropy contains invalid hex characters") from None


class EntropyProvider(ABC):
    """Supplies opaque 32-byte words that are unpredictable to the caller."""

    @abstractmethod
    def draw(self) -> tuple[bytes, ...]:
        """Return one or more fresh 32-byte entropy words."""
        ...


class SystemEntropyProvider(EntropyProvider):
    def draw(self) -> tuple[bytes, ...]:
        return tuple(secrets.token_bytes(ENTROPY_WORD_BYTES) for _ in range(SYSTEM_ENTROPY_WORDS))


class FixedEntropyProvider(EntropyProvider):
    """Return the same words on every draw."""

    def __init__(self, *words: bytes | str) -> None:
        if not words:
            raise ValueError("FixedEntropyProvider needs at least one word")
        decoded: list[bytes] = []
        for word in words:
            raw = validate_entropy_hex(word) if isinstance(word, str) else word
            if len(raw) != ENTROPY_WORD_BYTES:
                raise ValueError(f"Entropy words must be {ENTROPY_WORD_BYTES} bytes, got {len(raw)}")
            decoded.append(raw)
        self._words = tuple(decoded)

    def draw(self) -> tuple[bytes, ...]:
        return self._words
