"""Participant address normalisation and encoding."""

import re

from staking.logic.exceptions import InvalidAddressError

ADDRESS_BYTES = 20
WORD_BYTES = 32

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


def normalize_address(address: str) -> str:
    """Validate a 0x-prefixed 20-byte hex address and return it lowercased."""
    if not isinstance(address, str) or not _ADDRESS_RE.match(address):
        raise InvalidAddressError(f"invalid address: {address!r}")
    return address.lower()


def address_word(address: str) -> bytes:
    """Encode an address as a 32-byte big-endian word (left zero-padded)."""
    raw = bytes.fromhex(normalize_address(address)[2:])
    return raw.rjust(WORD_BYTES, b"\x00")
