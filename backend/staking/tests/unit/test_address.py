import pytest

from staking.logic.address import address_word, normalize_address
from staking.logic.exceptions import InvalidAddressError
from staking.logic.ledger import derive_ledger_address


class TestNormalizeAddress:
    def test_lowercases(self):
        assert normalize_address("0x" + "AB" * 20) == "0x" + "ab" * 20

    @pytest.mark.parametrize(
        "value",
        ["", "0x", "ab" * 20, "0x" + "ab" * 19, "0x" + "ab" * 21, "0x" + "zz" * 20, None],
    )
    def test_rejects_malformed(self, value):
        with pytest.raises(InvalidAddressError):
            normalize_address(value)


class TestAddressWord:
    def test_left_pads_to_32_bytes(self):
        word = address_word("0x" + "00" * 19 + "01")
        assert len(word) == 32
        assert word == b"\x00" * 31 + b"\x01"


class TestDeriveLedgerAddress:
    def test_deterministic_and_valid(self):
        address = derive_ledger_address("abc")
        assert address == derive_ledger_address("abc")
        assert normalize_address(address) == address

    def test_distinct_per_id(self):
        assert derive_ledger_address("a") != derive_ledger_address("b")
