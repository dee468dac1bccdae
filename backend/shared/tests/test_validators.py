import pytest

from shared.validators import parse_string_list

OPERATOR_A = "0x00000000000000000000000000000000000000a1"
OPERATOR_B = "0x00000000000000000000000000000000000000b2"


class TestParseStringList:
    def test_json_array_string(self):
        result = parse_string_list(f'["{OPERATOR_A}","{OPERATOR_B}"]')
        assert result == [OPERATOR_A, OPERATOR_B]

    def test_comma_separated_string(self):
        result = parse_string_list(f"{OPERATOR_A},{OPERATOR_B}")
        assert result == [OPERATOR_A, OPERATOR_B]

    def test_comma_separated_with_whitespace(self):
        result = parse_string_list(f"{OPERATOR_A} , {OPERATOR_B}")
        assert result == [OPERATOR_A, OPERATOR_B]

    def test_passthrough_list(self):
        operators = [OPERATOR_A, OPERATOR_B]
        assert parse_string_list(operators) == operators

    def test_empty_string_raises(self):
        with pytest.raises(ValueError, match="must not be empty"):
            parse_string_list("")

    def test_empty_string_allowed(self):
        assert parse_string_list("  ", allow_empty=True) == []

    def test_empty_list_allowed(self):
        assert parse_string_list([], allow_empty=True) == []

    def test_invalid_json_raises(self):
        with pytest.raises(ValueError, match="Invalid JSON array"):
            parse_string_list("[not valid json")

    def test_json_mixed_types_array_raises(self):
        with pytest.raises(ValueError, match="must be an array of strings"):
            parse_string_list(f'["{OPERATOR_A}", 123]')

    def test_json_empty_array_raises(self):
        with pytest.raises(ValueError, match="must not be empty"):
            parse_string_list("[]")

    def test_comma_separated_skips_empty_segments(self):
        result = parse_string_list(f"{OPERATOR_A},,{OPERATOR_B},")
        assert result == [OPERATOR_A, OPERATOR_B]

    def test_comma_only_raises(self):
        with pytest.raises(ValueError, match="must not be empty"):
            parse_string_list(",,,")
