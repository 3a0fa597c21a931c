"""
Tests for the money codec.
"""

import pytest

from tabkeeper.models.errors import ErrorKind
from tabkeeper.money import InvalidFormatError, MoneyCodec, format_money, parse_money


class TestParseMoney:
    """Tests for parsing user-typed amounts."""

    @pytest.mark.parametrize("text,cents", [
        ("12", 1200),
        ("$12", 1200),
        ("12.34", 1234),
        ("$12.34", 1234),
        ("-$0.50", -50),
        ("-0.50", -50),
        ("0", 0),
        ("$0.00", 0),
        ("007.05", 705),
        ("-12", -1200),
    ])
    def test_valid_amounts(self, text, cents):
        """Test accepted amount strings and their value in cents."""
        assert parse_money(text) == cents

    def test_sign_applies_to_cents(self):
        """Test that the minus sign negates dollars and cents together."""
        assert parse_money("-1.25") == -125

    @pytest.mark.parametrize("text", [
        "",
        "0.1",
        "0.123",
        "abc",
        "1.",
        ".50",
        "-0.0.1",
        "-0.-1",
        "$",
        "-",
        "12$",
        "$-12",
        "1,000",
        " 12",
        "1e3",
        "１２",
    ])
    def test_invalid_amounts(self, text):
        """Test that malformed strings raise InvalidFormatError."""
        with pytest.raises(InvalidFormatError):
            parse_money(text)

    def test_many_digits(self):
        """Test a dollar part thousands of digits long is read exactly."""
        assert parse_money("1" * 5000) == (10 ** 5000 - 1) // 9 * 100

    def test_error_kind(self):
        """Test the error carries the invalid_format kind."""
        with pytest.raises(InvalidFormatError) as excinfo:
            parse_money("0.1")
        assert excinfo.value.kind == ErrorKind.INVALID_FORMAT

    def test_error_is_value_error(self):
        """Test callers can catch parse failures as ValueError."""
        with pytest.raises(ValueError):
            parse_money("abc")


class TestFormatMoney:
    """Tests for rendering cents."""

    @pytest.mark.parametrize("cents,text", [
        (1234, "$12.34"),
        (-50, "-$0.50"),
        (0, "$0.00"),
        (5, "$0.05"),
        (100000, "$1000.00"),
        (-1200, "-$12.00"),
    ])
    def test_format(self, cents, text):
        """Test canonical formatting."""
        assert format_money(cents) == text

    @pytest.mark.parametrize("cents", [0, 1, -1, 99, -99, 100, 123456789, -987654321])
    def test_parse_inverts_format(self, cents):
        """Test parse(format(c)) == c."""
        assert parse_money(format_money(cents)) == cents

    @pytest.mark.parametrize(
        "cents",
        [10 ** 5000, -(10 ** 5000) - 7, 10 ** 2000 + 99],
        ids=["pos-5001-digits", "neg-5001-digits", "pos-2001-digits"],
    )
    def test_very_large_amounts(self, cents):
        """Test amounts past the interpreter's digit limit still format and parse."""
        text = format_money(cents)

        assert text.startswith("-$" if cents < 0 else "$")
        assert parse_money(text) == cents

    def test_format_is_canonical_not_identity(self):
        """Test format(parse(s)) normalizes the input."""
        assert format_money(parse_money("12")) == "$12.00"


class TestCustomSymbol:
    """Tests for codecs with another currency symbol."""

    def test_parse_and_format_with_symbol(self):
        """Test a multi-character symbol is accepted and rendered."""
        codec = MoneyCodec("EUR")
        assert codec.parse("EUR3.10") == 310
        assert codec.parse("-EUR3.10") == -310
        assert codec.format(-310) == "-EUR3.10"

    def test_other_symbol_is_rejected(self):
        """Test the dollar sign is not accepted by a euro codec."""
        with pytest.raises(InvalidFormatError):
            MoneyCodec("€").parse("$5")
