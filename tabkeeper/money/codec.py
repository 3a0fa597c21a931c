"""
Money Codec

Converts between the amount strings users type ("12", "$12.34", "-0.50")
and integer minor units (cents).

Accepted grammar:

    [-][<symbol>]<digits>[.<two digits>]

The sign applies to the whole amount, dollars and cents together.
Formatting is canonical: parse(format(c)) == c for every integer c, while
format(parse(s)) may differ from s ("12" -> "$12.00").
"""

from tabkeeper.models.errors import ErrorKind, TabkeeperError


DEFAULT_CURRENCY_SYMBOL = "$"


class InvalidFormatError(TabkeeperError, ValueError):
    """The string is not a valid money amount."""

    kind = ErrorKind.INVALID_FORMAT


# Digits converted per int()/str() call; stays under the interpreter's
# integer string conversion limit.
_DIGIT_CHUNK = 1000
_CHUNK_BASE = 10 ** _DIGIT_CHUNK


def _is_digits(value: str) -> bool:
    return value.isascii() and value.isdigit()


def _digits_to_int(digits: str) -> int:
    value = 0
    for start in range(0, len(digits), _DIGIT_CHUNK):
        chunk = digits[start:start + _DIGIT_CHUNK]
        value = value * 10 ** len(chunk) + int(chunk)
    return value


def _int_to_digits(value: int) -> str:
    # value >= 0
    chunks = []
    while value >= _CHUNK_BASE:
        value, remainder = divmod(value, _CHUNK_BASE)
        chunks.append(f"{remainder:0{_DIGIT_CHUNK}d}")
    return str(value) + "".join(reversed(chunks))


class MoneyCodec:
    """Parses and formats money amounts for one currency symbol."""

    def __init__(self, symbol: str = DEFAULT_CURRENCY_SYMBOL):
        self.symbol = symbol

    def parse(self, value: str) -> int:
        """
        Parse a human-entered amount into cents.

        Raises:
            InvalidFormatError: If the string does not match the grammar
        """
        if not value:
            raise InvalidFormatError("Amount is empty")

        text = value
        negative = text.startswith("-")
        if negative:
            text = text[1:]

        if text.startswith(self.symbol):
            text = text[len(self.symbol):]

        parts = text.split(".")
        if len(parts) > 2:
            raise InvalidFormatError(f"Amount has more than one '.': {value!r}")

        dollars = parts[0]
        if not _is_digits(dollars):
            raise InvalidFormatError(f"Amount is not a number: {value!r}")

        cents = _digits_to_int(dollars) * 100

        if len(parts) == 2:
            fraction = parts[1]
            if len(fraction) != 2 or not _is_digits(fraction):
                raise InvalidFormatError(
                    f"Cents must be exactly two digits: {value!r}"
                )
            cents += int(fraction)

        return -cents if negative else cents

    def format(self, cents: int) -> str:
        """Render cents as [-]<symbol><dollars>.<cc>."""
        sign = "-" if cents < 0 else ""
        dollars, remainder = divmod(abs(cents), 100)
        return f"{sign}{self.symbol}{_int_to_digits(dollars)}.{remainder:02d}"


_default_codec = MoneyCodec()


def parse_money(value: str) -> int:
    """Parse an amount string into cents using the default '$' codec."""
    return _default_codec.parse(value)


def format_money(cents: int) -> str:
    """Format cents using the default '$' codec."""
    return _default_codec.format(cents)
