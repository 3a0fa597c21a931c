"""Money parsing and formatting package."""

from tabkeeper.money.codec import (
    DEFAULT_CURRENCY_SYMBOL,
    InvalidFormatError,
    MoneyCodec,
    format_money,
    parse_money,
)

__all__ = [
    "DEFAULT_CURRENCY_SYMBOL",
    "InvalidFormatError",
    "MoneyCodec",
    "format_money",
    "parse_money",
]
