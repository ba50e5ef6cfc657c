"""Currency conversion package."""

from money_manager.currency.converter import (
    convert,
    currency_symbol,
    format_currency,
    to_display,
    to_usd,
)

__all__ = [
    "convert",
    "currency_symbol",
    "format_currency",
    "to_display",
    "to_usd",
]
