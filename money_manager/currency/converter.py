"""
Currency Conversion

Pure functions mapping amounts between the ledger currencies and the
display currencies, using an ExchangeRateTable.

USD is the common unit: every ledger amount is first brought to USD,
and display amounts are derived from USD.
- USD and CRYPTO convert at 1.0 (CRYPTO is tracked as USD-equivalent)
- EUR converts via eur_to_usd
- UAH is reached via usd_to_secondary

No rounding happens here. Amounts are rounded to two places only by
format_currency, at render time.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Union

from money_manager.models.ledger import Currency, DisplayCurrency, ExchangeRateTable


CURRENCY_SYMBOLS = {
    Currency.USD: "$",
    Currency.EUR: "€",
    Currency.CRYPTO: "$",
    DisplayCurrency.UAH: "₴",
}

TWO_PLACES = Decimal("0.01")


def to_usd(amount: Decimal, currency: Currency, rates: ExchangeRateTable) -> Decimal:
    """Convert a ledger amount to USD."""
    if currency == Currency.EUR:
        return amount * rates.eur_to_usd
    # USD, and CRYPTO as a USD-equivalent
    return amount


def to_display(
    amount_usd: Decimal,
    display_currency: DisplayCurrency,
    rates: ExchangeRateTable,
) -> Decimal:
    """Convert a USD amount to the display currency."""
    if display_currency == DisplayCurrency.UAH:
        return amount_usd * rates.usd_to_secondary
    return amount_usd


def convert(
    amount: Decimal,
    from_currency: Currency,
    rates: ExchangeRateTable,
    target: DisplayCurrency = DisplayCurrency.USD,
) -> Decimal:
    """Convert a ledger amount straight to a display currency."""
    return to_display(to_usd(amount, from_currency, rates), target, rates)


def currency_symbol(currency: Union[Currency, DisplayCurrency]) -> str:
    """Symbol shown before an amount in the given currency."""
    if currency == DisplayCurrency.USD:
        return "$"
    return CURRENCY_SYMBOLS.get(currency, "$")


def format_currency(
    amount: Decimal,
    currency: Union[Currency, DisplayCurrency] = DisplayCurrency.USD,
) -> str:
    """
    Render an amount with its symbol and two decimals.

    >>> format_currency(Decimal("-1234.5"))
    '-$1,234.50'
    """
    rounded = Decimal(amount).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
    sign = "-" if rounded < 0 else ""
    return f"{sign}{currency_symbol(currency)}{abs(rounded):,.2f}"
