"""
Ledger Aggregation

Pure functions over transaction lists, balances and notes. All totals are
computed in USD units first and converted to a display currency on
request, so every figure on screen can be reproduced from the raw entries.
"""

from decimal import Decimal
from typing import Iterable, Mapping

from pydantic import BaseModel, ConfigDict

from money_manager.currency.converter import to_display, to_usd
from money_manager.models.ledger import (
    Bucket,
    CurrencyBalance,
    CurrencyNote,
    DisplayCurrency,
    ExchangeRateTable,
    Transaction,
    TransactionKind,
)


ZERO = Decimal("0")
HUNDRED = Decimal("100")


class LedgerSummary(BaseModel):
    """Income/expense totals for a list of transactions."""
    model_config = ConfigDict(frozen=True)

    total_income: Decimal = ZERO
    total_expense: Decimal = ZERO
    net_balance: Decimal = ZERO
    income_count: int = 0
    expense_count: int = 0

    @property
    def has_data(self) -> bool:
        return (self.income_count + self.expense_count) > 0

    def in_display(
        self,
        display_currency: DisplayCurrency,
        rates: ExchangeRateTable,
    ) -> "LedgerSummary":
        """The same summary with amounts converted from USD."""
        return self.model_copy(update={
            "total_income": to_display(self.total_income, display_currency, rates),
            "total_expense": to_display(self.total_expense, display_currency, rates),
            "net_balance": to_display(self.net_balance, display_currency, rates),
        })


class NoteTotals(BaseModel):
    """Sums of the notes in one bucket."""
    model_config = ConfigDict(frozen=True)

    income: Decimal = ZERO
    expense: Decimal = ZERO

    @property
    def spent(self) -> Decimal:
        """Every note draws on its bucket, whatever its kind."""
        return self.income + self.expense


def summarize(transactions: Iterable[Transaction], rates: ExchangeRateTable) -> LedgerSummary:
    """
    Total income and expense in USD.

    Example: income 3000 USD and expense 120 EUR at eur_to_usd 1.09
    give 3000 / 130.80 / 2869.20.
    """
    income = expense = ZERO
    income_count = expense_count = 0

    for transaction in transactions:
        amount = to_usd(transaction.amount, transaction.currency, rates)
        if transaction.kind == TransactionKind.INCOME:
            income += amount
            income_count += 1
        else:
            expense += amount
            expense_count += 1

    return LedgerSummary(
        total_income=income,
        total_expense=expense,
        net_balance=income - expense,
        income_count=income_count,
        expense_count=expense_count,
    )


def category_breakdown(
    transactions: Iterable[Transaction],
    kind: TransactionKind,
    rates: ExchangeRateTable,
) -> dict[str, Decimal]:
    """
    Converted (USD) sum per category for one kind of transaction.

    Categories keep the order in which they first appear.
    """
    breakdown: dict[str, Decimal] = {}
    for transaction in transactions:
        if transaction.kind != kind:
            continue
        amount = to_usd(transaction.amount, transaction.currency, rates)
        breakdown[transaction.category] = breakdown.get(transaction.category, ZERO) + amount
    return breakdown


def category_shares(breakdown: Mapping[str, Decimal]) -> dict[str, Decimal]:
    """Percentage (0-100) of the total for each category."""
    total = sum(breakdown.values(), ZERO)
    if total == 0:
        return {}
    return {category: amount * HUNDRED / total for category, amount in breakdown.items()}


def note_totals(notes: Iterable[CurrencyNote]) -> NoteTotals:
    income = expense = ZERO
    for note in notes:
        if note.kind == TransactionKind.INCOME:
            income += note.amount
        else:
            expense += note.amount
    return NoteTotals(income=income, expense=expense)


def available_balances(
    balances: CurrencyBalance,
    notes: Mapping[Bucket, Iterable[CurrencyNote]],
) -> CurrencyBalance:
    """
    Balance of each bucket adjusted by its notes.

    Every note is subtracted; its kind only labels it. The result may be
    negative.
    """
    available = {}
    for bucket in Bucket:
        available[bucket.value] = balances.get(bucket) - note_totals(notes.get(bucket, [])).spent
    return CurrencyBalance(**available)


def portfolio_total(
    balances: CurrencyBalance,
    notes: Mapping[Bucket, Iterable[CurrencyNote]],
    transactions: Iterable[Transaction],
    rates: ExchangeRateTable,
) -> Decimal:
    """
    Everything the user has, in USD.

    Available balances of all buckets plus the net of the transaction log.
    """
    available = available_balances(balances, notes)
    holdings = sum(
        (to_usd(available.get(bucket), bucket.currency, rates) for bucket in Bucket),
        ZERO,
    )
    return holdings + summarize(transactions, rates).net_balance
