"""
Core Data Models for Money Manager

These models define the schemas for everything the ledger stores:
transactions, per-currency balances, currency notes and month records.
They are designed to:
1. Enforce type safety at runtime
2. Be serializable for local persistence and spreadsheet backups
3. Keep money arithmetic exact (Decimal, rounded only when rendered)

Transactions and notes are frozen: they are created and deleted,
never edited in place.
"""

import re
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


MONTH_KEY_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


def new_id() -> str:
    """Generate a fresh, stable identifier for a ledger entry."""
    return str(uuid4())


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionKind(str, Enum):
    """Direction of a transaction or note."""
    INCOME = "income"
    EXPENSE = "expense"


class Currency(str, Enum):
    """
    Currencies a transaction can be recorded in.

    CRYPTO is tracked as a USD-equivalent amount, not a market position.
    """
    USD = "USD"
    EUR = "EUR"
    CRYPTO = "CRYPTO"


class Bucket(str, Enum):
    """The three independent balance buckets of a CurrencyBalance."""
    USD = "usd"
    EUR = "eur"
    CRYPTO = "crypto"

    @property
    def currency(self) -> Currency:
        return Currency(self.value.upper())


class DisplayCurrency(str, Enum):
    """Currency in which aggregated totals are rendered."""
    USD = "USD"
    UAH = "UAH"


class Language(str, Enum):
    """Supported interface languages."""
    EN = "en"
    RU = "ru"
    UK = "uk"


class RateSource(str, Enum):
    """Where the current exchange rate table came from."""
    LIVE = "live"
    FALLBACK = "fallback"


# =============================================================================
# LEDGER ENTRIES
# =============================================================================

class Transaction(BaseModel):
    """
    A single income or expense entry in the main transaction log.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(
        default_factory=new_id,
        description="Unique, stable transaction ID"
    )
    kind: TransactionKind
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Amount in the transaction's own currency"
    )
    currency: Currency = Currency.USD
    category: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Free-form category label"
    )
    description: str = Field(
        default="",
        max_length=500,
    )
    timestamp: datetime = Field(
        default_factory=datetime.now,
        description="When the transaction was recorded"
    )


class CurrencyNote(BaseModel):
    """
    A manual adjustment against one currency bucket.

    Notes live beside the transaction log and only affect the
    "available" amount of their bucket.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(default_factory=new_id)
    kind: TransactionKind = TransactionKind.EXPENSE
    amount: Decimal = Field(..., ge=0)
    description: str = Field(
        ...,
        min_length=1,
        max_length=500,
    )
    date: datetime = Field(default_factory=datetime.now)
    exchange_rate: Optional[Decimal] = Field(
        default=None,
        gt=0,
        description="Rate the user noted for this adjustment, informational only"
    )


class CurrencyBalance(BaseModel):
    """
    Manually entered holdings per bucket.

    Non-negative by convention only; nothing enforces it.
    """

    usd: Decimal = Decimal("0")
    eur: Decimal = Decimal("0")
    crypto: Decimal = Decimal("0")

    def get(self, bucket: Bucket) -> Decimal:
        return getattr(self, bucket.value)


def empty_notes() -> dict[Bucket, list[CurrencyNote]]:
    return {bucket: [] for bucket in Bucket}


class MonthRecord(BaseModel):
    """
    Everything the ledger knows about one calendar month.
    """

    transactions: list[Transaction] = Field(default_factory=list)
    balances: CurrencyBalance = Field(default_factory=CurrencyBalance)
    notes: dict[Bucket, list[CurrencyNote]] = Field(default_factory=empty_notes)

    @field_validator('notes')
    @classmethod
    def fill_missing_buckets(
        cls,
        v: dict[Bucket, list[CurrencyNote]],
    ) -> dict[Bucket, list[CurrencyNote]]:
        """Every bucket gets a list, even when persisted data omitted it."""
        for bucket in Bucket:
            v.setdefault(bucket, [])
        return v

    def carry_forward(self) -> "MonthRecord":
        """
        Start a new month from this one.

        Balances and notes are copied, transactions start empty.
        """
        return MonthRecord(
            balances=self.balances.model_copy(),
            notes={bucket: list(notes) for bucket, notes in self.notes.items()},
        )


# Month key -> record, the unit of persistence and backup
MonthHistory = dict[str, MonthRecord]


# =============================================================================
# EXCHANGE RATES
# =============================================================================

class ExchangeRateTable(BaseModel):
    """
    The current set of conversion rates.

    Always "current": historical rates are never kept.
    """
    model_config = ConfigDict(frozen=True)

    usd_to_secondary: Decimal = Field(..., gt=0)
    eur_to_secondary: Decimal = Field(..., gt=0)
    eur_to_usd: Decimal = Field(..., gt=0)
    source: RateSource = RateSource.FALLBACK
    fetched_at: Optional[datetime] = None

    @classmethod
    def fallback(
        cls,
        usd_to_secondary: Decimal = Decimal("41.5"),
        eur_to_secondary: Decimal = Decimal("45.0"),
        eur_to_usd: Decimal = Decimal("1.09"),
    ) -> "ExchangeRateTable":
        """Hardcoded rates used until (or instead of) a live fetch."""
        return cls(
            usd_to_secondary=usd_to_secondary,
            eur_to_secondary=eur_to_secondary,
            eur_to_usd=eur_to_usd,
            source=RateSource.FALLBACK,
        )


def is_valid_month_key(value: str) -> bool:
    """Check a string against the "YYYY-MM" format."""
    return bool(MONTH_KEY_PATTERN.match(value or ""))
