"""
Backup Codec and Import Merge

Two representations of a month history leave the application:

1. A JSON blob (serialize/deserialize), used for local persistence.
2. Two flat tables, used for the spreadsheet backup:
   - transactions: [month, kind, currency, category, amount, description, date]
   - balances:     [month, usd, eur, crypto]
   Each table starts with a header row. Notes are not part of the tables.

Imports never overwrite a local month silently: merge_history asks for
confirmation per month key and replaces whole records only.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Optional, Sequence

import structlog
from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from money_manager.models.ledger import (
    Currency,
    CurrencyBalance,
    MonthHistory,
    MonthRecord,
    Transaction,
    TransactionKind,
    is_valid_month_key,
)
from money_manager.validation.validator import parse_amount


logger = structlog.get_logger(__name__)

TRANSACTION_HEADER = ["month", "kind", "currency", "category", "amount", "description", "date"]
BALANCE_HEADER = ["month", "usd", "eur", "crypto"]

_history_adapter = TypeAdapter(MonthHistory)


class BackupFormatError(Exception):
    """A backup blob could not be decoded into a month history."""
    pass


class ImportedHistory(BaseModel):
    """A history rebuilt from backup tables."""

    history: MonthHistory = Field(default_factory=dict)
    skipped_rows: int = Field(default=0, ge=0)

    @property
    def months(self) -> list[str]:
        return sorted(self.history)


class ImportReport(BaseModel):
    """Outcome of merging an imported history into the local one."""

    inserted: list[str] = Field(default_factory=list)
    overwritten: list[str] = Field(default_factory=list)
    kept: list[str] = Field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.inserted or self.overwritten)


# =============================================================================
# JSON BLOB
# =============================================================================

def serialize(history: MonthHistory) -> str:
    """Encode a history as JSON. Decimals are written as strings."""
    return _history_adapter.dump_json(history).decode("utf-8")


def deserialize(blob: str) -> MonthHistory:
    """
    Decode a JSON history.

    Raises:
        BackupFormatError: If the blob is not valid JSON, does not match
            the history schema, or contains a malformed month key
    """
    try:
        history = _history_adapter.validate_json(blob)
    except ValidationError as e:
        raise BackupFormatError(f"Invalid backup data: {e.error_count()} error(s)") from e

    bad_keys = [key for key in history if not is_valid_month_key(key)]
    if bad_keys:
        raise BackupFormatError(f"Invalid month keys in backup: {', '.join(bad_keys)}")
    return history


# =============================================================================
# TABLES
# =============================================================================

def history_to_tables(history: MonthHistory) -> tuple[list[list[str]], list[list[str]]]:
    """
    Flatten a history into transaction and balance rows, months ascending.
    """
    transaction_rows = [list(TRANSACTION_HEADER)]
    balance_rows = [list(BALANCE_HEADER)]

    for month_key in sorted(history):
        record = history[month_key]
        for transaction in record.transactions:
            transaction_rows.append([
                month_key,
                transaction.kind.value,
                transaction.currency.value,
                transaction.category,
                str(transaction.amount),
                transaction.description,
                transaction.timestamp.isoformat(),
            ])
        balance_rows.append([
            month_key,
            str(record.balances.usd),
            str(record.balances.eur),
            str(record.balances.crypto),
        ])

    return transaction_rows, balance_rows


def tables_to_history(
    transaction_rows: Sequence[Sequence[Any]],
    balance_rows: Sequence[Sequence[Any]],
) -> ImportedHistory:
    """
    Rebuild a history from backup rows.

    - A leading header row is ignored when it matches the expected header
    - Imported transactions get fresh ids
    - A month present in only one table is created with defaults
    - Unparsable amounts become 0
    - Rows with an invalid month key, kind or currency are skipped and counted
    """
    history: MonthHistory = {}
    skipped = 0

    for row in _strip_header(balance_rows, BALANCE_HEADER):
        month_key = _cell(row, 0)
        if not is_valid_month_key(month_key):
            skipped += 1
            continue
        record = history.setdefault(month_key, MonthRecord())
        record.balances = CurrencyBalance(
            usd=_parse_amount(_cell(row, 1)),
            eur=_parse_amount(_cell(row, 2)),
            crypto=_parse_amount(_cell(row, 3)),
        )

    for row in _strip_header(transaction_rows, TRANSACTION_HEADER):
        month_key = _cell(row, 0)
        if not is_valid_month_key(month_key):
            skipped += 1
            continue
        try:
            transaction = Transaction(
                kind=TransactionKind(_cell(row, 1).lower()),
                currency=Currency(_cell(row, 2).upper()),
                category=_cell(row, 3),
                amount=_parse_amount(_cell(row, 4)),
                description=_cell(row, 5),
                timestamp=_parse_timestamp(_cell(row, 6), month_key),
            )
        except (ValueError, ValidationError) as e:
            logger.warning("backup_row_skipped", month_key=month_key, error=str(e))
            skipped += 1
            continue
        history.setdefault(month_key, MonthRecord()).transactions.append(transaction)

    return ImportedHistory(history=history, skipped_rows=skipped)


def _strip_header(rows: Sequence[Sequence[Any]], header: list[str]) -> Sequence[Sequence[Any]]:
    if rows and [str(cell).strip().lower() for cell in rows[0][:len(header)]] == header:
        return rows[1:]
    return rows


def _cell(row: Sequence[Any], index: int) -> str:
    """Get a cell as a stripped string, empty if the row is short."""
    if index < len(row) and row[index] is not None:
        return str(row[index]).strip()
    return ""


def _parse_amount(value: str) -> Decimal:
    """Parse an amount cell; anything unparsable counts as 0."""
    amount = parse_amount(value)
    if amount is None:
        if value:
            logger.warning("backup_amount_unparsable", value=value)
        return Decimal("0")
    return amount


def _parse_timestamp(value: str, month_key: str) -> datetime:
    """
    Parse an ISO date cell, defaulting to the first day of the month.

    Ledger timestamps are naive local time; a cell carrying a UTC offset
    is converted to local time and the offset dropped.
    """
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        year, month = month_key.split("-")
        return datetime(int(year), int(month), 1)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


# =============================================================================
# MERGE
# =============================================================================

def merge_history(
    local: MonthHistory,
    incoming: MonthHistory,
    confirm_overwrite: Callable[[str], bool],
) -> ImportReport:
    """
    Merge an imported history into the local one, in place.

    New month keys are inserted. For keys that already exist locally,
    `confirm_overwrite(key)` decides: True replaces the whole record,
    anything else leaves the local record untouched.
    """
    report = ImportReport()
    for month_key in sorted(incoming):
        record = incoming[month_key]
        if month_key not in local:
            local[month_key] = record
            report.inserted.append(month_key)
        elif confirm_overwrite(month_key) is True:
            local[month_key] = record
            report.overwritten.append(month_key)
        else:
            report.kept.append(month_key)
    return report


def pending_overwrites(local: MonthHistory, incoming: MonthHistory) -> list[str]:
    """Month keys an import would need confirmation for."""
    return sorted(key for key in incoming if key in local)


def count_transactions(history: MonthHistory, month_key: Optional[str] = None) -> int:
    if month_key is not None:
        record = history.get(month_key)
        return len(record.transactions) if record else 0
    return sum(len(record.transactions) for record in history.values())
