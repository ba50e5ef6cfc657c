"""
Ledger Package

Month history storage, aggregation and backup codecs.
"""

from money_manager.ledger.aggregator import (
    LedgerSummary,
    NoteTotals,
    available_balances,
    category_breakdown,
    category_shares,
    note_totals,
    portfolio_total,
    summarize,
)
from money_manager.ledger.backup import (
    BackupFormatError,
    ImportedHistory,
    ImportReport,
    deserialize,
    history_to_tables,
    merge_history,
    pending_overwrites,
    serialize,
    tables_to_history,
)
from money_manager.ledger.months import (
    InvalidMonthKeyError,
    LedgerError,
    format_month,
    month_key_for,
    next_month_key,
    previous_month_key,
)
from money_manager.ledger.store import LedgerStore, MonthExistsError

__all__ = [
    # Aggregation
    "LedgerSummary",
    "NoteTotals",
    "available_balances",
    "category_breakdown",
    "category_shares",
    "note_totals",
    "portfolio_total",
    "summarize",
    # Backup
    "BackupFormatError",
    "ImportedHistory",
    "ImportReport",
    "deserialize",
    "history_to_tables",
    "merge_history",
    "pending_overwrites",
    "serialize",
    "tables_to_history",
    # Months
    "InvalidMonthKeyError",
    "LedgerError",
    "format_month",
    "month_key_for",
    "next_month_key",
    "previous_month_key",
    # Store
    "LedgerStore",
    "MonthExistsError",
]
