"""
Ledger Store

Owns the month history and every mutation of it.

ROLLOVER: a month that does not exist yet is created from the
chronologically latest existing month. Balances and notes are copied,
the transaction list starts empty. With no months at all, the new month
starts from zero balances and empty note buckets.

The store is single-writer and single-threaded. It does not persist
anything itself; callers save `history` after mutating.
"""

from datetime import date, datetime
from typing import Optional, Union

import structlog

from money_manager.ledger.months import (
    LedgerError,
    ensure_month_key,
    month_key_for,
)
from money_manager.models.ledger import (
    Bucket,
    CurrencyBalance,
    CurrencyNote,
    MonthHistory,
    MonthRecord,
    Transaction,
)


logger = structlog.get_logger(__name__)


class MonthExistsError(LedgerError):
    """Attempted to create a month that is already in the history."""
    pass


class LedgerStore:
    """
    Keyed month history with rollover.
    """

    def __init__(self, history: Optional[MonthHistory] = None):
        self._history: MonthHistory = dict(history or {})

    @property
    def history(self) -> MonthHistory:
        return self._history

    # =========================================================================
    # MONTHS
    # =========================================================================

    def available_months(self) -> list[str]:
        return sorted(self._history)

    def latest_month(self) -> Optional[str]:
        months = self.available_months()
        return months[-1] if months else None

    def has_month(self, month_key: str) -> bool:
        return month_key in self._history

    def get_month(self, month_key: str) -> Optional[MonthRecord]:
        return self._history.get(month_key)

    def get_or_create_month(self, month_key: str) -> MonthRecord:
        """Return the record for a month, creating it by rollover if absent."""
        ensure_month_key(month_key)
        record = self._history.get(month_key)
        if record is None:
            record = self._create(month_key)
        return record

    def create_month(self, month_key: str) -> MonthRecord:
        """
        Explicitly create a month.

        Raises:
            MonthExistsError: If the month is already present
            InvalidMonthKeyError: If the key is malformed
        """
        ensure_month_key(month_key)
        if month_key in self._history:
            raise MonthExistsError(f"Month {month_key} already exists")
        return self._create(month_key)

    def reconcile(self, today: Union[date, datetime, None] = None) -> Optional[str]:
        """
        Make sure the current calendar month exists.

        Returns the key of the created month, or None if it was already there.
        """
        month_key = month_key_for(today or date.today())
        if month_key in self._history:
            return None
        self._create(month_key)
        return month_key

    def _create(self, month_key: str) -> MonthRecord:
        source_key = self.latest_month()
        if source_key is None:
            record = MonthRecord()
        else:
            record = self._history[source_key].carry_forward()
        self._history[month_key] = record
        logger.info("month_created", month_key=month_key, carried_from=source_key)
        return record

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    def add_transaction(self, month_key: str, transaction: Transaction) -> Transaction:
        record = self.get_or_create_month(month_key)
        record.transactions.append(transaction)
        return transaction

    def delete_transaction(self, month_key: str, transaction_id: str) -> bool:
        """
        Remove exactly one transaction.

        Returns False (and changes nothing) when the month or id is unknown.
        """
        record = self._history.get(month_key)
        if record is None:
            return False
        for index, transaction in enumerate(record.transactions):
            if transaction.id == transaction_id:
                del record.transactions[index]
                return True
        return False

    def update_balances(self, month_key: str, balances: CurrencyBalance) -> CurrencyBalance:
        record = self.get_or_create_month(month_key)
        record.balances = balances.model_copy()
        return record.balances

    def add_note(self, month_key: str, bucket: Bucket, note: CurrencyNote) -> CurrencyNote:
        record = self.get_or_create_month(month_key)
        record.notes.setdefault(Bucket(bucket), []).append(note)
        return note

    def delete_note(self, month_key: str, bucket: Bucket, note_id: str) -> bool:
        """Remove exactly one note from a bucket. False if not found."""
        record = self._history.get(month_key)
        if record is None:
            return False
        notes = record.notes.get(Bucket(bucket), [])
        for index, note in enumerate(notes):
            if note.id == note_id:
                del notes[index]
                return True
        return False
