"""
Main Orchestrator for Money Manager

This module ties together all the components and defines the
end-to-end flows for:
1. Ledger edits (input → validate → mutate → persist → audit)
2. Backup (export to a spreadsheet, fetch, confirm, merge)

DESIGN DECISION: the orchestrator enforces the boundaries:
- Nothing is inserted while validation reports an error
- An import never overwrites an existing month without confirmation
- Every mutation is persisted and audited

The Streamlit app only talks to these flows, never to the store directly.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Callable, NamedTuple, Optional, Union
from uuid import UUID

import structlog
from pydantic import BaseModel, Field

from money_manager.audit import AuditLogger, create_correlation_id
from money_manager.config import get_settings
from money_manager.ledger import (
    BackupFormatError,
    ImportedHistory,
    ImportReport,
    LedgerStore,
    LedgerSummary,
    available_balances,
    category_breakdown,
    deserialize,
    merge_history,
    pending_overwrites,
    portfolio_total,
    serialize,
    summarize,
)
from money_manager.ledger.backup import count_transactions
from money_manager.models.ledger import (
    Bucket,
    Currency,
    CurrencyBalance,
    CurrencyNote,
    DisplayCurrency,
    ExchangeRateTable,
    MonthHistory,
    MonthRecord,
    Transaction,
    TransactionKind,
)
from money_manager.preferences import PasswordGate, PreferencesRepository
from money_manager.services.rates import ExchangeRateService
from money_manager.services.storage import (
    KEY_MONTH_HISTORY,
    BackupStorageInterface,
    ExportResult,
    GoogleSheetsBackupStorage,
    GoogleSheetsClient,
    JsonFileStore,
    KeyValueStore,
    StorageError,
)
from money_manager.validation import (
    ValidationResult,
    parse_amount,
    validate_note_input,
    validate_transaction_input,
)


logger = structlog.get_logger(__name__)

KEY_MONTH_HISTORY_CORRUPT = f"{KEY_MONTH_HISTORY}_corrupt"


class MonthOverview(BaseModel):
    """Everything the dashboard shows for one month."""

    month_key: str
    display_currency: DisplayCurrency
    summary: LedgerSummary
    summary_usd: LedgerSummary
    expense_by_category: dict[str, Decimal] = Field(default_factory=dict)
    income_by_category: dict[str, Decimal] = Field(default_factory=dict)
    available: CurrencyBalance
    portfolio_total_usd: Decimal


class SyncResult(BaseModel):
    """Outcome of a backup step, shown to the user as a message."""

    success: bool
    message: str
    correlation_id: Optional[UUID] = None
    export_result: Optional[ExportResult] = None
    imported: Optional[ImportedHistory] = None
    pending_overwrites: list[str] = Field(default_factory=list)
    report: Optional[ImportReport] = None


def load_history(store: KeyValueStore) -> MonthHistory:
    """
    Read the persisted month history.

    A blob that cannot be decoded is moved aside under its own key and
    an empty history is returned, so the app can still start.
    """
    blob = store.get(KEY_MONTH_HISTORY)
    if not blob:
        return {}
    try:
        return deserialize(blob)
    except BackupFormatError as e:
        logger.error("month_history_unreadable", error=str(e))
        store.set(KEY_MONTH_HISTORY_CORRUPT, blob)
        return {}


class LedgerFlow:
    """
    Orchestrates ledger edits.

    Every successful mutation writes the whole month history blob back
    to the key/value store.
    """

    def __init__(
        self,
        store: KeyValueStore,
        ledger: Optional[LedgerStore] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._ledger = ledger or LedgerStore(load_history(store))
        self._audit_logger = audit_logger

    @property
    def ledger(self) -> LedgerStore:
        return self._ledger

    def persist(self) -> None:
        self._store.set(KEY_MONTH_HISTORY, serialize(self._ledger.history))

    # =========================================================================
    # MONTHS
    # =========================================================================

    def reconcile(self, today: Union[date, datetime, None] = None) -> Optional[str]:
        """Create the current month if missing, carrying the latest one forward."""
        carried_from = self._ledger.latest_month()
        created = self._ledger.reconcile(today)
        if created:
            self.persist()
            if self._audit_logger:
                self._audit_logger.log_month_created(created, carried_from)
        return created

    def create_month(self, month_key: str) -> MonthRecord:
        """
        Raises:
            MonthExistsError: If the month already exists
            InvalidMonthKeyError: If the key is malformed
        """
        carried_from = self._ledger.latest_month()
        record = self._ledger.create_month(month_key)
        self.persist()
        if self._audit_logger:
            self._audit_logger.log_month_created(month_key, carried_from)
        return record

    def get_month(self, month_key: str) -> MonthRecord:
        """Get a month, creating it (and persisting) if it does not exist yet."""
        existed = self._ledger.has_month(month_key)
        record = self._ledger.get_or_create_month(month_key)
        if not existed:
            self.persist()
        return record

    def available_months(self) -> list[str]:
        return self._ledger.available_months()

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    def add_transaction(
        self,
        month_key: str,
        kind: TransactionKind,
        amount,
        category: Optional[str],
        currency: Currency = Currency.USD,
        description: str = "",
        timestamp: Optional[datetime] = None,
    ) -> tuple[ValidationResult, Optional[Transaction]]:
        """
        Validate and insert a transaction.

        Returns the validation result and the inserted transaction, or
        None when validation failed.
        """
        result = validate_transaction_input(amount, category, kind)
        if not result.is_valid:
            if self._audit_logger:
                self._audit_logger.log_validation_failed("transaction", result.as_log_details())
            return result, None

        transaction = Transaction(
            kind=kind,
            amount=parse_amount(amount),
            currency=currency,
            category=category,
            description=description or "",
            timestamp=timestamp or datetime.now(),
        )
        self._ledger.add_transaction(month_key, transaction)
        self.persist()

        if self._audit_logger:
            self._audit_logger.log_transaction_added(
                month_key=month_key,
                transaction_id=transaction.id,
                kind=transaction.kind.value,
                amount=str(transaction.amount),
                currency=transaction.currency.value,
                category=transaction.category,
            )
        return result, transaction

    def delete_transaction(self, month_key: str, transaction_id: str) -> bool:
        deleted = self._ledger.delete_transaction(month_key, transaction_id)
        if deleted:
            self.persist()
            if self._audit_logger:
                self._audit_logger.log_transaction_deleted(month_key, transaction_id)
        return deleted

    # =========================================================================
    # BALANCES AND NOTES
    # =========================================================================

    def update_balances(
        self,
        month_key: str,
        usd=None,
        eur=None,
        crypto=None,
    ) -> CurrencyBalance:
        """
        Save the three bucket balances. Empty or unparsable inputs count as 0.
        """
        balances = CurrencyBalance(
            usd=parse_amount(usd) or Decimal("0"),
            eur=parse_amount(eur) or Decimal("0"),
            crypto=parse_amount(crypto) or Decimal("0"),
        )
        saved = self._ledger.update_balances(month_key, balances)
        self.persist()
        if self._audit_logger:
            self._audit_logger.log_balances_updated(month_key, {
                "usd": str(saved.usd),
                "eur": str(saved.eur),
                "crypto": str(saved.crypto),
            })
        return saved

    def add_note(
        self,
        month_key: str,
        bucket: Bucket,
        amount,
        description: Optional[str],
        kind: TransactionKind = TransactionKind.EXPENSE,
        exchange_rate=None,
        note_date: Optional[datetime] = None,
    ) -> tuple[ValidationResult, Optional[CurrencyNote]]:
        """Validate and insert a currency note."""
        result = validate_note_input(amount, description, exchange_rate)
        if not result.is_valid:
            if self._audit_logger:
                self._audit_logger.log_validation_failed("note", result.as_log_details())
            return result, None

        note = CurrencyNote(
            kind=kind,
            amount=parse_amount(amount),
            description=description,
            date=note_date or datetime.now(),
            exchange_rate=parse_amount(exchange_rate) if exchange_rate not in (None, "") else None,
        )
        self._ledger.add_note(month_key, bucket, note)
        self.persist()

        if self._audit_logger:
            self._audit_logger.log_note_added(
                month_key=month_key,
                bucket=Bucket(bucket).value,
                note_id=note.id,
                kind=note.kind.value,
                amount=str(note.amount),
            )
        return result, note

    def delete_note(self, month_key: str, bucket: Bucket, note_id: str) -> bool:
        deleted = self._ledger.delete_note(month_key, bucket, note_id)
        if deleted:
            self.persist()
            if self._audit_logger:
                self._audit_logger.log_note_deleted(month_key, Bucket(bucket).value, note_id)
        return deleted

    # =========================================================================
    # READ MODELS
    # =========================================================================

    def month_overview(
        self,
        month_key: str,
        rates: ExchangeRateTable,
        display_currency: DisplayCurrency = DisplayCurrency.USD,
    ) -> MonthOverview:
        """Aggregate one month for the dashboard. Does not create the month."""
        record = self._ledger.get_month(month_key) or MonthRecord()
        summary_usd = summarize(record.transactions, rates)
        return MonthOverview(
            month_key=month_key,
            display_currency=display_currency,
            summary=summary_usd.in_display(display_currency, rates),
            summary_usd=summary_usd,
            expense_by_category=category_breakdown(
                record.transactions, TransactionKind.EXPENSE, rates
            ),
            income_by_category=category_breakdown(
                record.transactions, TransactionKind.INCOME, rates
            ),
            available=available_balances(record.balances, record.notes),
            portfolio_total_usd=portfolio_total(
                record.balances, record.notes, record.transactions, rates
            ),
        )


BackupStorageFactory = Callable[[Optional[str], str], BackupStorageInterface]


def google_sheets_backup(access_token: Optional[str], spreadsheet_id: str) -> BackupStorageInterface:
    return GoogleSheetsBackupStorage(
        GoogleSheetsClient(spreadsheet_id=spreadsheet_id, access_token=access_token)
    )


class BackupFlow:
    """
    Orchestrates spreadsheet backups.

    Export: history → two tables → spreadsheet.
    Import: spreadsheet → history (fetch), then user confirms each month
    that already exists locally (apply_import).

    Failures are returned as an unsuccessful SyncResult and leave the
    local state unchanged.
    """

    def __init__(
        self,
        ledger_flow: LedgerFlow,
        storage_factory: Optional[BackupStorageFactory] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._ledger_flow = ledger_flow
        self._storage_factory = storage_factory or google_sheets_backup
        self._audit_logger = audit_logger

    async def export_to_sheets(
        self,
        access_token: Optional[str],
        spreadsheet_id: str,
    ) -> SyncResult:
        correlation_id = create_correlation_id()
        history = self._ledger_flow.ledger.history

        try:
            storage = self._storage_factory(access_token, spreadsheet_id)
            export_result = await storage.export_history(history)
        except StorageError as e:
            logger.warning("export_failed", spreadsheet_id=spreadsheet_id, error=str(e))
            if self._audit_logger:
                self._audit_logger.log_export_failed(spreadsheet_id, str(e), correlation_id)
            return SyncResult(
                success=False,
                message=f"Export failed: {e}",
                correlation_id=correlation_id,
            )

        if self._audit_logger:
            self._audit_logger.log_export_completed(
                spreadsheet_id=spreadsheet_id,
                transactions_count=export_result.transactions_count,
                months_count=export_result.months_count,
                correlation_id=correlation_id,
            )
        return SyncResult(
            success=True,
            message=(
                f"Exported {export_result.transactions_count} transactions "
                f"across {export_result.months_count} months"
            ),
            correlation_id=correlation_id,
            export_result=export_result,
        )

    async def fetch_from_sheets(
        self,
        access_token: Optional[str],
        spreadsheet_id: str,
    ) -> SyncResult:
        """
        Read a backup without applying it.

        The result lists the months that would need an overwrite
        confirmation.
        """
        correlation_id = create_correlation_id()

        try:
            storage = self._storage_factory(access_token, spreadsheet_id)
            imported = await storage.import_history()
        except StorageError as e:
            logger.warning("import_failed", spreadsheet_id=spreadsheet_id, error=str(e))
            if self._audit_logger:
                self._audit_logger.log_import_failed(spreadsheet_id, str(e), correlation_id)
            return SyncResult(
                success=False,
                message=f"Import failed: {e}",
                correlation_id=correlation_id,
            )

        if self._audit_logger:
            self._audit_logger.log_import_fetched(
                spreadsheet_id=spreadsheet_id,
                months_count=len(imported.history),
                skipped_rows=imported.skipped_rows,
                correlation_id=correlation_id,
            )

        if not imported.history:
            return SyncResult(
                success=False,
                message="The spreadsheet contains no data to import",
                correlation_id=correlation_id,
                imported=imported,
            )

        message = (
            f"Found {count_transactions(imported.history)} transactions "
            f"across {len(imported.history)} months"
        )
        if imported.skipped_rows:
            message += f" ({imported.skipped_rows} rows skipped)"

        return SyncResult(
            success=True,
            message=message,
            correlation_id=correlation_id,
            imported=imported,
            pending_overwrites=pending_overwrites(self._ledger_flow.ledger.history, imported.history),
        )

    def apply_import(
        self,
        incoming: Union[ImportedHistory, MonthHistory],
        confirm_overwrite: Callable[[str], bool],
        correlation_id: Optional[UUID] = None,
    ) -> SyncResult:
        """
        Merge fetched months into the ledger.

        Existing months are replaced only where confirm_overwrite
        returns True.
        """
        history = incoming.history if isinstance(incoming, ImportedHistory) else incoming
        report = merge_history(self._ledger_flow.ledger.history, history, confirm_overwrite)

        if report.changed:
            self._ledger_flow.persist()

        if self._audit_logger:
            self._audit_logger.log_import_applied(
                inserted=report.inserted,
                overwritten=report.overwritten,
                kept=report.kept,
                correlation_id=correlation_id,
            )

        return SyncResult(
            success=True,
            message=(
                f"Imported {len(report.inserted)} new months, "
                f"overwrote {len(report.overwritten)}, kept {len(report.kept)}"
            ),
            correlation_id=correlation_id,
            report=report,
        )


class AppComponents(NamedTuple):
    ledger_flow: LedgerFlow
    backup_flow: BackupFlow
    rate_service: ExchangeRateService
    preferences: PreferencesRepository
    password_gate: PasswordGate
    audit_logger: AuditLogger


def create_app_components(
    store: Optional[KeyValueStore] = None,
    today: Union[date, datetime, None] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        store: Key/value persistence. Defaults to the JSON state file
               from settings; pass an InMemoryStore for tests.
        today: Date used for the startup month reconciliation.

    Returns:
        AppComponents with the flows and services wired together
    """
    if store is None:
        store = JsonFileStore(get_settings().app.data_path)

    audit_logger = AuditLogger()

    ledger_flow = LedgerFlow(store, audit_logger=audit_logger)
    backup_flow = BackupFlow(ledger_flow, audit_logger=audit_logger)
    rate_service = ExchangeRateService(audit_logger=audit_logger)
    preferences = PreferencesRepository(store)
    password_gate = PasswordGate(store, audit_logger=audit_logger)

    ledger_flow.reconcile(today)

    return AppComponents(
        ledger_flow=ledger_flow,
        backup_flow=backup_flow,
        rate_service=rate_service,
        preferences=preferences,
        password_gate=password_gate,
        audit_logger=audit_logger,
    )
