"""
Audit Logger

Every significant action in the system is logged. This provides:
1. Traceability of ledger changes and imports
2. Debugging capability for rate fetches and spreadsheet backups
3. A local history of what the user did

The audit logger:
- Is synchronous: the ledger is single-user and single-threaded
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from money_manager.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Events go to the structured local log. The most recent ones are also
    kept in memory so the settings page can show them.
    """

    def __init__(self, history_size: int = 200):
        self._logger = structlog.get_logger("money_manager.audit")
        self._history_size = history_size
        self._recent: list[AuditEvent] = []

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns False if the structured log write failed.
        """
        self._recent.append(event)
        del self._recent[:-self._history_size]

        log_dict = event.to_log_dict()
        try:
            if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
                self._logger.error("audit_event", **log_dict)
            elif event.severity == AuditSeverity.WARNING:
                self._logger.warning("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception:
            # Logging must never break the main flow
            return False
        return True

    def recent_events(self, limit: int = 50) -> list[AuditEvent]:
        """Most recent events, newest first."""
        return list(reversed(self._recent))[:limit]

    def log_transaction_added(
        self,
        month_key: str,
        transaction_id: str,
        kind: str,
        amount: str,
        currency: str,
        category: str,
    ) -> None:
        self.log(AuditEventBuilder.transaction_added(
            month_key=month_key,
            transaction_id=transaction_id,
            kind=kind,
            amount=amount,
            currency=currency,
            category=category,
        ))

    def log_transaction_deleted(self, month_key: str, transaction_id: str) -> None:
        self.log(AuditEventBuilder.transaction_deleted(month_key, transaction_id))

    def log_balances_updated(self, month_key: str, balances: dict[str, str]) -> None:
        self.log(AuditEventBuilder.balances_updated(month_key, balances))

    def log_note_added(
        self,
        month_key: str,
        bucket: str,
        note_id: str,
        kind: str,
        amount: str,
    ) -> None:
        self.log(AuditEventBuilder.note_added(month_key, bucket, note_id, kind, amount))

    def log_note_deleted(self, month_key: str, bucket: str, note_id: str) -> None:
        self.log(AuditEventBuilder.note_deleted(month_key, bucket, note_id))

    def log_validation_failed(self, entity_type: str, issues: list[dict]) -> None:
        self.log(AuditEventBuilder.validation_failed(entity_type, issues))

    def log_month_created(self, month_key: str, carried_from: Optional[str]) -> None:
        self.log(AuditEventBuilder.month_created(month_key, carried_from))

    def log_rates_refreshed(self, source: str, rates: dict[str, str]) -> None:
        self.log(AuditEventBuilder.rates_refreshed(source, rates))

    def log_rates_fallback(self, error_message: str) -> None:
        self.log(AuditEventBuilder.rates_fallback(error_message))

    def log_export_completed(
        self,
        spreadsheet_id: str,
        transactions_count: int,
        months_count: int,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.export_completed(
            spreadsheet_id=spreadsheet_id,
            transactions_count=transactions_count,
            months_count=months_count,
            correlation_id=correlation_id,
        ))

    def log_export_failed(
        self,
        spreadsheet_id: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.export_failed(spreadsheet_id, error_message, correlation_id))

    def log_import_fetched(
        self,
        spreadsheet_id: str,
        months_count: int,
        skipped_rows: int,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.import_fetched(
            spreadsheet_id=spreadsheet_id,
            months_count=months_count,
            skipped_rows=skipped_rows,
            correlation_id=correlation_id,
        ))

    def log_import_applied(
        self,
        inserted: list[str],
        overwritten: list[str],
        kept: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.import_applied(inserted, overwritten, kept, correlation_id))

    def log_import_failed(
        self,
        spreadsheet_id: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.import_failed(spreadsheet_id, error_message, correlation_id))

    def log_password_changed(self, enabled: bool) -> None:
        self.log(AuditEventBuilder.password_changed(enabled))

    def log_login_failed(self) -> None:
        self.log(AuditEventBuilder.login_failed())


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a user action that spans several steps
    (e.g., fetching an import and then applying it).
    """
    return uuid4()
