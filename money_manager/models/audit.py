"""
Audit Models for Money Manager

Every change to the ledger and every call to an external service is
recorded as an event. This provides:
1. Traceability of what happened to the month history
2. Debugging information when a backup or rate fetch goes wrong
3. A way to reconstruct what an import did to local data

Audit events are append-only. We never delete or modify them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.
    """
    # Ledger mutations
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_DELETED = "transaction_deleted"
    BALANCES_UPDATED = "balances_updated"
    NOTE_ADDED = "note_added"
    NOTE_DELETED = "note_deleted"
    VALIDATION_FAILED = "validation_failed"

    # Month management
    MONTH_CREATED = "month_created"

    # Exchange rates
    RATES_REFRESHED = "rates_refreshed"
    RATES_FALLBACK = "rates_fallback"

    # Backup
    EXPORT_COMPLETED = "export_completed"
    EXPORT_FAILED = "export_failed"
    IMPORT_FETCHED = "import_fetched"
    IMPORT_APPLIED = "import_applied"
    IMPORT_FAILED = "import_failed"

    # Password gate
    PASSWORD_SET = "password_set"
    PASSWORD_REMOVED = "password_removed"
    LOGIN_FAILED = "login_failed"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'note', 'month')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID or key of the entity this event relates to"
    )
    month_key: Optional[str] = Field(
        default=None,
        description="Month the event touched, if any"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., fetch and apply of one import)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "month_key": self.month_key,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_added(month_key, transaction_id, ...)
        event = AuditEventBuilder.export_failed(spreadsheet_id, error, correlation_id)
    """

    @staticmethod
    def transaction_added(
        month_key: str,
        transaction_id: str,
        kind: str,
        amount: str,
        currency: str,
        category: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_ADDED,
            entity_type="transaction",
            entity_id=transaction_id,
            month_key=month_key,
            description=f"{kind.capitalize()} added: {amount} {currency} ({category})",
            details={
                "kind": kind,
                "amount": amount,
                "currency": currency,
                "category": category,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_deleted(month_key: str, transaction_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_id,
            month_key=month_key,
            description="Transaction deleted",
            is_user_action=True,
        )

    @staticmethod
    def balances_updated(month_key: str, balances: dict[str, str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BALANCES_UPDATED,
            entity_type="month",
            entity_id=month_key,
            month_key=month_key,
            description="Currency balances updated",
            details={"balances": balances},
            is_user_action=True,
        )

    @staticmethod
    def note_added(
        month_key: str,
        bucket: str,
        note_id: str,
        kind: str,
        amount: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.NOTE_ADDED,
            entity_type="note",
            entity_id=note_id,
            month_key=month_key,
            description=f"{bucket.upper()} note added: {kind} {amount}",
            details={"bucket": bucket, "kind": kind, "amount": amount},
            is_user_action=True,
        )

    @staticmethod
    def note_deleted(month_key: str, bucket: str, note_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.NOTE_DELETED,
            entity_type="note",
            entity_id=note_id,
            month_key=month_key,
            description=f"{bucket.upper()} note deleted",
            details={"bucket": bucket},
            is_user_action=True,
        )

    @staticmethod
    def validation_failed(entity_type: str, issues: list[dict]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            description=f"Input rejected with {len(issues)} issues",
            details={"issues": issues},
            is_user_action=True,
        )

    @staticmethod
    def month_created(month_key: str, carried_from: Optional[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MONTH_CREATED,
            entity_type="month",
            entity_id=month_key,
            month_key=month_key,
            description=(
                f"Month {month_key} created from {carried_from}"
                if carried_from
                else f"Month {month_key} created empty"
            ),
            details={"carried_from": carried_from},
        )

    @staticmethod
    def rates_refreshed(source: str, rates: dict[str, str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RATES_REFRESHED,
            entity_type="rates",
            description=f"Exchange rates refreshed from {source}",
            details=rates,
        )

    @staticmethod
    def rates_fallback(error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RATES_FALLBACK,
            severity=AuditSeverity.WARNING,
            entity_type="rates",
            description="Exchange rate fetch failed, keeping last known rates",
            error_message=error_message,
        )

    @staticmethod
    def export_completed(
        spreadsheet_id: str,
        transactions_count: int,
        months_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPORT_COMPLETED,
            entity_type="spreadsheet",
            entity_id=spreadsheet_id,
            correlation_id=correlation_id,
            description=(
                f"Exported {transactions_count} transactions, {months_count} months"
            ),
            details={
                "transactions_count": transactions_count,
                "months_count": months_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def export_failed(
        spreadsheet_id: str,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPORT_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="spreadsheet",
            entity_id=spreadsheet_id,
            correlation_id=correlation_id,
            description="Export to spreadsheet failed",
            error_message=error_message,
            is_user_action=True,
        )

    @staticmethod
    def import_fetched(
        spreadsheet_id: str,
        months_count: int,
        skipped_rows: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMPORT_FETCHED,
            entity_type="spreadsheet",
            entity_id=spreadsheet_id,
            correlation_id=correlation_id,
            description=f"Fetched {months_count} months from spreadsheet",
            details={"months_count": months_count, "skipped_rows": skipped_rows},
            is_user_action=True,
        )

    @staticmethod
    def import_applied(
        inserted: list[str],
        overwritten: list[str],
        kept: list[str],
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMPORT_APPLIED,
            entity_type="month_history",
            correlation_id=correlation_id,
            description=(
                f"Import applied: {len(inserted)} inserted, "
                f"{len(overwritten)} overwritten, {len(kept)} kept"
            ),
            details={
                "inserted": inserted,
                "overwritten": overwritten,
                "kept": kept,
            },
            is_user_action=True,
        )

    @staticmethod
    def import_failed(
        spreadsheet_id: str,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMPORT_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="spreadsheet",
            entity_id=spreadsheet_id,
            correlation_id=correlation_id,
            description="Import from spreadsheet failed",
            error_message=error_message,
            is_user_action=True,
        )

    @staticmethod
    def password_changed(enabled: bool) -> AuditEvent:
        return AuditEvent(
            event_type=(
                AuditEventType.PASSWORD_SET if enabled else AuditEventType.PASSWORD_REMOVED
            ),
            entity_type="preferences",
            description="Password gate enabled" if enabled else "Password gate removed",
            is_user_action=True,
        )

    @staticmethod
    def login_failed() -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOGIN_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="preferences",
            description="Wrong password entered",
            is_user_action=True,
        )
