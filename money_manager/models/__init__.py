"""
Data Models Package

This package contains all Pydantic models used in Money Manager.
All data flowing through the system must conform to these schemas.
"""

from money_manager.models.ledger import (
    Bucket,
    Currency,
    CurrencyBalance,
    CurrencyNote,
    DisplayCurrency,
    ExchangeRateTable,
    Language,
    MonthHistory,
    MonthRecord,
    RateSource,
    Transaction,
    TransactionKind,
    is_valid_month_key,
    new_id,
)
from money_manager.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "Bucket",
    "Currency",
    "CurrencyBalance",
    "CurrencyNote",
    "DisplayCurrency",
    "ExchangeRateTable",
    "Language",
    "MonthHistory",
    "MonthRecord",
    "RateSource",
    "Transaction",
    "TransactionKind",
    "is_valid_month_key",
    "new_id",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
