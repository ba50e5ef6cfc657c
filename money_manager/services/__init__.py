"""Services package."""

from money_manager.services.rates import (
    ExchangeRateService,
    RatesUnavailableError,
)
from money_manager.services.storage import (
    BackupStorageInterface,
    ConnectionError,
    ExportResult,
    GoogleSheetsBackupStorage,
    GoogleSheetsClient,
    InMemoryStore,
    JsonFileStore,
    KeyValueStore,
    NotFoundError,
    StorageError,
)

__all__ = [
    # Rate services
    "ExchangeRateService",
    "RatesUnavailableError",
    # Storage services
    "BackupStorageInterface",
    "ConnectionError",
    "ExportResult",
    "GoogleSheetsBackupStorage",
    "GoogleSheetsClient",
    "InMemoryStore",
    "JsonFileStore",
    "KeyValueStore",
    "NotFoundError",
    "StorageError",
]
