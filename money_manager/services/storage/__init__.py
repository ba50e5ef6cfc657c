"""
Storage Services Package

Key/value persistence for the application state, and the Google Sheets
backup target.
"""

from money_manager.services.storage.interface import (
    KEY_DISPLAY_CURRENCY,
    KEY_LANGUAGE,
    KEY_MONTH_HISTORY,
    KEY_PASSWORD,
    KEY_SPREADSHEET_ID,
    KEY_THEME,
    BackupStorageInterface,
    ConnectionError,
    ExportResult,
    KeyValueStore,
    NotFoundError,
    StorageError,
)
from money_manager.services.storage.local import InMemoryStore, JsonFileStore
from money_manager.services.storage.google_sheets import (
    GoogleSheetsBackupStorage,
    GoogleSheetsClient,
)

__all__ = [
    # Keys
    "KEY_DISPLAY_CURRENCY",
    "KEY_LANGUAGE",
    "KEY_MONTH_HISTORY",
    "KEY_PASSWORD",
    "KEY_SPREADSHEET_ID",
    "KEY_THEME",
    # Interfaces
    "BackupStorageInterface",
    "ExportResult",
    "KeyValueStore",
    # Exceptions
    "ConnectionError",
    "NotFoundError",
    "StorageError",
    # Local implementations
    "InMemoryStore",
    "JsonFileStore",
    # Google Sheets implementation
    "GoogleSheetsBackupStorage",
    "GoogleSheetsClient",
]
