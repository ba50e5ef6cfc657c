"""
Abstract Storage Interfaces

DESIGN DECISION: persistence is split in two small interfaces.
1. KeyValueStore holds the application state as independently keyed
   blobs (language, display currency, month history, ...). There is no
   schema versioning; each key is read and written on its own.
2. BackupStorageInterface moves a whole month history to and from an
   external backup target (a Google spreadsheet).

Neither is a storage engine. They only cover the operations the
application needs.
"""

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel

from money_manager.ledger.backup import ImportedHistory
from money_manager.models.ledger import MonthHistory


# Keys under which the application state is persisted
KEY_LANGUAGE = "language"
KEY_DISPLAY_CURRENCY = "display_currency"
KEY_MONTH_HISTORY = "month_history"
KEY_PASSWORD = "password"
KEY_THEME = "theme"
KEY_SPREADSHEET_ID = "spreadsheet_id"


class KeyValueStore(ABC):
    """
    Abstract key/value persistence for JSON-compatible values.
    """

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        """
        Read a value.

        Args:
            key: The key to read
            default: Returned when the key is absent

        Returns:
            The stored value, or default
        """
        pass

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """
        Write a value, replacing any previous one.

        Raises:
            StorageError: If the value could not be persisted
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """
        Remove a key.

        Returns:
            True if the key existed
        """
        pass

    def contains(self, key: str) -> bool:
        sentinel = object()
        return self.get(key, sentinel) is not sentinel


class ExportResult(BaseModel):
    """Summary of a completed export."""

    spreadsheet_id: str
    months_count: int = 0
    transactions_count: int = 0


class BackupStorageInterface(ABC):
    """
    Abstract interface for an external backup target.
    """

    @abstractmethod
    async def export_history(self, history: MonthHistory) -> ExportResult:
        """
        Replace the backup contents with the given history.

        Raises:
            StorageError: If any write fails. Data already written is
                not rolled back.
        """
        pass

    @abstractmethod
    async def import_history(self) -> ImportedHistory:
        """
        Read the backup contents.

        Raises:
            NotFoundError: If the target holds no backup at all
            StorageError: If the backup cannot be read
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
