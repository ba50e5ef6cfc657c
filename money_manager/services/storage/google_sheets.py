"""
Google Sheets Backup Implementation

DESIGN DECISION: a Google spreadsheet is the backup target because:
1. Users can read and fix their data directly in Sheets
2. No server or database is needed
3. Google keeps the copy safe

The backup is deliberately thin. An export clears and rewrites the
"Transactions" and "Balances" worksheets; an import reads them back.
There is no batching, no conflict resolution and no rollback: if the
second sheet fails to write, the first one stays written and the error
is reported.

Only the connection step is retried, and only on network errors.
"""

from typing import Optional

import gspread
import requests
from google.auth.exceptions import TransportError
from google.oauth2.credentials import Credentials as UserCredentials
from google.oauth2.service_account import Credentials
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from money_manager.config import GoogleSheetsSettings, get_settings
from money_manager.ledger.backup import (
    BALANCE_HEADER,
    TRANSACTION_HEADER,
    ImportedHistory,
    count_transactions,
    history_to_tables,
    tables_to_history,
)
from money_manager.models.ledger import MonthHistory
from money_manager.services.storage.interface import (
    BackupStorageInterface,
    ConnectionError,
    ExportResult,
    NotFoundError,
    StorageError,
)


SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive",
]

# Errors that may go away on a retry
TRANSIENT_ERRORS = (
    TransportError,
    requests.exceptions.ConnectionError,
    requests.exceptions.Timeout,
)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Authorises with a user's OAuth access token when one is given,
    otherwise with the service account file from settings.
    """

    def __init__(
        self,
        spreadsheet_id: str,
        access_token: Optional[str] = None,
        settings: Optional[GoogleSheetsSettings] = None,
        gspread_client: Optional[gspread.Client] = None,
    ):
        if not spreadsheet_id:
            raise ConnectionError("A spreadsheet id is required")
        self._spreadsheet_id = spreadsheet_id
        self._access_token = access_token
        self._settings = settings or get_settings().google_sheets
        self._client: Optional[gspread.Client] = gspread_client
        self._spreadsheet: Optional[gspread.Spreadsheet] = None

    @property
    def spreadsheet_id(self) -> str:
        return self._spreadsheet_id

    @property
    def settings(self) -> GoogleSheetsSettings:
        return self._settings

    def _credentials(self):
        if self._access_token:
            return UserCredentials(token=self._access_token)
        if not self._settings.credentials_path:
            raise ConnectionError(
                "No access token given and GOOGLE_SHEETS_CREDENTIALS_PATH is not set"
            )
        try:
            return Credentials.from_service_account_file(
                self._settings.credentials_path,
                scopes=SCOPES,
            )
        except FileNotFoundError:
            raise ConnectionError(
                f"Google credentials file not found: {self._settings.credentials_path}"
            )
        except ValueError as e:
            raise ConnectionError(f"Invalid Google credentials file: {e}")

    @retry(
        retry=retry_if_exception_type(TRANSIENT_ERRORS),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _authorize(self, credentials) -> gspread.Client:
        return gspread.authorize(credentials)

    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Network failures while authorising are retried; a missing or
        invalid credential fails at once.
        """
        if self._client is None:
            credentials = self._credentials()
            try:
                self._client = self._authorize(credentials)
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the target spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(self._spreadsheet_id)
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(f"Spreadsheet not found: {self._spreadsheet_id}")
            except gspread.exceptions.APIError as e:
                raise ConnectionError(f"Cannot open spreadsheet {self._spreadsheet_id}: {e}")
        return self._spreadsheet

    def get_worksheet(self, title: str, cols: int, create: bool = True) -> Optional[gspread.Worksheet]:
        """
        Get a worksheet by title.

        A missing worksheet is created when `create` is set, otherwise
        None is returned.
        """
        spreadsheet = self.get_spreadsheet()
        try:
            return spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            if not create:
                return None
            return spreadsheet.add_worksheet(title=title, rows=100, cols=cols)


class GoogleSheetsBackupStorage(BackupStorageInterface):
    """
    Month history backup in two worksheets.
    """

    def __init__(self, client: GoogleSheetsClient):
        self._client = client

    def _write_sheet(self, title: str, rows: list[list[str]]) -> None:
        """Clear a worksheet and write all rows starting at A1."""
        try:
            sheet = self._client.get_worksheet(title, cols=len(rows[0]))
            sheet.clear()
            if sheet.row_count < len(rows) or sheet.col_count < len(rows[0]):
                sheet.resize(
                    rows=max(sheet.row_count, len(rows)),
                    cols=max(sheet.col_count, len(rows[0])),
                )
            sheet.update(values=rows, range_name="A1", value_input_option="RAW")
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to write sheet '{title}': {e}")

    def _read_sheet(self, title: str, cols: int) -> Optional[list[list[str]]]:
        """All data rows of a worksheet, header excluded. None if missing."""
        try:
            sheet = self._client.get_worksheet(title, cols=cols, create=False)
            if sheet is None:
                return None
            return [row for row in sheet.get_all_values()[1:] if any(row)]
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read sheet '{title}': {e}")

    async def export_history(self, history: MonthHistory) -> ExportResult:
        """Overwrite both backup sheets with the given history."""
        transaction_rows, balance_rows = history_to_tables(history)
        settings = self._client.settings

        self._write_sheet(settings.transactions_sheet_name, transaction_rows)
        self._write_sheet(settings.balances_sheet_name, balance_rows)

        return ExportResult(
            spreadsheet_id=self._client.spreadsheet_id,
            months_count=len(history),
            transactions_count=count_transactions(history),
        )

    async def import_history(self) -> ImportedHistory:
        """Read both backup sheets and rebuild a history."""
        settings = self._client.settings
        transaction_rows = self._read_sheet(
            settings.transactions_sheet_name, len(TRANSACTION_HEADER)
        )
        balance_rows = self._read_sheet(
            settings.balances_sheet_name, len(BALANCE_HEADER)
        )
        if transaction_rows is None and balance_rows is None:
            raise NotFoundError(
                f"Spreadsheet {self._client.spreadsheet_id} has no "
                f"'{settings.transactions_sheet_name}' or '{settings.balances_sheet_name}' sheet"
            )
        return tables_to_history(transaction_rows or [], balance_rows or [])
