"""
Tests for the Google Sheets backup adapter.

gspread is replaced by in-memory fakes; no network calls are made.
"""

import asyncio
import pytest
from datetime import datetime
from decimal import Decimal

import gspread
from google.auth.exceptions import TransportError
from tenacity import wait_none

from money_manager.config import GoogleSheetsSettings
from money_manager.models.ledger import (
    Currency,
    CurrencyBalance,
    MonthRecord,
    Transaction,
    TransactionKind,
)
from money_manager.services.storage import (
    ConnectionError,
    GoogleSheetsBackupStorage,
    GoogleSheetsClient,
    NotFoundError,
    StorageError,
)


class FakeWorksheet:
    def __init__(self, title, rows=100, cols=26, fail_on_update=False):
        self.title = title
        self.row_count = rows
        self.col_count = cols
        self.values = []
        self.fail_on_update = fail_on_update

    def clear(self):
        self.values = []

    def resize(self, rows=None, cols=None):
        self.row_count = rows or self.row_count
        self.col_count = cols or self.col_count

    def update(self, values=None, range_name=None, value_input_option=None):
        if self.fail_on_update:
            raise RuntimeError("quota exceeded")
        assert range_name == "A1"
        self.values = [list(row) for row in values]

    def get_all_values(self):
        return [list(row) for row in self.values]


class FakeSpreadsheet:
    def __init__(self):
        self.sheets = {}

    def worksheet(self, title):
        if title not in self.sheets:
            raise gspread.WorksheetNotFound(title)
        return self.sheets[title]

    def add_worksheet(self, title, rows, cols):
        sheet = FakeWorksheet(title, rows, cols)
        self.sheets[title] = sheet
        return sheet


class FakeGspreadClient:
    def __init__(self, spreadsheets):
        self.spreadsheets = spreadsheets

    def open_by_key(self, key):
        if key not in self.spreadsheets:
            raise gspread.SpreadsheetNotFound(key)
        return self.spreadsheets[key]


@pytest.fixture
def spreadsheet():
    return FakeSpreadsheet()


@pytest.fixture
def storage(spreadsheet):
    client = GoogleSheetsClient(
        spreadsheet_id="sheet-1",
        settings=GoogleSheetsSettings(),
        gspread_client=FakeGspreadClient({"sheet-1": spreadsheet}),
    )
    return GoogleSheetsBackupStorage(client)


@pytest.fixture
def history():
    record = MonthRecord(
        transactions=[
            Transaction(
                kind=TransactionKind.EXPENSE,
                amount=Decimal("120"),
                currency=Currency.EUR,
                category="Shopping",
                timestamp=datetime(2024, 3, 5),
            ),
        ],
        balances=CurrencyBalance(usd=Decimal("10")),
    )
    return {"2024-03": record}


class TestExport:
    """Tests for export_history()."""

    def test_writes_both_sheets_with_headers(self, storage, spreadsheet, history):
        result = asyncio.run(storage.export_history(history))

        transactions = spreadsheet.sheets["Transactions"].values
        balances = spreadsheet.sheets["Balances"].values
        assert transactions[0][0] == "month"
        assert transactions[1][:5] == ["2024-03", "expense", "EUR", "Shopping", "120"]
        assert balances == [["month", "usd", "eur", "crypto"], ["2024-03", "10", "0", "0"]]
        assert result.spreadsheet_id == "sheet-1"
        assert result.months_count == 1
        assert result.transactions_count == 1

    def test_export_replaces_previous_contents(self, storage, spreadsheet, history):
        asyncio.run(storage.export_history(history))
        asyncio.run(storage.export_history({}))
        assert spreadsheet.sheets["Transactions"].values == [
            ["month", "kind", "currency", "category", "amount", "description", "date"],
        ]

    def test_grows_small_sheets(self, storage, spreadsheet, history):
        spreadsheet.sheets["Transactions"] = FakeWorksheet("Transactions", rows=1, cols=3)
        asyncio.run(storage.export_history(history))
        sheet = spreadsheet.sheets["Transactions"]
        assert sheet.row_count >= 2
        assert sheet.col_count == 7

    def test_failed_write_raises_without_rollback(self, storage, spreadsheet, history):
        """Test a failure on the second sheet leaves the first one written."""
        spreadsheet.sheets["Balances"] = FakeWorksheet("Balances", fail_on_update=True)

        with pytest.raises(StorageError):
            asyncio.run(storage.export_history(history))

        assert len(spreadsheet.sheets["Transactions"].values) == 2

    def test_missing_spreadsheet(self, history):
        client = GoogleSheetsClient(
            spreadsheet_id="nope",
            settings=GoogleSheetsSettings(),
            gspread_client=FakeGspreadClient({}),
        )
        with pytest.raises(ConnectionError):
            asyncio.run(GoogleSheetsBackupStorage(client).export_history(history))

    def test_spreadsheet_id_required(self):
        with pytest.raises(ConnectionError):
            GoogleSheetsClient(spreadsheet_id="", settings=GoogleSheetsSettings())


class TestConnect:
    """Tests for GoogleSheetsClient.connect()."""

    @pytest.fixture
    def authorize_calls(self, monkeypatch):
        calls = []

        def fake_authorize(credentials):
            calls.append(credentials)
            outcome = outcomes.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        outcomes = []
        monkeypatch.setattr(gspread, "authorize", fake_authorize)
        monkeypatch.setattr(GoogleSheetsClient._authorize.retry, "wait", wait_none())
        return calls, outcomes

    def test_missing_credentials_fail_at_once(self, authorize_calls):
        calls, _ = authorize_calls
        client = GoogleSheetsClient("sheet-1", settings=GoogleSheetsSettings(credentials_path=None))

        with pytest.raises(ConnectionError, match="CREDENTIALS_PATH"):
            client.connect()
        assert calls == []

    def test_rejected_credentials_are_not_retried(self, authorize_calls):
        calls, outcomes = authorize_calls
        outcomes.append(ValueError("bad token"))
        client = GoogleSheetsClient("sheet-1", access_token="token", settings=GoogleSheetsSettings())

        with pytest.raises(ConnectionError, match="bad token"):
            client.connect()
        assert len(calls) == 1

    def test_network_errors_are_retried(self, authorize_calls):
        calls, outcomes = authorize_calls
        gspread_client = FakeGspreadClient({})
        outcomes.extend([TransportError("reset"), gspread_client])
        client = GoogleSheetsClient("sheet-1", access_token="token", settings=GoogleSheetsSettings())

        assert client.connect() is gspread_client
        assert len(calls) == 2


class TestImport:
    """Tests for import_history()."""

    def test_round_trip_through_sheets(self, storage, history):
        asyncio.run(storage.export_history(history))
        imported = asyncio.run(storage.import_history())

        record = imported.history["2024-03"]
        assert record.balances.usd == Decimal("10")
        assert record.transactions[0].amount == Decimal("120")
        assert record.transactions[0].currency == Currency.EUR

    def test_first_row_is_always_treated_as_header(self, storage, spreadsheet):
        sheet = spreadsheet.add_worksheet("Transactions", rows=10, cols=7)
        sheet.values = [
            ["Month", "Type", "Cur", "Cat", "Sum", "Desc", "When"],
            ["2024-04", "income", "USD", "Gift", "5", "", ""],
            ["", "", "", "", "", "", ""],
        ]

        imported = asyncio.run(storage.import_history())

        assert list(imported.history) == ["2024-04"]
        assert imported.skipped_rows == 0

    def test_missing_sheets_raise_not_found(self, storage):
        with pytest.raises(NotFoundError):
            asyncio.run(storage.import_history())


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
