"""
Tests for the backup codec and the import merge policy.
"""

import pytest
from datetime import datetime, timezone
from decimal import Decimal

from money_manager.ledger import (
    BackupFormatError,
    deserialize,
    history_to_tables,
    merge_history,
    pending_overwrites,
    serialize,
    tables_to_history,
)
from money_manager.models.ledger import (
    Bucket,
    Currency,
    CurrencyBalance,
    CurrencyNote,
    MonthRecord,
    Transaction,
    TransactionKind,
)
from money_manager.validation import parse_amount


@pytest.fixture
def history():
    march = MonthRecord(
        transactions=[
            Transaction(
                kind=TransactionKind.INCOME,
                amount=Decimal("3000"),
                category="Salary",
                timestamp=datetime(2024, 3, 1, 9, 30),
            ),
            Transaction(
                kind=TransactionKind.EXPENSE,
                amount=Decimal("120"),
                currency=Currency.EUR,
                category="Shopping",
                description="shoes",
                timestamp=datetime(2024, 3, 5, 18, 0),
            ),
        ],
        balances=CurrencyBalance(usd=Decimal("500"), eur=Decimal("80.5"), crypto=Decimal("0")),
    )
    march.notes[Bucket.USD].append(CurrencyNote(amount=Decimal("20"), description="cash"))
    return {"2024-03": march, "2024-02": MonthRecord()}


class TestJsonBlob:
    """Tests for serialize/deserialize."""

    def test_serialize_keeps_everything(self, history):
        restored = deserialize(serialize(history))
        assert restored == history

    def test_decimals_stay_exact(self, history):
        restored = deserialize(serialize(history))
        assert restored["2024-03"].balances.eur == Decimal("80.5")

    def test_invalid_json_raises(self):
        with pytest.raises(BackupFormatError):
            deserialize("{not json")

    def test_wrong_shape_raises(self):
        with pytest.raises(BackupFormatError):
            deserialize('{"2024-03": {"transactions": "nope"}}')

    def test_bad_month_key_raises(self):
        with pytest.raises(BackupFormatError):
            deserialize('{"March": {}}')


class TestTables:
    """Tests for the two-table spreadsheet layout."""

    def test_layout(self, history):
        transaction_rows, balance_rows = history_to_tables(history)

        assert transaction_rows[0] == ["month", "kind", "currency", "category", "amount", "description", "date"]
        assert balance_rows[0] == ["month", "usd", "eur", "crypto"]
        assert transaction_rows[2] == [
            "2024-03", "expense", "EUR", "Shopping", "120", "shoes", "2024-03-05T18:00:00",
        ]
        # Months ascending, one balance row each
        assert [row[0] for row in balance_rows[1:]] == ["2024-02", "2024-03"]
        assert balance_rows[2] == ["2024-03", "500", "80.5", "0"]

    def test_tables_rebuild_history_with_fresh_ids(self, history):
        imported = tables_to_history(*history_to_tables(history))

        march = imported.history["2024-03"]
        assert imported.skipped_rows == 0
        assert imported.months == ["2024-02", "2024-03"]
        assert [t.amount for t in march.transactions] == [Decimal("3000"), Decimal("120")]
        assert march.transactions[1].currency == Currency.EUR
        assert march.balances.eur == Decimal("80.5")
        original_ids = {t.id for t in history["2024-03"].transactions}
        assert not original_ids & {t.id for t in march.transactions}

    def test_notes_are_not_exported(self, history):
        imported = tables_to_history(*history_to_tables(history))
        assert imported.history["2024-03"].notes[Bucket.USD] == []

    def test_month_only_in_transactions_gets_defaults(self):
        imported = tables_to_history(
            [["2024-05", "income", "USD", "Gift", "10", "", ""]],
            [],
        )
        assert imported.history["2024-05"].balances == CurrencyBalance()
        assert len(imported.history["2024-05"].transactions) == 1

    def test_unparsable_amount_becomes_zero(self):
        imported = tables_to_history(
            [["2024-05", "expense", "USD", "Other", "abc", "", ""]],
            [["2024-05", "x", "", "7"]],
        )
        record = imported.history["2024-05"]
        assert record.transactions[0].amount == Decimal("0")
        assert record.balances == CurrencyBalance(crypto=Decimal("7"))

    def test_amount_cells_read_like_form_input(self):
        """Test sheet cells use the same separators as typed amounts."""
        imported = tables_to_history(
            [
                ["2024-05", "expense", "EUR", "Food", "12,5", "", ""],
                ["2024-05", "income", "USD", "Salary", "1,234.50", "", ""],
            ],
            [["2024-05", "1 000", "", ""]],
        )
        record = imported.history["2024-05"]
        assert [t.amount for t in record.transactions] == [Decimal("12.5"), Decimal("1234.50")]
        assert record.balances.usd == Decimal("1000")
        assert record.transactions[0].amount == parse_amount("12,5")

    def test_ambiguous_grouping_is_not_guessed(self):
        """Test "1,234" is treated as unparsable rather than 1234 or 1.234."""
        imported = tables_to_history([["2024-05", "income", "USD", "Gift", "1,234", "", ""]], [])
        assert imported.history["2024-05"].transactions[0].amount == Decimal("0")

    def test_timestamp_with_offset_becomes_naive_local(self):
        """Test imported timestamps sort alongside locally created ones."""
        imported = tables_to_history(
            [
                ["2024-05", "income", "USD", "Gift", "1", "", "2024-05-02T10:00:00+00:00"],
                ["2024-05", "income", "USD", "Gift", "2", "", "2024-05-01T09:00:00"],
            ],
            [],
        )
        transactions = imported.history["2024-05"].transactions
        expected = datetime(2024, 5, 2, 10, tzinfo=timezone.utc).astimezone().replace(tzinfo=None)

        assert transactions[0].timestamp == expected
        assert all(t.timestamp.tzinfo is None for t in transactions)
        assert sorted(transactions, key=lambda t: t.timestamp)[0].amount == Decimal("2")

    def test_bad_rows_are_skipped_and_counted(self):
        imported = tables_to_history(
            [
                ["bad-month", "income", "USD", "Gift", "1", "", ""],
                ["2024-05", "transfer", "USD", "Gift", "1", "", ""],
                ["2024-05", "income", "GBP", "Gift", "1", "", ""],
                ["2024-05", "income", "usd", "Gift", "1", "", ""],
            ],
            [["13-2024", "1", "2", "3"]],
        )
        assert imported.skipped_rows == 4
        assert len(imported.history["2024-05"].transactions) == 1

    def test_short_rows_use_defaults(self):
        imported = tables_to_history([["2024-05", "income", "USD", "Gift"]], [])
        transaction = imported.history["2024-05"].transactions[0]
        assert transaction.amount == Decimal("0")
        assert transaction.timestamp == datetime(2024, 5, 1)


class TestMerge:
    """Tests for the per-month overwrite confirmation."""

    def test_new_months_are_inserted_without_asking(self):
        local = {"2024-01": MonthRecord()}
        asked = []

        def confirm(key):
            asked.append(key)
            return True

        report = merge_history(local, {"2024-02": MonthRecord()}, confirm)

        assert asked == []
        assert report.inserted == ["2024-02"]
        assert "2024-02" in local

    def test_declining_keeps_local_record(self):
        """Test an existing month is never overwritten without confirmation."""
        local_record = MonthRecord(balances=CurrencyBalance(usd=Decimal("1")))
        local = {"2024-01": local_record}
        incoming = {"2024-01": MonthRecord(balances=CurrencyBalance(usd=Decimal("999")))}

        report = merge_history(local, incoming, lambda key: False)

        assert local["2024-01"] is local_record
        assert local["2024-01"].balances.usd == Decimal("1")
        assert report.kept == ["2024-01"]
        assert not report.changed

    def test_confirming_replaces_whole_record(self):
        local = {"2024-01": MonthRecord(balances=CurrencyBalance(usd=Decimal("1")))}
        replacement = MonthRecord(balances=CurrencyBalance(eur=Decimal("2")))

        report = merge_history(local, {"2024-01": replacement}, lambda key: True)

        assert local["2024-01"] is replacement
        assert report.overwritten == ["2024-01"]

    def test_only_true_confirms(self):
        local = {"2024-01": MonthRecord()}
        report = merge_history(local, {"2024-01": MonthRecord()}, lambda key: "yes")
        assert report.kept == ["2024-01"]

    def test_per_key_decisions(self):
        local = {"2024-01": MonthRecord(), "2024-02": MonthRecord()}
        incoming = {"2024-01": MonthRecord(), "2024-02": MonthRecord(), "2024-03": MonthRecord()}

        assert pending_overwrites(local, incoming) == ["2024-01", "2024-02"]
        report = merge_history(local, incoming, lambda key: key == "2024-02")

        assert report.inserted == ["2024-03"]
        assert report.overwritten == ["2024-02"]
        assert report.kept == ["2024-01"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
