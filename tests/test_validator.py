"""
Tests for form validation.
"""

import pytest
from decimal import Decimal

from money_manager.models.ledger import TransactionKind
from money_manager.validation import (
    EXPENSE_CATEGORIES,
    INCOME_CATEGORIES,
    categories_for,
    get_user_friendly_summary,
    parse_amount,
    validate_note_input,
    validate_password,
    validate_transaction_input,
)


class TestParseAmount:
    """Tests for parse_amount()."""

    @pytest.mark.parametrize("value,expected", [
        ("12.50", Decimal("12.50")),
        ("12,50", Decimal("12.50")),
        ("12,5", Decimal("12.5")),
        ("0,500", Decimal("0.500")),
        (" 1 000 ", Decimal("1000")),
        ("1,234.50", Decimal("1234.50")),
        ("1.234,50", Decimal("1234.50")),
        ("1,234,567", Decimal("1234567")),
        ("-3,5", Decimal("-3.5")),
        (7, Decimal("7")),
        (Decimal("3.3"), Decimal("3.3")),
    ])
    def test_valid(self, value, expected):
        assert parse_amount(value) == expected

    @pytest.mark.parametrize("value", [None, "", "abc", "nan", "1.2.3", True, "1,2,3", "12,34.5"])
    def test_invalid(self, value):
        assert parse_amount(value) is None

    @pytest.mark.parametrize("value", ["1,234", "12,000"])
    def test_ambiguous_grouping_is_rejected(self, value):
        """Test a single comma before three digits is not guessed at."""
        assert parse_amount(value) is None

    def test_amount_error_for_ambiguous_input(self):
        result = validate_transaction_input("1,234", "Shopping")
        assert not result.is_valid
        assert "is not a number" in result.errors[0]


class TestTransactionValidation:
    """Tests for validate_transaction_input()."""

    def test_valid_input(self):
        result = validate_transaction_input("10", "Shopping", TransactionKind.EXPENSE)
        assert result.is_valid
        assert result.issues == []

    def test_amount_required(self):
        result = validate_transaction_input("", "Shopping")
        assert not result.is_valid
        assert result.issues[0].issue_type == "missing"

    def test_amount_must_be_numeric(self):
        assert not validate_transaction_input("ten", "Shopping").is_valid

    def test_negative_amount_rejected(self):
        assert not validate_transaction_input("-1", "Shopping").is_valid

    def test_zero_amount_is_a_warning(self):
        result = validate_transaction_input("0", "Shopping")
        assert result.is_valid
        assert result.warnings == ["Amount is zero"]

    def test_category_required(self):
        result = validate_transaction_input("10", "  ")
        assert not result.is_valid
        assert result.errors == ["Category is required"]

    def test_custom_category_is_allowed(self):
        result = validate_transaction_input("10", "Pets", TransactionKind.EXPENSE)
        assert result.is_valid
        assert result.issues[0].severity == "info"

    def test_categories_per_kind(self):
        assert categories_for(TransactionKind.INCOME) == INCOME_CATEGORIES
        assert categories_for(TransactionKind.EXPENSE) == EXPENSE_CATEGORIES
        assert "Food & Dining" in EXPENSE_CATEGORIES


class TestNoteValidation:
    """Tests for validate_note_input()."""

    def test_valid(self):
        assert validate_note_input("5", "ATM fee").is_valid

    def test_description_required(self):
        result = validate_note_input("5", "")
        assert result.errors == ["Description is required"]

    def test_exchange_rate_must_be_positive(self):
        assert not validate_note_input("5", "swap", exchange_rate="0").is_valid
        assert not validate_note_input("5", "swap", exchange_rate="x").is_valid
        assert validate_note_input("5", "swap", exchange_rate="41.2").is_valid
        assert validate_note_input("5", "swap", exchange_rate="").is_valid


class TestPasswordValidation:
    """Tests for validate_password()."""

    def test_min_length(self):
        assert not validate_password("abc", "abc", min_length=4).is_valid
        assert validate_password("abcd", "abcd", min_length=4).is_valid

    def test_must_match(self):
        result = validate_password("abcd", "abcx", min_length=4)
        assert result.errors == ["Passwords do not match"]


class TestSummary:
    """Tests for the user-facing summary."""

    def test_ok(self):
        assert get_user_friendly_summary(validate_transaction_input("1", "Shopping")) == "✅ Looks good."

    def test_lists_errors(self):
        summary = get_user_friendly_summary(validate_transaction_input("", ""))
        assert "Amount is required" in summary
        assert "Category is required" in summary


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
