"""Validation package."""

from money_manager.validation.validator import (
    EXPENSE_CATEGORIES,
    INCOME_CATEGORIES,
    ValidationIssue,
    ValidationResult,
    categories_for,
    get_user_friendly_summary,
    parse_amount,
    validate_note_input,
    validate_password,
    validate_transaction_input,
)

__all__ = [
    "EXPENSE_CATEGORIES",
    "INCOME_CATEGORIES",
    "ValidationIssue",
    "ValidationResult",
    "categories_for",
    "get_user_friendly_summary",
    "parse_amount",
    "validate_note_input",
    "validate_password",
    "validate_transaction_input",
]
