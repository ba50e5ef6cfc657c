"""
Form Validation

Checks user input before anything is inserted into the ledger.

IMPORTANT: Validation NEVER silently fixes issues. It reports them, and
the caller inserts nothing while any issue has severity "error".
Warnings are shown but do not block.

Checks performed:
- Transactions: amount present and numeric, not negative; category present
- Notes: amount present and numeric, description present, optional
  exchange rate positive
- Passwords: minimum length, confirmation matches
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Union

from pydantic import BaseModel, Field

from money_manager.config import get_settings
from money_manager.models.ledger import TransactionKind


EXPENSE_CATEGORIES = [
    "Food & Dining",
    "Shopping",
    "Transportation",
    "Bills & Utilities",
    "Entertainment",
    "Healthcare",
    "Other",
]

INCOME_CATEGORIES = [
    "Salary",
    "Freelance",
    "Investment",
    "Gift",
    "Other",
]


def categories_for(kind: TransactionKind) -> list[str]:
    """Suggested categories for a transaction kind."""
    if kind == TransactionKind.INCOME:
        return list(INCOME_CATEGORIES)
    return list(EXPENSE_CATEGORIES)


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_format', 'mismatch')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """Outcome of validating one form submission."""

    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not any(issue.severity == "error" for issue in self.issues)

    @property
    def errors(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "error"]

    @property
    def warnings(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "warning"]

    def as_log_details(self) -> list[dict]:
        return [issue.model_dump(exclude_none=True) for issue in self.issues]


def _is_grouped(text: str, separator: str) -> bool:
    return re.fullmatch(rf"\d{{1,3}}(?:{re.escape(separator)}\d{{3}})+", text) is not None


def _normalize_separators(text: str) -> Optional[str]:
    """
    Rewrite an amount string to use a single "." decimal point.

    Returns None when the separators cannot be read one way only.
    """
    sign = ""
    if text[0] in "+-":
        sign, text = text[0], text[1:]

    if "," in text and "." in text:
        decimal_sep = "," if text.rfind(",") > text.rfind(".") else "."
        group_sep = "." if decimal_sep == "," else ","
        whole, _, fraction = text.rpartition(decimal_sep)
        if not fraction.isdigit() or not _is_grouped(whole, group_sep):
            return None
        return f"{sign}{whole.replace(group_sep, '')}.{fraction}"

    for separator in (",", "."):
        if text.count(separator) > 1:
            if not _is_grouped(text, separator):
                return None
            return sign + text.replace(separator, "")

    if "," in text:
        whole, fraction = text.split(",")
        # "1,234" reads as either 1234 or 1.234
        if len(fraction) == 3 and whole not in ("", "0"):
            return None
        return f"{sign}{whole}.{fraction}"

    return sign + text


def parse_amount(value: Union[str, int, float, Decimal, None]) -> Optional[Decimal]:
    """
    Parse an amount typed into a form or read from a backup sheet.

    Returns None for empty or non-numeric input. Strings may use a comma
    or a point as the decimal separator, and spaces, commas or points as
    thousands separators when the grouping is unambiguous ("1,234.50",
    "1.234,50", "1 000"). A lone comma followed by exactly three digits
    ("1,234") could mean either, so it is rejected.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    text = re.sub(r"\s", "", str(value))
    if not text:
        return None
    normalized = _normalize_separators(text)
    if normalized is None:
        return None
    try:
        amount = Decimal(normalized)
    except (InvalidOperation, ValueError):
        return None
    return amount if amount.is_finite() else None


def _check_amount(value: Any, issues: list[ValidationIssue]) -> None:
    if value is None or (isinstance(value, str) and not value.strip()):
        issues.append(ValidationIssue(
            field="amount",
            issue_type="missing",
            message="Amount is required",
            severity="error",
        ))
        return

    amount = parse_amount(value)
    if amount is None:
        issues.append(ValidationIssue(
            field="amount",
            issue_type="invalid_format",
            message=f"Amount '{value}' is not a number",
            severity="error",
            suggested_fix="Use digits with one decimal separator, e.g. 1234.50 or 12,50",
        ))
    elif amount < 0:
        issues.append(ValidationIssue(
            field="amount",
            issue_type="invalid_value",
            message="Amount cannot be negative",
            severity="error",
            suggested_fix="Choose income or expense instead of using a minus sign",
        ))
    elif amount == 0:
        issues.append(ValidationIssue(
            field="amount",
            issue_type="suspicious_value",
            message="Amount is zero",
            severity="warning",
        ))


def validate_transaction_input(
    amount: Any,
    category: Optional[str],
    kind: TransactionKind = TransactionKind.EXPENSE,
) -> ValidationResult:
    """Check a transaction form before insertion."""
    issues: list[ValidationIssue] = []
    _check_amount(amount, issues)

    category = (category or "").strip()
    if not category:
        issues.append(ValidationIssue(
            field="category",
            issue_type="missing",
            message="Category is required",
            severity="error",
        ))
    elif len(category) > 100:
        issues.append(ValidationIssue(
            field="category",
            issue_type="too_long",
            message="Category must be at most 100 characters",
            severity="error",
        ))
    elif category not in categories_for(kind):
        issues.append(ValidationIssue(
            field="category",
            issue_type="custom_value",
            message=f"'{category}' is not one of the standard {kind.value} categories",
            severity="info",
        ))

    return ValidationResult(issues=issues)


def validate_note_input(
    amount: Any,
    description: Optional[str],
    exchange_rate: Any = None,
) -> ValidationResult:
    """Check a currency note form before insertion."""
    issues: list[ValidationIssue] = []
    _check_amount(amount, issues)

    if not (description or "").strip():
        issues.append(ValidationIssue(
            field="description",
            issue_type="missing",
            message="Description is required",
            severity="error",
        ))

    if exchange_rate not in (None, ""):
        rate = parse_amount(exchange_rate)
        if rate is None or rate <= 0:
            issues.append(ValidationIssue(
                field="exchange_rate",
                issue_type="invalid_value",
                message="Exchange rate must be a positive number",
                severity="error",
                suggested_fix="Leave it empty if you don't need it",
            ))

    return ValidationResult(issues=issues)


def validate_password(
    new_password: Optional[str],
    confirm_password: Optional[str],
    min_length: Optional[int] = None,
) -> ValidationResult:
    """Check a new password and its confirmation."""
    if min_length is None:
        min_length = get_settings().app.min_password_length
    issues: list[ValidationIssue] = []
    new_password = new_password or ""

    if len(new_password) < min_length:
        issues.append(ValidationIssue(
            field="password",
            issue_type="too_short",
            message=f"Password must be at least {min_length} characters",
            severity="error",
        ))
    if new_password != (confirm_password or ""):
        issues.append(ValidationIssue(
            field="confirm_password",
            issue_type="mismatch",
            message="Passwords do not match",
            severity="error",
        ))

    return ValidationResult(issues=issues)


def get_user_friendly_summary(result: ValidationResult) -> str:
    """
    Short text for the UI describing a validation result.
    """
    if result.is_valid and not result.warnings:
        return "✅ Looks good."

    lines = []
    if not result.is_valid:
        lines.append("❌ Please fix the following:")
        for issue in result.issues:
            if issue.severity == "error":
                lines.append(f"   • {issue.message}")
                if issue.suggested_fix:
                    lines.append(f"     💡 {issue.suggested_fix}")

    if result.warnings:
        if lines:
            lines.append("")
        lines.append("⚠️ Please verify:")
        for warning in result.warnings:
            lines.append(f"   • {warning}")

    return "\n".join(lines)
