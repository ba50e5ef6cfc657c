"""
Month keys and navigation.

Ledger data is partitioned by calendar month, keyed "YYYY-MM". Keys sort
lexicographically in chronological order, which the store relies on.
"""

from datetime import date, datetime
from typing import Optional, Sequence, Union

from money_manager.models.ledger import Language, is_valid_month_key


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class InvalidMonthKeyError(LedgerError):
    """A month key does not match the YYYY-MM format."""
    pass


MONTH_NAMES = {
    Language.EN: [
        "January", "February", "March", "April", "May", "June",
        "July", "August", "September", "October", "November", "December",
    ],
    Language.RU: [
        "Январь", "Февраль", "Март", "Апрель", "Май", "Июнь",
        "Июль", "Август", "Сентябрь", "Октябрь", "Ноябрь", "Декабрь",
    ],
    Language.UK: [
        "Січень", "Лютий", "Березень", "Квітень", "Травень", "Червень",
        "Липень", "Серпень", "Вересень", "Жовтень", "Листопад", "Грудень",
    ],
}


def ensure_month_key(month_key: str) -> str:
    """Return the key unchanged, or raise InvalidMonthKeyError."""
    if not is_valid_month_key(month_key):
        raise InvalidMonthKeyError(f"Invalid month key: {month_key!r} (expected YYYY-MM)")
    return month_key


def month_key_for(value: Union[date, datetime]) -> str:
    """The month key a date falls in."""
    return f"{value.year:04d}-{value.month:02d}"


def previous_month_key(month_key: str, available: Sequence[str]) -> Optional[str]:
    """
    The closest available month before the given one, or None.
    """
    ensure_month_key(month_key)
    earlier = [key for key in available if key < month_key]
    return max(earlier) if earlier else None


def next_month_key(month_key: str, available: Sequence[str]) -> Optional[str]:
    """
    The closest available month after the given one, or None.
    """
    ensure_month_key(month_key)
    later = [key for key in available if key > month_key]
    return min(later) if later else None


def format_month(month_key: str, language: Language = Language.EN) -> str:
    """
    Human-readable month label.

    >>> format_month("2024-03")
    'March 2024'
    """
    ensure_month_key(month_key)
    year, month = month_key.split("-")
    names = MONTH_NAMES.get(Language(language), MONTH_NAMES[Language.EN])
    return f"{names[int(month) - 1]} {year}"
