"""
Money Manager - Source Package

A personal finance tracker: multi-currency transactions, per-currency
balances with manual notes, month-by-month history, and optional
spreadsheet backups.

PRINCIPLES:
1. Money arithmetic is exact (Decimal), rounding only when rendered
2. Every month's totals are recomputed from its transactions
3. Nothing external can overwrite local data without confirmation
4. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Money Manager Team"
