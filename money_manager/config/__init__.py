"""Configuration package."""

from money_manager.config.settings import (
    AppSettings,
    GoogleSheetsSettings,
    RatesSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GoogleSheetsSettings",
    "RatesSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
