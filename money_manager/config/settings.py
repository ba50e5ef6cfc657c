"""
Configuration Management for Money Manager

Uses pydantic-settings for type-safe configuration from environment variables.

All configuration is centralized here, so every external dependency
(exchange rate API, Google Sheets, local data file) is visible in one place
and validated at startup.
"""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RatesSettings(BaseSettings):
    """Exchange rate source configuration."""

    model_config = SettingsConfigDict(
        env_prefix="RATES_",
        env_file=".env",
        extra="ignore"
    )

    api_url: str = Field(
        default="https://api.exchangerate-api.com/v4/latest/USD",
        description="Endpoint returning USD-based rates as {'rates': {...}}"
    )
    secondary_currency: str = Field(
        default="UAH",
        description="Code of the secondary display currency in the rates payload"
    )
    refresh_interval_minutes: int = Field(
        default=30,
        ge=1,
        le=24 * 60,
        description="Minimum time between two fetch attempts"
    )
    timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        le=60,
        description="HTTP timeout for a single fetch"
    )

    # Used until the first successful fetch, and kept on failure
    fallback_usd_to_secondary: Decimal = Field(default=Decimal("41.5"), gt=0)
    fallback_eur_to_secondary: Decimal = Field(default=Decimal("45.0"), gt=0)
    fallback_eur_to_usd: Decimal = Field(default=Decimal("1.09"), gt=0)


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets backup configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        env_file=".env",
        extra="ignore"
    )

    credentials_path: Optional[str] = Field(
        default=None,
        description="Path to a service account JSON, used when no access token is given"
    )

    # Sheet names within the spreadsheet
    transactions_sheet_name: str = Field(
        default="Transactions",
        description="Name of the sheet holding the flat transaction log"
    )
    balances_sheet_name: str = Field(
        default="Balances",
        description="Name of the sheet holding per-month balances"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: Optional[str]) -> Optional[str]:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if v and not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Only access-token backups will work."
            )
        return v


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Local persistence
    data_file: str = Field(
        default=".money_manager/state.json",
        description="JSON file holding the persisted key/value blobs"
    )

    # Defaults for a fresh install
    default_language: str = Field(
        default="en",
        pattern="^(en|ru|uk)$",
    )
    default_display_currency: str = Field(
        default="USD",
        pattern="^(USD|UAH)$",
    )

    min_password_length: int = Field(
        default=4,
        ge=1,
        le=64,
        description="Minimum length accepted by the password gate"
    )

    @property
    def data_path(self) -> Path:
        """Get the data file as a Path."""
        return Path(self.data_file).expanduser()


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def rates(self) -> RatesSettings:
        return RatesSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus `<name>_error`
    entries for the ones that failed. Used by the settings page.
    """
    results = {}

    settings = get_settings()

    for name in ("rates", "google_sheets", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
