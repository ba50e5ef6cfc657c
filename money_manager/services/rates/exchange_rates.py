"""
Exchange Rate Service

Keeps a current ExchangeRateTable, refreshed from a public rates API.

BEHAVIOUR:
- Rates are fetched on first use and then at most once per refresh
  interval (default 30 minutes). The check happens when rates are read,
  so a Streamlit rerun is the "timer tick".
- A failed fetch never raises and never blocks the page: the last known
  table (or the hardcoded fallback) stays in use until the next attempt.
- There is no retry beyond that periodic re-fetch.
"""

from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Optional

import requests
import structlog

from money_manager.audit import AuditLogger
from money_manager.config import RatesSettings, get_settings
from money_manager.models.ledger import ExchangeRateTable, RateSource


logger = structlog.get_logger(__name__)


class RatesUnavailableError(Exception):
    """The rates source could not be reached or returned unusable data."""
    pass


class ExchangeRateService:
    """
    Caches the current exchange rate table and refreshes it periodically.
    """

    def __init__(
        self,
        settings: Optional[RatesSettings] = None,
        session: Optional[requests.Session] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._settings = settings or get_settings().rates
        self._session = session or requests.Session()
        self._audit_logger = audit_logger
        self._rates = ExchangeRateTable.fallback(
            usd_to_secondary=self._settings.fallback_usd_to_secondary,
            eur_to_secondary=self._settings.fallback_eur_to_secondary,
            eur_to_usd=self._settings.fallback_eur_to_usd,
        )
        self._last_attempt: Optional[datetime] = None
        self._last_error: Optional[str] = None

    @property
    def rates(self) -> ExchangeRateTable:
        """The current table, without triggering a refresh."""
        return self._rates

    @property
    def last_error(self) -> Optional[str]:
        """Message of the most recent failed fetch, cleared on success."""
        return self._last_error

    @property
    def refresh_interval(self) -> timedelta:
        return timedelta(minutes=self._settings.refresh_interval_minutes)

    def is_stale(self, now: Optional[datetime] = None) -> bool:
        """Whether the refresh interval has elapsed since the last attempt."""
        if self._last_attempt is None:
            return True
        now = now or datetime.now()
        return now - self._last_attempt >= self.refresh_interval

    def get_rates(self, now: Optional[datetime] = None) -> ExchangeRateTable:
        """
        Return the current rates, refreshing first if they are stale.
        """
        if self.is_stale(now):
            self.refresh(now)
        return self._rates

    def refresh(self, now: Optional[datetime] = None) -> ExchangeRateTable:
        """
        Fetch live rates, keeping the current table on any failure.
        """
        now = now or datetime.now()
        self._last_attempt = now

        try:
            payload = self._fetch()
            self._rates = self._parse(payload, now)
        except RatesUnavailableError as e:
            self._last_error = str(e)
            logger.warning(
                "exchange_rates_fetch_failed",
                error=str(e),
                keeping=self._rates.source.value,
            )
            if self._audit_logger:
                self._audit_logger.log_rates_fallback(str(e))
            return self._rates

        self._last_error = None
        if self._audit_logger:
            self._audit_logger.log_rates_refreshed(
                source=self._settings.api_url,
                rates={
                    "usd_to_secondary": str(self._rates.usd_to_secondary),
                    "eur_to_secondary": str(self._rates.eur_to_secondary),
                    "eur_to_usd": str(self._rates.eur_to_usd),
                },
            )
        return self._rates

    def _fetch(self) -> dict:
        """GET the rates payload."""
        try:
            response = self._session.get(
                self._settings.api_url,
                timeout=self._settings.timeout_seconds,
            )
            response.raise_for_status()
            payload = response.json()
        except (ValueError, requests.exceptions.RequestException) as e:
            raise RatesUnavailableError(f"Failed to fetch exchange rates: {e}")

        if not isinstance(payload, dict) or not isinstance(payload.get("rates"), dict):
            raise RatesUnavailableError("Exchange rate payload has no 'rates' mapping")
        return payload

    def _parse(self, payload: dict, now: datetime) -> ExchangeRateTable:
        """
        Build a table from a USD-based payload.

        Each derived rate falls back to the current value for that field
        when its inputs are missing or not positive.
        """
        raw = payload["rates"]
        secondary = _positive_decimal(raw.get(self._settings.secondary_currency))
        eur = _positive_decimal(raw.get("EUR"))

        current = self._rates
        usd_to_secondary = secondary or current.usd_to_secondary
        eur_to_secondary = (secondary / eur) if (secondary and eur) else current.eur_to_secondary
        eur_to_usd = (Decimal(1) / eur) if eur else current.eur_to_usd

        if secondary is None and eur is None:
            raise RatesUnavailableError("Exchange rate payload has neither secondary nor EUR rate")

        return ExchangeRateTable(
            usd_to_secondary=usd_to_secondary,
            eur_to_secondary=eur_to_secondary,
            eur_to_usd=eur_to_usd,
            source=RateSource.LIVE,
            fetched_at=now,
        )


def _positive_decimal(value) -> Optional[Decimal]:
    """Convert a JSON number to Decimal, or None if unusable."""
    if value is None or isinstance(value, bool):
        return None
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not result.is_finite() or result <= 0:
        return None
    return result
