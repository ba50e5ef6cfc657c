"""
Exchange Rate Services Package

Live exchange rates with a hardcoded fallback.
"""

from money_manager.services.rates.exchange_rates import (
    ExchangeRateService,
    RatesUnavailableError,
)

__all__ = [
    "ExchangeRateService",
    "RatesUnavailableError",
]
