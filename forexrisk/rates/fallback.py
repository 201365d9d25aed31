"""Fallback rate table — hardcoded, intentionally stale rates against USD.

Used whenever the provider cannot be reached.  A currency missing from
this table is a programming error, not a runtime condition.
"""

from forexrisk.rates.models import SUPPORTED_CURRENCIES, Currency, RateTable

FALLBACK_RATES: dict[Currency, float] = {
    Currency.USD: 1.00,
    Currency.EUR: 0.92,
    Currency.GBP: 0.79,
    Currency.JPY: 149.50,
    Currency.CHF: 0.89,
    Currency.AUD: 1.54,
    Currency.CAD: 1.36,
    Currency.NZD: 1.67,
}

_missing = [c.value for c in SUPPORTED_CURRENCIES if c not in FALLBACK_RATES]
if _missing:
    raise RuntimeError(f"FALLBACK_RATES is missing {_missing}")


def get_fallback_rate(currency: Currency) -> float:
    """Return the fallback rate (units per USD) for *currency*."""
    return FALLBACK_RATES[Currency(currency)]


def fallback_rate_table() -> RateTable:
    """Return a fresh copy of the full fallback table."""
    return dict(FALLBACK_RATES)
