"""Cross-rate calculation — pure math, no I/O.

Rate tables are quoted as units of currency per 1 USD, so the price of
one ``from`` in ``to`` is ``table[to] / table[from]``.
"""

from forexrisk.rates.models import (
    BASE_CURRENCY,
    Currency,
    CurrencyPair,
    ExchangeRateResult,
    RateTable,
)

# Heuristic market metrics, as fractions of the rate.
SPREAD_FRACTION = 0.0002
VOLATILITY_FRACTION = 0.001
DAILY_RANGE_FRACTION = 0.002


def _lookup(table: RateTable, currency: Currency) -> float:
    try:
        rate = table[currency]
    except KeyError:
        raise ValueError(f"rate table has no entry for {currency}") from None
    if rate <= 0:
        raise ValueError(f"rate for {currency} must be positive, got {rate}")
    return rate


def cross_rate(table: RateTable, from_currency: Currency, to_currency: Currency) -> float:
    """Return the price of one *from_currency* expressed in *to_currency*.

    Raises:
        ValueError: If a needed currency is missing from *table*.
    """
    from_currency = Currency(from_currency)
    to_currency = Currency(to_currency)
    if from_currency == to_currency:
        return 1.0
    if from_currency == BASE_CURRENCY:
        return _lookup(table, to_currency)
    if to_currency == BASE_CURRENCY:
        return 1.0 / _lookup(table, from_currency)
    return _lookup(table, to_currency) / _lookup(table, from_currency)


def build_exchange_rate(rate: float, source: str) -> ExchangeRateResult:
    """Attach spread, volatility and a ±0.2 % daily range to *rate*."""
    return ExchangeRateResult(
        rate=rate,
        spread=rate * SPREAD_FRACTION,
        volatility=rate * VOLATILITY_FRACTION,
        daily_high=rate * (1 + DAILY_RANGE_FRACTION),
        daily_low=rate * (1 - DAILY_RANGE_FRACTION),
        source=source,
    )


def quote_pair(table: RateTable, pair: CurrencyPair, source: str) -> ExchangeRateResult:
    """Resolve *pair* against *table* into an ``ExchangeRateResult``."""
    return build_exchange_rate(cross_rate(table, pair.base, pair.quote), source)
