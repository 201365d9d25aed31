"""Tests for cross-rate calculation and exchange-rate heuristics."""

import itertools

import pytest

from conftest import LIVE_RATES
from forexrisk.rates.cross_rate import build_exchange_rate, cross_rate, quote_pair
from forexrisk.rates.fallback import FALLBACK_RATES, fallback_rate_table, get_fallback_rate
from forexrisk.rates.models import SUPPORTED_CURRENCIES, Currency, CurrencyPair


class TestCrossRate:
    def test_identity_is_one(self):
        for currency in SUPPORTED_CURRENCIES:
            assert cross_rate(LIVE_RATES, currency, currency) == 1.0

    def test_from_base(self):
        assert cross_rate(LIVE_RATES, Currency.USD, Currency.JPY) == 149.50

    def test_to_base(self):
        # EUR/USD: table holds EUR per USD
        assert cross_rate(LIVE_RATES, Currency.EUR, Currency.USD) == pytest.approx(1.0850)

    def test_cross_via_base(self):
        # EUR/GBP = GBP per USD / EUR per USD
        expected = LIVE_RATES[Currency.GBP] / LIVE_RATES[Currency.EUR]
        assert cross_rate(LIVE_RATES, Currency.EUR, Currency.GBP) == pytest.approx(expected)

    def test_round_trip_is_one(self):
        for a, b in itertools.permutations(SUPPORTED_CURRENCIES, 2):
            product = cross_rate(LIVE_RATES, a, b) * cross_rate(LIVE_RATES, b, a)
            assert product == pytest.approx(1.0, rel=1e-9)

    def test_missing_currency_is_an_error(self):
        partial = {c: r for c, r in LIVE_RATES.items() if c != Currency.CAD}
        with pytest.raises(ValueError, match="CAD"):
            cross_rate(partial, Currency.EUR, Currency.CAD)

    def test_accepts_string_codes(self):
        assert cross_rate(LIVE_RATES, "USD", "JPY") == 149.50


class TestExchangeRateResult:
    def test_heuristics(self):
        result = build_exchange_rate(1.0850, "api")
        assert result.spread == pytest.approx(1.0850 * 0.0002)
        assert result.volatility == pytest.approx(1.0850 * 0.001)
        assert result.daily_range["high"] == pytest.approx(1.0850 * 1.002)
        assert result.daily_range["low"] == pytest.approx(1.0850 * 0.998)
        assert result.source == "api"

    def test_quote_pair(self):
        result = quote_pair(LIVE_RATES, CurrencyPair(Currency.USD, Currency.JPY), "fallback")
        assert result.rate == 149.50
        assert result.source == "fallback"
        assert result.to_dict()["dailyRange"]["low"] == pytest.approx(149.50 * 0.998)


class TestFallbackTable:
    def test_covers_every_currency(self):
        for currency in SUPPORTED_CURRENCIES:
            assert get_fallback_rate(currency) > 0

    def test_known_values(self):
        assert get_fallback_rate(Currency.EUR) == 0.92
        assert get_fallback_rate(Currency.GBP) == 0.79
        assert get_fallback_rate(Currency.JPY) == 149.50
        assert get_fallback_rate(Currency.USD) == 1.0

    def test_table_is_a_copy(self):
        table = fallback_rate_table()
        table[Currency.EUR] = 99.0
        assert FALLBACK_RATES[Currency.EUR] == 0.92
