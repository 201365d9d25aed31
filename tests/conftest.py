"""Shared fixtures: fake clock, fake sleep and canned rate tables."""

import pytest

from forexrisk.config import Config
from forexrisk.rates.models import Currency


class FakeClock:
    """Manually advanced epoch clock."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSleep:
    """Records requested delays instead of waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


LIVE_RATES = {
    Currency.USD: 1.0,
    Currency.EUR: 1 / 1.0850,
    Currency.GBP: 0.7905,
    Currency.CHF: 0.8800,
    Currency.CAD: 1.3500,
    Currency.JPY: 149.50,
    Currency.AUD: 1.5200,
    Currency.NZD: 1.6500,
}


class FakeClient:
    """Duck-typed provider client returning canned tables or raising."""

    def __init__(self, outcomes=None) -> None:
        self.outcomes = list(outcomes) if outcomes is not None else [LIVE_RATES]
        self.calls = 0

    async def fetch_rates(self, base=Currency.USD):
        self.calls += 1
        outcome = self.outcomes[min(self.calls - 1, len(self.outcomes) - 1)]
        if isinstance(outcome, Exception):
            raise outcome
        return dict(outcome)


def provider_payload(rates=None, result: str = "success") -> dict:
    """Build a provider JSON body from a ``{Currency: rate}`` table."""
    rates = LIVE_RATES if rates is None else rates
    return {
        "result": result,
        "base_code": "USD",
        "conversion_rates": {c.value: r for c, r in rates.items()} | {"SEK": 10.5},
    }


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_sleep() -> FakeSleep:
    return FakeSleep()


def make_config(**overrides) -> Config:
    """Build a Config with sensible test defaults."""
    defaults = dict(
        exchange_rate_api_key="test-key",
        exchange_rate_api_url="https://rates.test/v6",
        rate_cache_ttl_seconds=43200.0,
        fallback_cache_ttl_seconds=3600.0,
        rate_fetch_timeout_seconds=5.0,
        rate_refresh_ahead_seconds=0.0,
        rate_cache_path="",
        cron_secret_key="cron-secret",
        log_level="WARNING",
        port=8080,
    )
    defaults.update(overrides)
    return Config(**defaults)
