"""Tests for the exchange-rate provider client with mocked HTTP responses."""

import httpx
import pytest

from conftest import LIVE_RATES, make_config, provider_payload
from forexrisk.errors import ConfigurationError, RateFetchError
from forexrisk.rates.exchange_rate_client import ExchangeRateClient
from forexrisk.rates.models import SUPPORTED_CURRENCIES, Currency


def _install_responses(monkeypatch, responses):
    """Patch ``httpx.AsyncClient.get`` to return *responses* in order.

    Each item is either ``(status, json_body)`` or an exception instance.
    Returns the list that collects requested URLs.
    """
    calls: list[str] = []
    queue = list(responses)

    async def _mock_get(self, url, *, headers=None, params=None, timeout=None):
        calls.append(url)
        item = queue.pop(0)
        if isinstance(item, Exception):
            raise item
        status, body = item
        return httpx.Response(status, json=body, request=httpx.Request("GET", url))

    monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)
    return calls


def _client(sleep, **kwargs) -> ExchangeRateClient:
    return ExchangeRateClient("test-key", "https://rates.test/v6", sleep=sleep, **kwargs)


class TestFetchRates:
    @pytest.mark.asyncio
    async def test_parses_conversion_rates(self, monkeypatch, fake_sleep):
        """Supported currencies extracted; unsupported codes ignored."""
        calls = _install_responses(monkeypatch, [(200, provider_payload())])

        table = await _client(fake_sleep).fetch_rates(Currency.USD)

        assert calls == ["https://rates.test/v6/test-key/latest/USD"]
        assert set(table) == set(SUPPORTED_CURRENCIES)
        assert table[Currency.JPY] == pytest.approx(149.50)
        assert table[Currency.EUR] == pytest.approx(LIVE_RATES[Currency.EUR])
        assert fake_sleep.delays == []

    @pytest.mark.asyncio
    async def test_base_currency_in_url(self, monkeypatch, fake_sleep):
        payload = provider_payload()
        calls = _install_responses(monkeypatch, [(200, payload)])
        await _client(fake_sleep).fetch_rates(Currency.EUR)
        assert calls[0].endswith("/latest/EUR")

    @pytest.mark.asyncio
    async def test_retries_on_429_with_linear_backoff(self, monkeypatch, fake_sleep):
        """Two 429s then success → two waits of 1s and 2s."""
        calls = _install_responses(
            monkeypatch,
            [(429, {}), (429, {}), (200, provider_payload())],
        )

        table = await _client(fake_sleep).fetch_rates()

        assert len(calls) == 3
        assert fake_sleep.delays == [1.0, 2.0]
        assert table[Currency.USD] == 1.0

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self, monkeypatch, fake_sleep):
        """Initial attempt + 3 retries, all rate-limited → RateFetchError(429)."""
        calls = _install_responses(monkeypatch, [(429, {})] * 4)

        with pytest.raises(RateFetchError) as excinfo:
            await _client(fake_sleep).fetch_rates()

        assert excinfo.value.status_code == 429
        assert len(calls) == 4
        assert fake_sleep.delays == [1.0, 2.0, 3.0]

    @pytest.mark.asyncio
    async def test_server_error_fails_immediately(self, monkeypatch, fake_sleep):
        calls = _install_responses(monkeypatch, [(503, {}), (200, provider_payload())])

        with pytest.raises(RateFetchError) as excinfo:
            await _client(fake_sleep).fetch_rates()

        assert excinfo.value.status_code == 503
        assert len(calls) == 1
        assert fake_sleep.delays == []

    @pytest.mark.asyncio
    async def test_network_error_raises_rate_fetch_error(self, monkeypatch, fake_sleep):
        _install_responses(monkeypatch, [httpx.ConnectError("connection refused")])
        with pytest.raises(RateFetchError, match="connection refused"):
            await _client(fake_sleep).fetch_rates()

    @pytest.mark.asyncio
    async def test_error_does_not_leak_api_key(self, monkeypatch, fake_sleep):
        _install_responses(monkeypatch, [httpx.ReadTimeout("timed out")])
        with pytest.raises(RateFetchError) as excinfo:
            await _client(fake_sleep).fetch_rates()
        assert "test-key" not in str(excinfo.value)

    @pytest.mark.asyncio
    async def test_result_error_rejected(self, monkeypatch, fake_sleep):
        body = {"result": "error", "error-type": "invalid-key"}
        _install_responses(monkeypatch, [(200, body)])
        with pytest.raises(RateFetchError, match="invalid-key"):
            await _client(fake_sleep).fetch_rates()

    @pytest.mark.asyncio
    async def test_missing_table_rejected(self, monkeypatch, fake_sleep):
        _install_responses(monkeypatch, [(200, {"result": "success", "base_code": "USD"})])
        with pytest.raises(RateFetchError, match="conversion_rates"):
            await _client(fake_sleep).fetch_rates()

    @pytest.mark.asyncio
    async def test_incomplete_table_rejected(self, monkeypatch, fake_sleep):
        rates = {c: r for c, r in LIVE_RATES.items() if c != Currency.NZD}
        _install_responses(monkeypatch, [(200, provider_payload(rates))])
        with pytest.raises(RateFetchError, match="NZD"):
            await _client(fake_sleep).fetch_rates()

    @pytest.mark.asyncio
    async def test_non_positive_rate_rejected(self, monkeypatch, fake_sleep):
        rates = dict(LIVE_RATES)
        rates[Currency.GBP] = 0
        _install_responses(monkeypatch, [(200, provider_payload(rates))])
        with pytest.raises(RateFetchError, match="GBP"):
            await _client(fake_sleep).fetch_rates()


class TestConstruction:
    def test_empty_key_rejected(self):
        with pytest.raises(ConfigurationError):
            ExchangeRateClient("")

    def test_from_config(self):
        client = ExchangeRateClient.from_config(make_config())
        assert client._url(Currency.USD) == "https://rates.test/v6/test-key/latest/USD"

    def test_from_config_without_key(self):
        with pytest.raises(ConfigurationError):
            ExchangeRateClient.from_config(make_config(exchange_rate_api_key=""))
