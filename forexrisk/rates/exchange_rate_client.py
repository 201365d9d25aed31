"""Exchange-rate provider async client.

Fetches the "latest rates" table for a base currency.  Retries on rate
limiting only; every other failure is raised as ``RateFetchError``.  The
client never consults a cache or the fallback table, callers do.
"""

import asyncio
import logging
from typing import Awaitable, Callable

import httpx

from forexrisk.config import Config, require_api_key
from forexrisk.errors import ConfigurationError, RateFetchError
from forexrisk.rates.models import BASE_CURRENCY, Currency, RateTable, build_rate_table

logger = logging.getLogger("forexrisk.rates")

# Retry settings
_MAX_RETRIES = 3
_RETRY_BASE_DELAY = 1.0  # seconds; multiplied by the retry number
_RATE_LIMITED = 429

SleepFn = Callable[[float], Awaitable[None]]


class ExchangeRateClient:
    """Async client for ``GET {base_url}/{api_key}/latest/{base}``.

    Args:
        api_key: Provider credential.  Must be non-empty.
        base_url: Provider root, e.g. ``https://v6.exchangerate-api.com/v6``.
        timeout: Per-request timeout in seconds.
        sleep: Awaitable used between retries; inject a fake in tests.
        max_retries: Retries allowed after a 429 response.
        retry_delay: Base backoff; retry *n* waits ``n × retry_delay``.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://v6.exchangerate-api.com/v6",
        *,
        timeout: float = 10.0,
        sleep: SleepFn = asyncio.sleep,
        max_retries: int = _MAX_RETRIES,
        retry_delay: float = _RETRY_BASE_DELAY,
    ) -> None:
        if not api_key:
            raise ConfigurationError("exchange-rate API key must not be empty")
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._sleep = sleep
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._headers = {"Accept": "application/json"}

    @classmethod
    def from_config(cls, config: Config, **kwargs) -> "ExchangeRateClient":
        """Build a client from ``Config``; raises ``ConfigurationError`` without a key."""
        return cls(
            require_api_key(config),
            config.exchange_rate_api_url,
            timeout=config.rate_fetch_timeout_seconds,
            **kwargs,
        )

    def _url(self, base: Currency) -> str:
        return f"{self._base_url}/{self._api_key}/latest/{base.value}"

    def _redacted_url(self, base: Currency) -> str:
        return f"{self._base_url}/***/latest/{base.value}"

    # ── Request with retry ───────────────────────────────────────────────

    async def _get_with_retry(self, base: Currency) -> httpx.Response:
        """GET the latest-rates endpoint, retrying on HTTP 429 with linear backoff."""
        url = self._url(base)
        for attempt in range(self._max_retries + 1):
            try:
                async with httpx.AsyncClient() as client:
                    resp = await client.get(url, headers=self._headers, timeout=self._timeout)
            except httpx.HTTPError as exc:
                raise RateFetchError(
                    f"Request to {self._redacted_url(base)} failed: {exc}"
                ) from exc

            if resp.status_code == _RATE_LIMITED and attempt < self._max_retries:
                delay = self._retry_delay * (attempt + 1)
                logger.warning(
                    "Rate provider returned 429 — retry %d/%d in %.1fs",
                    attempt + 1, self._max_retries, delay,
                )
                await self._sleep(delay)
                continue

            if not resp.is_success:
                raise RateFetchError(
                    f"Rate provider returned HTTP {resp.status_code}",
                    status_code=resp.status_code,
                )
            return resp

        # Unreachable: the final attempt either returns or raises above.
        raise RateFetchError("Rate provider retries exhausted", status_code=_RATE_LIMITED)

    # ── Rates ────────────────────────────────────────────────────────────

    async def fetch_rates(self, base: Currency = BASE_CURRENCY) -> RateTable:
        """Fetch the latest rate table quoted against *base*.

        Returns:
            A complete ``RateTable`` for the supported currencies.

        Raises:
            RateFetchError: on network failure, non-2xx status, a
                ``result`` other than ``"success"``, or a payload without
                a usable ``conversion_rates`` table.
        """
        base = Currency(base)
        resp = await self._get_with_retry(base)

        try:
            data = resp.json()
        except ValueError as exc:
            raise RateFetchError(f"Rate provider returned invalid JSON: {exc}") from exc

        if not isinstance(data, dict):
            raise RateFetchError("Rate provider payload is not a JSON object")
        if data.get("result") != "success":
            raise RateFetchError(
                f"Rate provider reported {data.get('result')!r}"
                f" ({data.get('error-type', 'no error type')})"
            )
        raw = data.get("conversion_rates")
        if not isinstance(raw, dict):
            raise RateFetchError("Rate provider payload has no conversion_rates table")

        try:
            table = build_rate_table(raw)
        except ValueError as exc:
            raise RateFetchError(f"Malformed conversion_rates: {exc}") from exc

        logger.debug(
            "Fetched %d rates for base %s (provider base_code=%s)",
            len(table), base.value, data.get("base_code"),
        )
        return table
