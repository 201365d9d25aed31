"""Rate cache — single-slot, TTL-driven, never fails its caller.

Serves the stored snapshot until it expires, then asks the provider
client for a fresh table.  Any provider failure is absorbed: a snapshot
built from the fallback table is stored with a shorter TTL so the next
attempt comes sooner.  Concurrent misses may both hit the provider; the
last writer wins.
"""

import asyncio
import logging
import time
from typing import Callable, Optional

from forexrisk.analytics import AnalyticsRecorder
from forexrisk.errors import RateFetchError
from forexrisk.rates.exchange_rate_client import ExchangeRateClient
from forexrisk.rates.fallback import fallback_rate_table
from forexrisk.rates.models import BASE_CURRENCY, CachedRateSnapshot, RateTable
from forexrisk.rates.storage import MemoryStorage, SnapshotStorage

logger = logging.getLogger("forexrisk.rates.cache")

DEFAULT_TTL_SECONDS = 12 * 60 * 60
DEFAULT_FALLBACK_TTL_SECONDS = 60 * 60


class RateCache:
    """Holds the most recent rate snapshot.

    Args:
        client: Provider client, or ``None`` for fallback-only mode.
        storage: Where the snapshot lives (defaults to ``MemoryStorage``).
        ttl_seconds: Lifetime of a snapshot fetched from the provider.
        fallback_ttl_seconds: Lifetime of a fallback snapshot.
        fetch_timeout: Overall bound on one provider call, retries included.
        refresh_ahead_seconds: When > 0, a hit this close to expiry starts
            one background refresh.
        clock: Returns the current epoch time in seconds.
        analytics: Optional ``AnalyticsRecorder``.
    """

    def __init__(
        self,
        client: Optional[ExchangeRateClient],
        storage: Optional[SnapshotStorage] = None,
        *,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        fallback_ttl_seconds: float = DEFAULT_FALLBACK_TTL_SECONDS,
        fetch_timeout: float = 10.0,
        refresh_ahead_seconds: float = 0.0,
        clock: Callable[[], float] = time.time,
        analytics: Optional[AnalyticsRecorder] = None,
    ) -> None:
        self._client = client
        self._storage = storage if storage is not None else MemoryStorage()
        self._ttl = ttl_seconds
        self._fallback_ttl = fallback_ttl_seconds
        self._fetch_timeout = fetch_timeout
        self._refresh_ahead = refresh_ahead_seconds
        self._clock = clock
        self._analytics = analytics
        self._refresh_task: Optional[asyncio.Task] = None

        if client is None:
            logger.warning(
                "No exchange-rate API key configured — serving fallback rates only."
            )

    @property
    def fallback_only(self) -> bool:
        return self._client is None

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    # ── Slot access ──────────────────────────────────────────────────────

    def get(self) -> Optional[CachedRateSnapshot]:
        """Return the stored snapshot, expired or not."""
        return self._storage.load()

    def set(self, snapshot: CachedRateSnapshot) -> None:
        """Replace the stored snapshot."""
        self._storage.save(snapshot)

    def is_expired(self, snapshot: Optional[CachedRateSnapshot]) -> bool:
        return snapshot is None or snapshot.is_expired(self._clock())

    def clear(self) -> None:
        self._storage.clear()

    # ── Reads ────────────────────────────────────────────────────────────

    async def get_snapshot(self) -> CachedRateSnapshot:
        """Return a live snapshot, refreshing it on a miss."""
        snapshot = self.get()
        if not self.is_expired(snapshot):
            logger.debug("Rate cache hit (%s, expires %.0f)", snapshot.origin, snapshot.expires_at)
            self._record_request(cache_hit=True)
            self._maybe_refresh_ahead(snapshot)
            return snapshot

        logger.debug("Rate cache miss")
        self._record_request(cache_hit=False)
        return await self.refresh()

    async def get_rates(self) -> RateTable:
        """Return the current ``RateTable``; never raises for provider failures."""
        return (await self.get_snapshot()).rates

    # ── Refresh ──────────────────────────────────────────────────────────

    async def refresh(self) -> CachedRateSnapshot:
        """Fetch from the provider now, substituting fallback rates on failure."""
        try:
            snapshot = await self.fetch_snapshot()
        except RateFetchError as exc:
            logger.warning("Exchange rate fetch failed, using fallback rates: %s", exc)
            snapshot = self._fallback_snapshot()
        except Exception:
            logger.exception("Unexpected error fetching exchange rates, using fallback rates")
            snapshot = self._fallback_snapshot()
        self.set(snapshot)
        return snapshot

    async def fetch_snapshot(self) -> CachedRateSnapshot:
        """Fetch a provider snapshot and store it.

        Raises ``RateFetchError`` on failure (including fallback-only mode
        and timeouts) without touching the stored snapshot.
        """
        if self._client is None:
            raise RateFetchError("no exchange-rate API key configured")

        try:
            table = await asyncio.wait_for(
                self._client.fetch_rates(BASE_CURRENCY), timeout=self._fetch_timeout
            )
        except asyncio.TimeoutError:
            self._record_fetch(success=False)
            raise RateFetchError(
                f"Rate provider did not answer within {self._fetch_timeout:.1f}s"
            ) from None
        except Exception:
            self._record_fetch(success=False)
            raise

        self._record_fetch(success=True)
        now = self._clock()
        snapshot = CachedRateSnapshot(
            rates=table, fetched_at=now, expires_at=now + self._ttl, origin="api"
        )
        self.set(snapshot)
        logger.info("Exchange rates refreshed; next refresh after %.0fs", self._ttl)
        return snapshot

    def _fallback_snapshot(self) -> CachedRateSnapshot:
        now = self._clock()
        return CachedRateSnapshot(
            rates=fallback_rate_table(),
            fetched_at=now,
            expires_at=now + self._fallback_ttl,
            origin="fallback",
        )

    def _maybe_refresh_ahead(self, snapshot: CachedRateSnapshot) -> None:
        """Start one fire-and-forget refresh when *snapshot* is close to expiry."""
        if self._refresh_ahead <= 0 or self._client is None:
            return
        if snapshot.expires_at - self._clock() > self._refresh_ahead:
            return
        if self._refresh_task is not None and not self._refresh_task.done():
            return
        logger.debug("Scheduling background rate refresh")
        self._refresh_task = asyncio.create_task(self.refresh())

    def _record_request(self, cache_hit: bool) -> None:
        if self._analytics is not None:
            self._analytics.record_rate_request(cache_hit)

    def _record_fetch(self, success: bool) -> None:
        if self._analytics is not None:
            self._analytics.record_upstream_fetch(success)
