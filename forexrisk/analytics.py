"""In-process analytics counters and a short log of recent calculations.

Callers record events through plain method calls; nothing here is
persisted.
"""

import time
from collections import deque
from typing import Callable, Optional

_MAX_RECENT_EVENTS = 50


class AnalyticsRecorder:
    """Counts rate requests, upstream fetches and calculations."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._counters: dict[str, int] = {
            "calculations": 0,
            "fallback_calculations": 0,
            "validation_failures": 0,
            "rate_requests": 0,
            "cache_hits": 0,
            "upstream_fetches": 0,
            "upstream_failures": 0,
        }
        self._recent: deque[dict] = deque(maxlen=_MAX_RECENT_EVENTS)
        self._last_upstream_fetch_at: Optional[float] = None
        self._invalid_fields: dict[str, int] = {}

    # ── Recording ────────────────────────────────────────────────────────

    def record_rate_request(self, cache_hit: bool) -> None:
        self._counters["rate_requests"] += 1
        if cache_hit:
            self._counters["cache_hits"] += 1

    def record_upstream_fetch(self, success: bool) -> None:
        self._counters["upstream_fetches"] += 1
        if success:
            self._last_upstream_fetch_at = self._clock()
        else:
            self._counters["upstream_failures"] += 1

    def record_calculation(self, pair: str, rate_source: str) -> None:
        """Record one completed calculation and whether it used fallback rates."""
        self._counters["calculations"] += 1
        if rate_source == "fallback":
            self._counters["fallback_calculations"] += 1
        self._recent.append(
            {"pair": pair, "rate_source": rate_source, "at": self._clock()}
        )

    def record_validation_failure(self, fields: list[str]) -> None:
        self._counters["validation_failures"] += 1
        for name in fields:
            self._invalid_fields[name] = self._invalid_fields.get(name, 0) + 1

    # ── Queries ──────────────────────────────────────────────────────────

    def count(self, name: str) -> int:
        return self._counters[name]

    def snapshot(self) -> dict:
        """Return counters, cache hit ratio and recent events."""
        requests = self._counters["rate_requests"]
        return {
            **self._counters,
            "cache_hit_ratio": (
                self._counters["cache_hits"] / requests if requests else 0.0
            ),
            "last_upstream_fetch_at": self._last_upstream_fetch_at,
            "invalid_fields": dict(self._invalid_fields),
            "recent_calculations": list(self._recent),
        }
