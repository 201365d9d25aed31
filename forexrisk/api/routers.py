"""Internal API routers — /exchange-rates, /calculate, /suggestions, /stats endpoints.

No business logic. Delegates to the calculator service, rate cache and
analytics recorder injected at startup.
"""

import hmac
import logging
from typing import Optional

from fastapi import APIRouter, Header
from fastapi.responses import JSONResponse

from forexrisk.analytics import AnalyticsRecorder
from forexrisk.calculator_service import CalculatorService
from forexrisk.config import Config
from forexrisk.errors import RateFetchError, ValidationError
from forexrisk.rates.cache import RateCache
from forexrisk.rates.models import SUPPORTED_PAIRS, CachedRateSnapshot

logger = logging.getLogger("forexrisk")
router = APIRouter()

# ── Shared state (set during app startup) ────────────────────────────────

_calculator: Optional[CalculatorService] = None
_rate_cache: Optional[RateCache] = None
_analytics: Optional[AnalyticsRecorder] = None
_cron_secret: str = ""


def configure_routers(
    calculator: CalculatorService,
    rate_cache: RateCache,
    analytics: Optional[AnalyticsRecorder] = None,
    config: Optional[Config] = None,
) -> None:
    """Inject dependencies from the application startup.

    Args:
        calculator: The ``CalculatorService`` serving ``/calculate``.
        rate_cache: The ``RateCache`` behind ``/exchange-rates``.
        analytics: ``AnalyticsRecorder`` exposed at ``/stats``.
        config: Supplies the refresh endpoint's secret.
    """
    global _calculator, _rate_cache, _analytics, _cron_secret  # noqa: PLW0603
    _calculator = calculator
    _rate_cache = rate_cache
    _analytics = analytics
    _cron_secret = config.cron_secret_key if config is not None else ""


def _not_ready() -> JSONResponse:
    return JSONResponse(
        {"status": "error", "error": "service not configured"}, status_code=503
    )


def _snapshot_body(snapshot: CachedRateSnapshot) -> dict:
    return {
        "rates": {c.value: r for c, r in snapshot.rates.items()},
        "timestamp": int(snapshot.fetched_at * 1000),
        "expiresAt": int(snapshot.expires_at * 1000),
        "source": snapshot.origin,
    }


def _cache_headers(snapshot: CachedRateSnapshot) -> dict:
    ttl = max(0, int(snapshot.ttl_seconds))
    value = f"public, s-maxage={ttl}, stale-while-revalidate={ttl // 2}"
    return {"Cache-Control": value, "CDN-Cache-Control": value}


# ── Endpoints ────────────────────────────────────────────────────────────


@router.get("/exchange-rates")
async def get_exchange_rates():
    """Return the current rate table with its timestamp, expiry and source."""
    if _rate_cache is None:
        return _not_ready()
    snapshot = await _rate_cache.get_snapshot()
    return JSONResponse(_snapshot_body(snapshot), headers=_cache_headers(snapshot))


@router.get("/currency-pairs")
async def get_currency_pairs():
    """Return every supported pair."""
    return {
        "pairs": [{"from": p.base.value, "to": p.quote.value} for p in SUPPORTED_PAIRS]
    }


@router.post("/calculate")
async def post_calculate(body: dict):
    """Size a position. Returns 422 with per-field errors on bad input."""
    if _calculator is None:
        return _not_ready()
    try:
        result = await _calculator.calculate_from_dict(body)
    except ValidationError as exc:
        return JSONResponse(
            {"status": "error", "errors": exc.to_list()}, status_code=422
        )
    return result.to_dict()


@router.post("/suggestions")
async def post_suggestions(body: dict):
    """Return advisory messages for a trading scenario (empty when incomplete)."""
    if _calculator is None:
        return _not_ready()
    suggestions = _calculator.suggestions_from_dict(body)
    return {"suggestions": [s.to_dict() for s in suggestions]}


@router.post("/rates/refresh")
async def post_refresh_rates(authorization: Optional[str] = Header(default=None)):
    """Force a provider fetch, bypassing the cache TTL.

    Requires ``Authorization: Bearer <CRON_SECRET_KEY>``.
    """
    if _rate_cache is None:
        return _not_ready()
    if not _cron_secret:
        return JSONResponse(
            {"success": False, "error": "CRON_SECRET_KEY is not configured"},
            status_code=503,
        )
    # Compare raw bytes: compare_digest rejects non-ASCII str, and header
    # values arrive latin-1 decoded.
    supplied = (authorization or "").encode("latin-1")
    expected = f"Bearer {_cron_secret}".encode("utf-8")
    if not hmac.compare_digest(supplied, expected):
        return JSONResponse({"success": False, "error": "Unauthorized"}, status_code=401)
    if _rate_cache.fallback_only:
        return JSONResponse(
            {"success": False, "error": "EXCHANGE_RATE_API_KEY is not configured"},
            status_code=503,
        )

    try:
        snapshot = await _rate_cache.fetch_snapshot()
    except RateFetchError as exc:
        logger.error("Forced rate refresh failed: %s", exc)
        return JSONResponse({"success": False, "error": str(exc)}, status_code=502)

    return {
        "success": True,
        "timestamp": int(snapshot.fetched_at * 1000),
        "message": "Exchange rates updated successfully",
    }


@router.get("/stats")
async def get_stats():
    """Return analytics counters and recent calculation events."""
    if _analytics is None:
        return {"stats": {}}
    return {"stats": _analytics.snapshot()}
