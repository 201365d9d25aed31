"""ForexRisk — application entry point.

Boots the FastAPI server and wires the rate cache, calculator service
and analytics recorder together.
"""

import logging

from fastapi import FastAPI

from forexrisk.analytics import AnalyticsRecorder
from forexrisk.api.routers import configure_routers, router
from forexrisk.calculator_service import CalculatorService
from forexrisk.config import Config
from forexrisk.rates.cache import RateCache
from forexrisk.rates.exchange_rate_client import ExchangeRateClient
from forexrisk.rates.storage import JsonFileStorage, MemoryStorage

app = FastAPI(title="ForexRisk API", version="0.1.0")
app.include_router(router)

logger = logging.getLogger("forexrisk")


@app.get("/health")
async def health():
    """Liveness probe."""
    return {"status": "ok"}


def build_services(config: Config) -> tuple[CalculatorService, RateCache, AnalyticsRecorder]:
    """Create the process-wide rate cache, calculator and analytics recorder.

    Without an API key the cache runs in fallback-only mode.
    """
    analytics = AnalyticsRecorder()
    client = ExchangeRateClient.from_config(config) if config.has_api_key else None
    storage = (
        JsonFileStorage(config.rate_cache_path) if config.rate_cache_path else MemoryStorage()
    )
    rate_cache = RateCache(
        client,
        storage,
        ttl_seconds=config.rate_cache_ttl_seconds,
        fallback_ttl_seconds=config.fallback_cache_ttl_seconds,
        fetch_timeout=config.rate_fetch_timeout_seconds,
        refresh_ahead_seconds=config.rate_refresh_ahead_seconds,
        analytics=analytics,
    )
    calculator = CalculatorService(rate_cache, analytics)
    return calculator, rate_cache, analytics


# ── CLI ──────────────────────────────────────────────────────────────────


def _run_cli() -> None:
    """Parse CLI arguments, configure services and serve the API."""
    import argparse

    import uvicorn

    from forexrisk.config import load_config

    parser = argparse.ArgumentParser(description="ForexRisk position-size calculator API")
    parser.add_argument("--host", default="0.0.0.0", help="Bind address (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=None, help="Port (default: $PORT or 8080)")
    parser.add_argument("--env-file", default=None, help="Path to a .env file")
    args = parser.parse_args()

    config = load_config(args.env_file)

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    calculator, rate_cache, analytics = build_services(config)
    configure_routers(
        calculator=calculator,
        rate_cache=rate_cache,
        analytics=analytics,
        config=config,
    )

    port = args.port or config.port
    logger.info(
        "Starting ForexRisk on port %d (rate cache TTL %.0fs, fallback TTL %.0fs)",
        port, config.rate_cache_ttl_seconds, config.fallback_cache_ttl_seconds,
    )
    uvicorn.run(app, host=args.host, port=port, log_level=config.log_level.lower())


if __name__ == "__main__":
    _run_cli()
