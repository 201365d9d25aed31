"""One-shot script to fetch live exchange rates into the file cache.

Usage (from the project root):
    python -m scripts.fetch_rates --output data/exchange-rates.json
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Ensure project root is on path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from forexrisk.config import load_config
from forexrisk.errors import ConfigurationError, RateFetchError
from forexrisk.rates.cache import RateCache
from forexrisk.rates.exchange_rate_client import ExchangeRateClient
from forexrisk.rates.storage import JsonFileStorage

logger = logging.getLogger("forexrisk.scripts")

_DEFAULT_OUTPUT = "data/exchange-rates.json"


async def _main(output: str | None) -> int:
    config = load_config()
    try:
        client = ExchangeRateClient.from_config(config)
    except ConfigurationError as exc:
        logger.error("%s", exc)
        return 1

    storage = JsonFileStorage(output or config.rate_cache_path or _DEFAULT_OUTPUT)
    cache = RateCache(
        client,
        storage,
        ttl_seconds=config.rate_cache_ttl_seconds,
        fetch_timeout=config.rate_fetch_timeout_seconds,
    )
    try:
        snapshot = await cache.fetch_snapshot()
    except RateFetchError as exc:
        logger.error("Fetching exchange rates failed: %s", exc)
        return 1

    logger.info(
        "Saved %d rates to %s (valid for %.0fs)",
        len(snapshot.rates), storage.path, snapshot.ttl_seconds,
    )
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Fetch live exchange rates into the file cache")
    parser.add_argument("--output", default=None, help=f"Cache file (default: $RATE_CACHE_PATH or {_DEFAULT_OUTPUT})")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )

    sys.exit(asyncio.run(_main(args.output)))
