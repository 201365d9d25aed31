"""ForexRisk — application configuration.

Loads .env variables into a typed config object.
Numeric variables are validated on load.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from forexrisk.errors import ConfigurationError

_DEFAULT_API_URL = "https://v6.exchangerate-api.com/v6"


@dataclass(frozen=True)
class Config:
    """Typed configuration loaded from environment variables."""

    exchange_rate_api_key: str
    exchange_rate_api_url: str
    rate_cache_ttl_seconds: float  # lifetime of an api snapshot
    fallback_cache_ttl_seconds: float  # lifetime of a fallback snapshot
    rate_fetch_timeout_seconds: float
    rate_refresh_ahead_seconds: float  # 0 disables background refresh
    rate_cache_path: str  # "" keeps the snapshot in memory only
    cron_secret_key: str
    log_level: str
    port: int

    @property
    def has_api_key(self) -> bool:
        """``True`` when live rates can be requested from the provider."""
        return bool(self.exchange_rate_api_key)


def require_api_key(config: Config) -> str:
    """Return the provider API key or raise ``ConfigurationError``."""
    if not config.has_api_key:
        raise ConfigurationError(
            "EXCHANGE_RATE_API_KEY is not configured; live exchange rates are unavailable"
        )
    return config.exchange_rate_api_key


def _positive_float(name: str, default: str, allow_zero: bool = False) -> float:
    raw = os.environ.get(name, default)
    try:
        value = float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from None
    if value < 0 or (value == 0 and not allow_zero):
        raise ConfigurationError(f"{name} must be positive, got {raw!r}")
    return value


def load_config(env_path: str | None = None) -> Config:
    """Load configuration from environment variables.

    Nothing is strictly required: without ``EXCHANGE_RATE_API_KEY`` the
    service runs on fallback rates only.  Raises ``ConfigurationError``
    naming the variable when a numeric value is malformed.
    """
    load_dotenv(dotenv_path=env_path)

    port_raw = os.environ.get("PORT", "8080")
    try:
        port = int(port_raw)
    except ValueError:
        raise ConfigurationError(f"PORT must be an integer, got {port_raw!r}") from None

    return Config(
        exchange_rate_api_key=os.environ.get("EXCHANGE_RATE_API_KEY", "").strip(),
        exchange_rate_api_url=os.environ.get(
            "EXCHANGE_RATE_API_URL", _DEFAULT_API_URL
        ).rstrip("/"),
        rate_cache_ttl_seconds=_positive_float("RATE_CACHE_TTL_SECONDS", "43200"),
        fallback_cache_ttl_seconds=_positive_float("FALLBACK_CACHE_TTL_SECONDS", "3600"),
        rate_fetch_timeout_seconds=_positive_float("RATE_FETCH_TIMEOUT_SECONDS", "10"),
        rate_refresh_ahead_seconds=_positive_float(
            "RATE_REFRESH_AHEAD_SECONDS", "0", allow_zero=True
        ),
        rate_cache_path=os.environ.get("RATE_CACHE_PATH", ""),
        cron_secret_key=os.environ.get("CRON_SECRET_KEY", ""),
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
        port=port,
    )
