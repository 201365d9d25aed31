"""Rate data models — currencies, pairs, rate tables and cache snapshots."""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Mapping

from forexrisk.errors import ValidationError


class Currency(str, Enum):
    """Supported currency codes."""

    USD = "USD"
    EUR = "EUR"
    GBP = "GBP"
    CHF = "CHF"
    CAD = "CAD"
    JPY = "JPY"
    AUD = "AUD"
    NZD = "NZD"

    def __str__(self) -> str:
        return self.value


BASE_CURRENCY = Currency.USD
SUPPORTED_CURRENCIES: tuple[Currency, ...] = tuple(Currency)

# Every rate table is keyed by currency and quoted as units per 1 USD.
RateTable = dict[Currency, float]


def parse_currency(value, field_name: str = "currency") -> Currency:
    """Return the ``Currency`` for *value* or raise ``ValidationError``."""
    if isinstance(value, Currency):
        return value
    if isinstance(value, str):
        try:
            return Currency(value.strip().upper())
        except ValueError:
            pass
    raise ValidationError.single(
        field_name,
        f"unsupported currency {value!r}; expected one of "
        f"{', '.join(c.value for c in SUPPORTED_CURRENCIES)}",
    )


@dataclass(frozen=True)
class CurrencyPair:
    """An ordered (base, quote) pair such as EUR/USD."""

    base: Currency
    quote: Currency

    def __post_init__(self) -> None:
        if self.base == self.quote:
            raise ValidationError.single(
                "pair", f"pair currencies must differ, got {self.base}/{self.quote}"
            )

    @classmethod
    def parse(cls, value, field_name: str = "pair") -> "CurrencyPair":
        """Parse ``"EUR/USD"``, ``"EUR_USD"``, ``"EURUSD"`` or ``{"from", "to"}``."""
        if isinstance(value, CurrencyPair):
            return value
        if isinstance(value, Mapping):
            base_raw, quote_raw = value.get("from"), value.get("to")
        elif isinstance(value, str):
            text = value.strip().upper()
            for sep in ("/", "_", "-"):
                if sep in text:
                    base_raw, _, quote_raw = text.partition(sep)
                    break
            else:
                base_raw, quote_raw = text[:3], text[3:]
        else:
            raise ValidationError.single(field_name, f"invalid currency pair {value!r}")

        try:
            base = parse_currency(base_raw, field_name)
            quote = parse_currency(quote_raw, field_name)
            return cls(base, quote)
        except ValidationError as exc:
            raise ValidationError.single(
                field_name, f"invalid currency pair {value!r}: {exc.errors.popitem()[1]}"
            ) from None

    @property
    def symbol(self) -> str:
        return f"{self.base.value}/{self.quote.value}"

    def __str__(self) -> str:
        return self.symbol


# Full cross product minus identity pairs.
SUPPORTED_PAIRS: tuple[CurrencyPair, ...] = tuple(
    CurrencyPair(b, q) for b in SUPPORTED_CURRENCIES for q in SUPPORTED_CURRENCIES if b != q
)


def build_rate_table(raw: Mapping) -> RateTable:
    """Extract a complete ``RateTable`` from a ``{code: rate}`` mapping.

    Unsupported codes are ignored.  Raises ``ValueError`` when a supported
    currency is missing or its rate is not a strictly positive finite number.
    """
    table: RateTable = {}
    for currency in SUPPORTED_CURRENCIES:
        value = raw.get(currency.value, raw.get(currency))
        if value is None:
            raise ValueError(f"rate table is missing {currency.value}")
        try:
            rate = float(value)
        except (TypeError, ValueError):
            raise ValueError(f"rate for {currency.value} is not numeric: {value!r}") from None
        if not math.isfinite(rate) or rate <= 0:
            raise ValueError(f"rate for {currency.value} must be positive and finite, got {rate}")
        table[currency] = rate
    return table


@dataclass(frozen=True)
class CachedRateSnapshot:
    """A rate table plus its fetch time, expiry and origin.

    Snapshots are replaced wholesale, never mutated.  Times are epoch
    seconds.
    """

    rates: RateTable
    fetched_at: float
    expires_at: float
    origin: str  # "api" or "fallback"

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at

    @property
    def ttl_seconds(self) -> float:
        return self.expires_at - self.fetched_at

    def to_dict(self) -> dict:
        return {
            "rates": {c.value: r for c, r in self.rates.items()},
            "fetched_at": self.fetched_at,
            "expires_at": self.expires_at,
            "origin": self.origin,
        }

    @classmethod
    def from_dict(cls, data: Mapping) -> "CachedRateSnapshot":
        """Rebuild a snapshot; raises ``ValueError``/``KeyError`` on bad data."""
        origin = data["origin"]
        if origin not in ("api", "fallback"):
            raise ValueError(f"unknown snapshot origin {origin!r}")
        return cls(
            rates=build_rate_table(data["rates"]),
            fetched_at=float(data["fetched_at"]),
            expires_at=float(data["expires_at"]),
            origin=origin,
        )


@dataclass(frozen=True)
class ExchangeRateResult:
    """Rate for one pair with heuristic market metrics attached."""

    rate: float
    spread: float
    volatility: float
    daily_high: float
    daily_low: float
    source: str  # "api" or "fallback"

    @property
    def daily_range(self) -> dict:
        return {"high": self.daily_high, "low": self.daily_low}

    def to_dict(self) -> dict:
        return {
            "rate": self.rate,
            "spread": self.spread,
            "volatility": self.volatility,
            "dailyRange": self.daily_range,
            "source": self.source,
        }
