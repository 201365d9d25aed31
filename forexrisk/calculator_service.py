"""ForexRisk — calculation service (orchestration).

Connects the rate cache, cross-rate resolution and the pure position
sizer.  Rate problems never fail a calculation: they are replaced by
fallback rates and flagged on the result.
"""

import logging
from typing import Mapping, Optional

from forexrisk.analytics import AnalyticsRecorder
from forexrisk.errors import ValidationError
from forexrisk.rates.cache import RateCache
from forexrisk.rates.cross_rate import quote_pair
from forexrisk.rates.fallback import fallback_rate_table
from forexrisk.rates.models import CurrencyPair, ExchangeRateResult
from forexrisk.risk.models import CalculationInput, CalculationResult, TradingScenario
from forexrisk.risk.position_sizer import calculate_position
from forexrisk.risk.suggestions import suggest

logger = logging.getLogger("forexrisk")


class CalculatorService:
    """Entry point for position-size calculations and suggestions.

    Args:
        rate_cache: The process's ``RateCache``.
        analytics: Optional ``AnalyticsRecorder`` for calculation events.
    """

    def __init__(
        self,
        rate_cache: RateCache,
        analytics: Optional[AnalyticsRecorder] = None,
    ) -> None:
        self._rate_cache = rate_cache
        self._analytics = analytics

    async def resolve_rate(self, pair: CurrencyPair) -> ExchangeRateResult:
        """Resolve *pair* from the cached table, or from fallback rates on any error."""
        try:
            snapshot = await self._rate_cache.get_snapshot()
            return quote_pair(snapshot.rates, pair, snapshot.origin)
        except Exception:
            logger.exception("Rate resolution for %s failed — using fallback rates", pair)
            return quote_pair(fallback_rate_table(), pair, "fallback")

    async def calculate(self, calc_input: CalculationInput) -> CalculationResult:
        """Size a position for an already validated input."""
        market = await self.resolve_rate(calc_input.pair)
        result = calculate_position(calc_input, market)
        if result.used_fallback_rate:
            logger.info("Calculation for %s used fallback rates", calc_input.pair)
        if self._analytics is not None:
            self._analytics.record_calculation(calc_input.pair.symbol, result.rate_source)
        return result

    async def calculate_from_dict(self, data: Mapping) -> CalculationResult:
        """Validate an API request body and size the position.

        Raises:
            ValidationError: listing every offending field.
        """
        try:
            calc_input = CalculationInput.from_dict(data)
        except ValidationError as exc:
            if self._analytics is not None:
                self._analytics.record_validation_failure(exc.fields)
            raise
        return await self.calculate(calc_input)

    def suggestions_from_dict(self, data: Mapping) -> list:
        """Build a ``TradingScenario`` from *data* and run the suggestion engine.

        Malformed or incomplete scenarios yield an empty list.
        """
        try:
            scenario = TradingScenario.from_dict(data)
        except ValidationError as exc:
            logger.debug("No suggestions for invalid scenario: %s", exc)
            return []
        return suggest(scenario)
