"""Position sizing — pure math, no I/O.

Sizes a position so that hitting the stop loss loses exactly the risk
amount::

    risk_amount     = balance × (risk_pct / 100)
    lot_pip_value   = pip value of one standard lot (100,000 units)
    lots            = risk_amount / (stop_loss_pips × lot_pip_value)
    units           = lots × 100,000
    required_margin = units × rate / leverage   (units × rate when leverage is 0)

Pip value depends on which side of the pair USD sits:

* quote is USD (EUR/USD):   units × pip_size
* base is USD (USD/JPY):    units × pip_size / rate
* cross pair (EUR/GBP):     units × pip_size × rate

The three cases are not interchangeable and must stay distinct.
"""

import dataclasses
import logging
import math

from forexrisk.rates.models import BASE_CURRENCY, Currency, CurrencyPair, ExchangeRateResult
from forexrisk.risk.models import CalculationInput, CalculationResult
from forexrisk.risk.risk_score import analyze_risk

logger = logging.getLogger("forexrisk.risk")

STANDARD_LOT_UNITS = 100_000
PIP_SIZE = 0.0001
JPY_PIP_SIZE = 0.01
MIN_LOT_SIZE = 0.01  # micro lot


def round_half_up(value: float, digits: int = 2) -> float:
    """Round like a calculator display: halves go up, not to even."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def pip_size(quote: Currency) -> float:
    """Price increment of one pip for pairs quoted in *quote*."""
    return JPY_PIP_SIZE if quote == Currency.JPY else PIP_SIZE


def pip_value(lots: float, rate: float, pair: CurrencyPair) -> float:
    """Value of one pip for a position of *lots* standard lots.

    Args:
        lots: Position size in standard lots.
        rate: Market rate for *pair* (quote per base).
        pair: The traded pair.
    """
    units = lots * STANDARD_LOT_UNITS
    size = pip_size(pair.quote)
    if pair.quote == BASE_CURRENCY:
        return units * size
    if pair.base == BASE_CURRENCY:
        return units * size / rate
    return units * size * rate


def required_margin(units: float, rate: float, leverage: float) -> float:
    """Margin for *units* at *rate*; without leverage the full notional is required."""
    position_value = units * rate
    if leverage > 0:
        return position_value / leverage
    return position_value


def calculate_position(
    calc_input: CalculationInput,
    market: ExchangeRateResult,
) -> CalculationResult:
    """Compute position size, margin, pip value and risk analysis.

    Args:
        calc_input: A validated ``CalculationInput``.
        market: Resolved rate for ``calc_input.pair``.

    Returns:
        ``CalculationResult`` with monetary values rounded to 2 dp and the
        position size rounded per ``calc_input.display_unit``.
    """
    pair = calc_input.pair
    rate = market.rate
    if not rate > 0:
        raise ValueError(f"rate must be positive, got {rate}")

    risk_amount = calc_input.risk_amount
    lot_pip_value = pip_value(1.0, rate, pair)
    lots = risk_amount / (calc_input.stop_loss_pips * lot_pip_value)
    units = lots * STANDARD_LOT_UNITS
    position_pip_value = pip_value(lots, rate, pair)
    margin = required_margin(units, rate, calc_input.leverage)

    risk_analysis = analyze_risk(
        calc_input.account_balance,
        calc_input.risk_percentage,
        calc_input.stop_loss_pips,
        calc_input.leverage,
        market.volatility,
    )

    logger.debug(
        "Calculation %s: rate=%.5f lot_pip_value=%.4f lots=%.4f margin=%.2f",
        pair, rate, lot_pip_value, lots, margin,
    )

    units_rounded = int(round_half_up(units, 0))
    lots_rounded = round_half_up(lots, 2)
    if lots_rounded < MIN_LOT_SIZE:
        # Shown in lots this rounds to 0.00; units keep the exact size.
        risk_analysis = dataclasses.replace(
            risk_analysis,
            suggestions=[
                *risk_analysis.suggestions,
                f"Position of {lots:.4f} lots is below the {MIN_LOT_SIZE:.2f} lot minimum "
                "most brokers accept. Consider a larger risk amount or a tighter stop loss",
            ],
        )
    return CalculationResult(
        position_size=lots_rounded if calc_input.display_unit == "lots" else units_rounded,
        position_size_lots=lots_rounded,
        position_size_units=units_rounded,
        potential_loss=round_half_up(risk_amount, 2),
        required_margin=round_half_up(margin, 2),
        pip_value=round_half_up(position_pip_value, 2),
        standard_lot_pip_value=round_half_up(lot_pip_value, 2),
        risk_analysis=risk_analysis,
        display_unit=calc_input.display_unit,
        leverage=calc_input.leverage,
        account_currency=calc_input.account_currency,
        pair=pair,
        rate=rate,
        rate_source=market.source,
    )
