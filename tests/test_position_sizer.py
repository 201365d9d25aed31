"""Tests for position sizing, pip value and margin calculation."""

import pytest

from forexrisk.rates.cross_rate import build_exchange_rate
from forexrisk.rates.models import Currency, CurrencyPair
from forexrisk.risk.models import CalculationInput
from forexrisk.risk.position_sizer import (
    calculate_position,
    pip_size,
    pip_value,
    required_margin,
    round_half_up,
)

EURUSD = CurrencyPair(Currency.EUR, Currency.USD)
USDJPY = CurrencyPair(Currency.USD, Currency.JPY)
EURGBP = CurrencyPair(Currency.EUR, Currency.GBP)
GBPJPY = CurrencyPair(Currency.GBP, Currency.JPY)


def _input(**overrides) -> CalculationInput:
    defaults = dict(
        account_balance=10_000.0,
        risk_percentage=2.0,
        stop_loss_pips=20.0,
        pair=EURUSD,
        leverage=100.0,
    )
    defaults.update(overrides)
    return CalculationInput(**defaults)


# ── Pip value ────────────────────────────────────────────────────────────


class TestPipValue:
    def test_pip_size(self):
        assert pip_size(Currency.JPY) == 0.01
        assert pip_size(Currency.USD) == 0.0001
        assert pip_size(Currency.GBP) == 0.0001

    def test_quote_usd_ignores_rate(self):
        """EUR/USD: 100,000 × 0.0001 = $10 regardless of rate."""
        assert pip_value(1.0, 1.0850, EURUSD) == pytest.approx(10.0)
        assert pip_value(1.0, 1.3000, EURUSD) == pytest.approx(10.0)

    def test_base_usd_divides_by_rate(self):
        """USD/JPY: 100,000 × 0.01 / 149.50 ≈ 6.689."""
        assert pip_value(1.0, 149.50, USDJPY) == pytest.approx(6.6889, abs=1e-4)

    def test_cross_multiplies_by_rate(self):
        """EUR/GBP: 100,000 × 0.0001 × 0.8580 = 8.58."""
        assert pip_value(1.0, 0.8580, EURGBP) == pytest.approx(8.58)

    def test_jpy_cross(self):
        """GBP/JPY uses the JPY pip size and the cross formula."""
        assert pip_value(1.0, 187.85, GBPJPY) == pytest.approx(100_000 * 0.01 * 187.85)

    def test_scales_with_lots(self):
        assert pip_value(0.5, 1.0850, EURUSD) == pytest.approx(5.0)


class TestMargin:
    def test_leveraged(self):
        assert required_margin(100_000, 1.0850, 100) == pytest.approx(1085.0)

    def test_no_leverage_uses_full_notional(self):
        assert required_margin(100_000, 1.0850, 0) == pytest.approx(108_500.0)


class TestRounding:
    def test_half_up(self):
        assert round_half_up(2.675 + 1e-12, 2) == 2.68
        assert round_half_up(0.125, 2) == 0.13
        assert round_half_up(24916.5, 0) == 24917.0


# ── Full calculation ─────────────────────────────────────────────────────


class TestCalculatePosition:
    def test_eurusd_example(self):
        """$10,000, 2 %, 20 pips, EUR/USD @ 1.0850, 100:1 → 1 lot, $1,085 margin."""
        result = calculate_position(_input(), build_exchange_rate(1.0850, "api"))

        assert result.potential_loss == 200.0
        assert result.standard_lot_pip_value == 10.0
        assert result.position_size_lots == 1.0
        assert result.position_size_units == 100_000
        assert result.position_size == 100_000
        assert result.required_margin == 1085.0
        assert result.pip_value == 10.0
        assert result.rate_source == "api"
        assert result.used_fallback_rate is False

    def test_usdjpy_example(self):
        """$5,000, 1 %, 30 pips, USD/JPY @ 149.50 → ≈ 0.249 lots."""
        calc = _input(
            account_balance=5_000.0,
            risk_percentage=1.0,
            stop_loss_pips=30.0,
            pair=USDJPY,
            display_unit="lots",
        )
        result = calculate_position(calc, build_exchange_rate(149.50, "api"))

        assert result.potential_loss == 50.0
        assert result.standard_lot_pip_value == pytest.approx(6.69)
        assert result.position_size_units == 24_917
        assert result.position_size_lots == 0.25
        assert result.position_size == 0.25

    def test_display_units_vs_lots(self):
        market = build_exchange_rate(1.0850, "api")
        units = calculate_position(_input(risk_percentage=1.5), market)
        lots = calculate_position(_input(risk_percentage=1.5, display_unit="lots"), market)
        assert units.position_size == 75_000
        assert lots.position_size == 0.75

    def test_sub_micro_lot_is_flagged(self):
        """$1 risk over 50 pips is 0.002 lots: 0.00 in lots, 200 in units."""
        calc = _input(
            account_balance=100.0, risk_percentage=1.0, stop_loss_pips=50.0,
            display_unit="lots",
        )
        result = calculate_position(calc, build_exchange_rate(1.0850, "api"))
        assert result.position_size == 0.0
        assert result.position_size_units == 200
        assert any(
            "below the 0.01 lot minimum" in s for s in result.risk_analysis.suggestions
        )

    def test_micro_lot_and_above_not_flagged(self):
        result = calculate_position(_input(), build_exchange_rate(1.0850, "api"))
        assert not any("lot minimum" in s for s in result.risk_analysis.suggestions)

    def test_no_leverage_margin_is_notional(self):
        calc = _input(leverage=0.0)
        result = calculate_position(calc, build_exchange_rate(1.0850, "api"))
        assert result.required_margin == pytest.approx(
            result.position_size_units * 1.0850, abs=0.01
        )

    def test_position_pip_value_equals_risk_per_pip(self):
        """Losing stop_loss pips at the position's pip value loses the risk amount."""
        calc = _input(pair=EURGBP, stop_loss_pips=35.0, risk_percentage=1.7)
        result = calculate_position(calc, build_exchange_rate(0.8580, "api"))
        assert result.pip_value == pytest.approx(calc.risk_amount / 35.0, abs=0.01)

    @pytest.mark.parametrize("balance,risk,stop,leverage", [
        (100.0, 0.5, 5.0, 0.0),
        (2_500.0, 3.0, 15.0, 50.0),
        (1_000_000.0, 100.0, 500.0, 2000.0),
    ])
    def test_risk_amount_and_positive_size(self, balance, risk, stop, leverage):
        calc = _input(
            account_balance=balance, risk_percentage=risk,
            stop_loss_pips=stop, leverage=leverage, pair=USDJPY,
        )
        result = calculate_position(calc, build_exchange_rate(149.50, "api"))
        assert result.potential_loss == pytest.approx(balance * risk / 100, abs=0.01)
        assert result.position_size > 0
        assert 0 <= result.risk_analysis.risk_score <= 100

    def test_fallback_source_carried(self):
        result = calculate_position(_input(), build_exchange_rate(1.0870, "fallback"))
        assert result.used_fallback_rate is True
        assert result.to_dict()["rateSource"] == "fallback"

    def test_to_dict_keys(self):
        data = calculate_position(_input(), build_exchange_rate(1.0850, "api")).to_dict()
        assert data["accountCurrency"] == "USD"
        assert data["pair"] == "EUR/USD"
        assert data["riskAnalysis"]["riskRating"] in ("Low", "Medium", "High", "Very High")
        assert {"positionSize", "positionSizeLots", "potentialLoss", "requiredMargin",
                "pipValue", "displayUnit", "leverage"} <= set(data)
