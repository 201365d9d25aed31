"""Calculation data models — inputs, results, scenarios and suggestions.

Request dictionaries use the camelCase keys of the HTTP API; the
``from_dict`` constructors collect every offending field into one
``ValidationError``.
"""

import math
from dataclasses import dataclass
from typing import Mapping, Optional

from forexrisk.errors import ValidationError
from forexrisk.rates.models import Currency, CurrencyPair, parse_currency

MAX_LEVERAGE = 2000.0
DISPLAY_UNITS = ("units", "lots")


def _parse_number(data: Mapping, key: str, errors: dict, default=None) -> Optional[float]:
    """Read a finite number (or numeric string) from *data*; record failures."""
    value = data.get(key)
    if value is None or value == "":
        if default is None:
            errors[key] = "is required"
        return default
    if isinstance(value, bool):
        errors[key] = "must be a number"
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        errors[key] = f"must be a number, got {value!r}"
        return None
    if not math.isfinite(number):
        errors[key] = "must be a finite number"
        return None
    return number


def _check_ranges(
    account_balance: Optional[float],
    risk_percentage: Optional[float],
    stop_loss_pips: Optional[float],
    leverage: Optional[float],
) -> dict[str, str]:
    """Range checks for the numeric inputs; ``None`` values are skipped."""
    errors: dict[str, str] = {}
    if account_balance is not None and account_balance <= 0:
        errors["accountBalance"] = "Account balance must be greater than 0"
    if risk_percentage is not None and not 0 < risk_percentage <= 100:
        errors["riskPercentage"] = "Risk percentage must be greater than 0 and at most 100"
    if stop_loss_pips is not None and stop_loss_pips <= 0:
        errors["stopLossPips"] = "Stop loss must be greater than 0"
    if leverage is not None and not 0 <= leverage <= MAX_LEVERAGE:
        errors["leverage"] = f"Leverage must be between 0 and {MAX_LEVERAGE:.0f}"
    return errors


@dataclass(frozen=True)
class CalculationInput:
    """Validated position-size request.

    ``leverage == 0`` means no leverage (margin is the full notional).
    """

    account_balance: float
    risk_percentage: float
    stop_loss_pips: float
    pair: CurrencyPair
    leverage: float = 0.0
    account_currency: Currency = Currency.USD
    display_unit: str = "units"

    def __post_init__(self) -> None:
        errors = _check_ranges(
            self.account_balance, self.risk_percentage, self.stop_loss_pips, self.leverage
        )
        if self.display_unit not in DISPLAY_UNITS:
            errors["displayUnit"] = "Display unit must be 'units' or 'lots'"
        if errors:
            raise ValidationError(errors)

    @property
    def risk_amount(self) -> float:
        return self.account_balance * self.risk_percentage / 100.0

    @classmethod
    def from_dict(cls, data: Mapping) -> "CalculationInput":
        """Parse an API request body.

        Either ``riskPercentage`` or an absolute ``riskAmount`` (in account
        currency) must be given; the percentage wins when both are present.
        """
        if not isinstance(data, Mapping):
            raise ValidationError.single("body", "request body must be a JSON object")

        errors: dict[str, str] = {}
        balance = _parse_number(data, "accountBalance", errors)
        stop_loss = _parse_number(data, "stopLossPips", errors)
        leverage = _parse_number(data, "leverage", errors, default=0.0)

        risk_pct: Optional[float] = None
        if data.get("riskPercentage") not in (None, ""):
            risk_pct = _parse_number(data, "riskPercentage", errors)
        elif data.get("riskAmount") not in (None, ""):
            risk_amount = _parse_number(data, "riskAmount", errors)
            if risk_amount is not None:
                if risk_amount <= 0:
                    errors["riskAmount"] = "Risk amount must be greater than 0"
                elif balance is not None and balance > 0:
                    if risk_amount > balance:
                        errors["riskAmount"] = "Risk amount cannot exceed the account balance"
                    else:
                        risk_pct = risk_amount / balance * 100.0
        else:
            errors["riskPercentage"] = "riskPercentage or riskAmount is required"

        pair = None
        if data.get("pair") in (None, ""):
            errors["pair"] = "is required"
        else:
            try:
                pair = CurrencyPair.parse(data["pair"])
            except ValidationError as exc:
                errors.update(exc.errors)

        account_currency = Currency.USD
        if data.get("accountCurrency") not in (None, ""):
            try:
                account_currency = parse_currency(data["accountCurrency"], "accountCurrency")
            except ValidationError as exc:
                errors.update(exc.errors)

        display_unit = data.get("displayUnit") or "units"
        if display_unit not in DISPLAY_UNITS:
            errors["displayUnit"] = "Display unit must be 'units' or 'lots'"

        for key, msg in _check_ranges(balance, risk_pct, stop_loss, leverage).items():
            errors.setdefault(key, msg)
        if errors:
            raise ValidationError(errors)

        return cls(
            account_balance=balance,
            risk_percentage=risk_pct,
            stop_loss_pips=stop_loss,
            pair=pair,
            leverage=leverage,
            account_currency=account_currency,
            display_unit=display_unit,
        )


@dataclass(frozen=True)
class RiskAnalysis:
    """Heuristic risk assessment for one calculation."""

    risk_rating: str  # "Low" | "Medium" | "High" | "Very High"
    risk_score: float  # 0–100
    suggestions: list[str]
    max_recommended_leverage: int

    def to_dict(self) -> dict:
        return {
            "riskRating": self.risk_rating,
            "riskScore": self.risk_score,
            "suggestions": list(self.suggestions),
            "maxRecommendedLeverage": self.max_recommended_leverage,
        }


@dataclass(frozen=True)
class CalculationResult:
    """Rounded outputs of one position-size calculation."""

    position_size: float  # whole units, or lots to 2 dp, per display_unit
    position_size_lots: float
    position_size_units: int
    potential_loss: float
    required_margin: float
    pip_value: float
    standard_lot_pip_value: float
    risk_analysis: RiskAnalysis
    display_unit: str
    leverage: float
    account_currency: Currency
    pair: CurrencyPair
    rate: float
    rate_source: str  # "api" or "fallback"

    @property
    def used_fallback_rate(self) -> bool:
        return self.rate_source == "fallback"

    def to_dict(self) -> dict:
        return {
            "positionSize": self.position_size,
            "positionSizeLots": self.position_size_lots,
            "positionSizeUnits": self.position_size_units,
            "potentialLoss": self.potential_loss,
            "requiredMargin": self.required_margin,
            "pipValue": self.pip_value,
            "standardLotPipValue": self.standard_lot_pip_value,
            "riskAnalysis": self.risk_analysis.to_dict(),
            "displayUnit": self.display_unit,
            "leverage": self.leverage,
            "accountCurrency": self.account_currency.value,
            "pair": self.pair.symbol,
            "rate": self.rate,
            "rateSource": self.rate_source,
        }


@dataclass(frozen=True)
class TradingScenario:
    """Inputs the suggestion engine inspects.

    ``risk_amount`` is in account currency, ``position_size`` is the
    notional in account currency, ``stop_loss`` and ``take_profit`` are
    in pips.
    """

    account_balance: float
    account_currency: Currency
    risk_amount: float
    position_size: float
    stop_loss: float
    take_profit: float

    @property
    def risk_percent(self) -> float:
        return self.risk_amount / self.account_balance * 100.0

    @property
    def reward_risk_ratio(self) -> float:
        return self.take_profit / self.stop_loss

    def is_complete(self) -> bool:
        """``True`` when every ratio the rules use is well defined."""
        return (
            self.account_balance > 0
            and self.stop_loss > 0
            and self.take_profit > 0
            and self.risk_amount >= 0
            and self.position_size >= 0
        )

    @classmethod
    def from_dict(cls, data: Mapping) -> "TradingScenario":
        """Parse an API request body; raises ``ValidationError`` on bad fields."""
        if not isinstance(data, Mapping):
            raise ValidationError.single("body", "request body must be a JSON object")
        errors: dict[str, str] = {}
        values = {
            key: _parse_number(data, key, errors)
            for key in ("accountBalance", "riskAmount", "positionSize", "stopLoss", "takeProfit")
        }
        currency = Currency.USD
        if data.get("accountCurrency") not in (None, ""):
            try:
                currency = parse_currency(data["accountCurrency"], "accountCurrency")
            except ValidationError as exc:
                errors.update(exc.errors)
        if errors:
            raise ValidationError(errors)
        return cls(
            account_balance=values["accountBalance"],
            account_currency=currency,
            risk_amount=values["riskAmount"],
            position_size=values["positionSize"],
            stop_loss=values["stopLoss"],
            take_profit=values["takeProfit"],
        )


@dataclass(frozen=True)
class TradingSuggestion:
    """One advisory message."""

    message: str
    severity: str  # "warning" | "info" | "success"

    def to_dict(self) -> dict:
        return {"message": self.message, "severity": self.severity}
