"""Risk scoring — pure math, no I/O.

Combines four 0–100 sub-scores into a weighted overall score::

    risk_pct_score  = min(100, risk_pct / 3 × 100)         weight 0.4
    stop_loss_score = min(100, 10 / stop_loss_pips × 100)  weight 0.3
    leverage_score  = min(100, leverage / 20)              weight 0.2
    balance_score   = 100 − log10(balance) × 20, in [0, 100]  weight 0.1

Ratings: < 25 Low, < 50 Medium, < 75 High, otherwise Very High.
"""

import logging
import math

from forexrisk.risk.models import MAX_LEVERAGE, RiskAnalysis

logger = logging.getLogger("forexrisk.risk")

RISK_PCT_WEIGHT = 0.4
STOP_LOSS_WEIGHT = 0.3
LEVERAGE_WEIGHT = 0.2
BALANCE_WEIGHT = 0.1

_RATING_THRESHOLDS = ((25.0, "Low"), (50.0, "Medium"), (75.0, "High"))


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def risk_rating(score: float) -> str:
    """Map a 0–100 score to its bucket (lower bound inclusive)."""
    for upper, label in _RATING_THRESHOLDS:
        if score < upper:
            return label
    return "Very High"


def risk_score(
    account_balance: float,
    risk_percentage: float,
    stop_loss_pips: float,
    leverage: float,
) -> float:
    """Weighted overall risk score, clamped to [0, 100]."""
    risk_pct_score = min(100.0, risk_percentage / 3.0 * 100.0)
    stop_loss_score = min(100.0, 10.0 / stop_loss_pips * 100.0)
    leverage_score = min(100.0, leverage / 20.0)
    balance_score = _clamp(100.0 - math.log10(account_balance) * 20.0, 0.0, 100.0)

    score = (
        risk_pct_score * RISK_PCT_WEIGHT
        + stop_loss_score * STOP_LOSS_WEIGHT
        + leverage_score * LEVERAGE_WEIGHT
        + balance_score * BALANCE_WEIGHT
    )
    logger.debug(
        "Risk factors: risk_pct=%.1f stop_loss=%.1f leverage=%.1f balance=%.1f → %.2f",
        risk_pct_score, stop_loss_score, leverage_score, balance_score, score,
    )
    return _clamp(score, 0.0, 100.0)


def max_recommended_leverage(
    account_balance: float,
    risk_percentage: float,
    stop_loss_pips: float,
) -> int:
    """Reduce the 2000:1 cap by risk %, stop-loss width and account size.

    Lower risk, wider stops and larger accounts allow more leverage.
    The result is clamped to [1, 2000].
    """
    risk_multiplier = max(0.1, 1.0 - risk_percentage / 5.0)
    stop_loss_multiplier = min(1.0, stop_loss_pips / 20.0)
    balance_multiplier = min(1.0, math.log10(account_balance) / 4.0)

    leverage = math.floor(
        MAX_LEVERAGE * risk_multiplier * stop_loss_multiplier * balance_multiplier
    )
    return int(_clamp(leverage, 1, MAX_LEVERAGE))


def analyze_risk(
    account_balance: float,
    risk_percentage: float,
    stop_loss_pips: float,
    leverage: float,
    volatility: float = 0.001,
) -> RiskAnalysis:
    """Score the trade parameters and produce textual suggestions.

    *volatility* is accepted for callers that have it; the current score
    does not weight it.
    """
    score = risk_score(account_balance, risk_percentage, stop_loss_pips, leverage)
    max_leverage = max_recommended_leverage(account_balance, risk_percentage, stop_loss_pips)

    suggestions: list[str] = []
    if risk_percentage > 2:
        suggestions.append(
            "Consider reducing risk percentage to 2% or less of account balance"
        )
    if leverage > max_leverage:
        suggestions.append(
            f"Consider reducing leverage to {max_leverage}:1 or less "
            "based on your current risk parameters"
        )
    if stop_loss_pips < 10:
        suggestions.append("Stop loss is very tight. Consider widening it to at least 10 pips")
    if score > 75:
        suggestions.append(
            "Overall risk is very high. Consider adjusting multiple parameters to reduce risk"
        )

    return RiskAnalysis(
        risk_rating=risk_rating(score),
        risk_score=score,
        suggestions=suggestions,
        max_recommended_leverage=max_leverage,
    )
