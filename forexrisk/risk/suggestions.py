"""Trading suggestion engine — an ordered rule table, pure logic.

Every rule whose predicate matches fires.  Results are sorted warnings
first, then info, then success; rules of equal severity keep table order.
"""

import logging
from dataclasses import dataclass
from typing import Callable

from forexrisk.rates.models import Currency
from forexrisk.risk.models import TradingScenario, TradingSuggestion

logger = logging.getLogger("forexrisk.risk")

SEVERITY_ORDER = {"warning": 0, "info": 1, "success": 2}

_CURRENCY_SYMBOLS = {
    Currency.USD: "$",
    Currency.EUR: "€",
    Currency.GBP: "£",
    Currency.JPY: "¥",
}


def format_money(value: float, currency: Currency) -> str:
    symbol = _CURRENCY_SYMBOLS.get(currency)
    if symbol:
        return f"{symbol}{value:,.2f}"
    return f"{currency.value} {value:,.2f}"


def format_percent(value: float) -> str:
    return f"{value:.1f}%"


@dataclass(frozen=True)
class SuggestionRule:
    """One predicate/message pair."""

    name: str
    severity: str
    condition: Callable[[TradingScenario], bool]
    message: Callable[[TradingScenario], str]


RULES: tuple[SuggestionRule, ...] = (
    # Risk management
    SuggestionRule(
        name="high_risk",
        severity="warning",
        condition=lambda s: s.risk_percent > 3,
        message=lambda s: (
            f"High Risk Alert: Your current risk of {format_money(s.risk_amount, s.account_currency)} "
            f"represents {format_percent(s.risk_percent)} of your account. "
            "Consider reducing position size to stay within 1-3% risk per trade."
        ),
    ),
    SuggestionRule(
        name="safe_risk",
        severity="success",
        condition=lambda s: s.risk_percent <= 2,
        message=lambda s: (
            f"Good Risk Management: Your risk of {format_percent(s.risk_percent)} "
            "is within safe limits."
        ),
    ),
    # Position size
    SuggestionRule(
        name="oversized_position",
        severity="warning",
        condition=lambda s: s.position_size > s.account_balance * 3,
        message=lambda s: (
            f"High Leverage Warning: Your position size of "
            f"{format_money(s.position_size, s.account_currency)} is more than 3x your "
            "account balance. Consider reducing leverage to manage risk."
        ),
    ),
    SuggestionRule(
        name="tight_stop",
        severity="info",
        condition=lambda s: s.stop_loss < 10,
        message=lambda s: (
            f"Tight Stop Loss: Your stop loss of {s.stop_loss:g} pips is quite tight. "
            "Consider widening it to account for market volatility."
        ),
    ),
    # Account balance
    SuggestionRule(
        name="small_account",
        severity="info",
        condition=lambda s: s.account_balance < 1000,
        message=lambda s: (
            f"Small Account Strategy: With an account balance of "
            f"{format_money(s.account_balance, s.account_currency)}, focus on consistent "
            "small gains and strict risk management."
        ),
    ),
    SuggestionRule(
        name="capital_preservation",
        severity="info",
        condition=lambda s: s.account_balance >= 10000,
        message=lambda s: (
            f"Capital Preservation: With a substantial account of "
            f"{format_money(s.account_balance, s.account_currency)}, consider splitting "
            "risk across multiple smaller positions."
        ),
    ),
    # Risk-reward
    SuggestionRule(
        name="low_reward_risk",
        severity="warning",
        condition=lambda s: s.reward_risk_ratio < 1.5,
        message=lambda s: (
            f"Low Risk-Reward Ratio: Your RR ratio of {s.reward_risk_ratio:.1f} is below "
            "the recommended 1:2. Consider adjusting your take profit level."
        ),
    ),
    SuggestionRule(
        name="good_reward_risk",
        severity="success",
        condition=lambda s: s.reward_risk_ratio >= 2,
        message=lambda s: (
            f"Excellent Risk-Reward: Your RR ratio of {s.reward_risk_ratio:.1f} "
            "provides good profit potential."
        ),
    ),
)


def suggest(
    scenario: TradingScenario,
    rules: tuple[SuggestionRule, ...] = RULES,
) -> list[TradingSuggestion]:
    """Evaluate *rules* against *scenario*.

    Returns an empty list for an incomplete scenario (non-positive
    balance, stop loss or take profit) instead of raising.
    """
    if not scenario.is_complete():
        logger.debug("Skipping suggestions for incomplete scenario: %s", scenario)
        return []

    matched = [
        TradingSuggestion(message=rule.message(scenario), severity=rule.severity)
        for rule in rules
        if rule.condition(scenario)
    ]
    return sorted(matched, key=lambda s: SEVERITY_ORDER[s.severity])
