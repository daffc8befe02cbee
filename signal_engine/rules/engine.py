"""
Rule Engine module.

Decides whether a rule fires at a given bar by combining its
conditions with AND / OR.
"""

from typing import List, Sequence
import logging

from ..data.price_bar import PriceBar, closes
from .conditions import evaluate_condition
from .rule import LogicOperator, Rule

logger = logging.getLogger(__name__)

# Bars needed before MACD(26) is defined
MIN_RULE_INDEX = 26


def _evaluate_on_closes(rule: Rule, prices: Sequence[float], index: int) -> bool:
    if index < MIN_RULE_INDEX or not rule.conditions:
        return False
    results = (evaluate_condition(c, prices, index) for c in rule.conditions)
    if rule.logic_operator == LogicOperator.AND:
        return all(results)
    return any(results)


def evaluate_rule(rule: Rule, bars: Sequence[PriceBar], index: int) -> bool:
    """
    Evaluate a rule at a bar index.

    Args:
        rule: Rule to evaluate
        bars: Price history, oldest first
        index: Bar index; bars after it are never looked at

    Returns:
        True if the rule fires. Always False before bar 26 and for a rule
        without conditions.
    """
    return _evaluate_on_closes(rule, closes(bars), index)


def rule_signal_series(rule: Rule, bars: Sequence[PriceBar]) -> List[bool]:
    """Rule result at every bar index."""
    prices = closes(bars)
    signals = [_evaluate_on_closes(rule, prices, i) for i in range(len(prices))]
    logger.debug(f"Rule '{rule.name}' fired on {sum(signals)} of {len(signals)} bars")
    return signals
