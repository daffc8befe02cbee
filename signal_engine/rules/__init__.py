"""
Rules module for the Signal Engine.

Provides:
- Typed conditions and their evaluator
- Rule / ActionConfig definitions with dict round-tripping
- Rule evaluation at a bar index
"""

from .conditions import (
    ConditionType,
    Direction,
    MACDSignal,
    PriceChangeCondition,
    RSICondition,
    MACDCondition,
    VolumeCondition,
    TimeCondition,
    UnknownCondition,
    Condition,
    condition_from_dict,
    evaluate_condition,
)
from .rule import (
    RuleType,
    LogicOperator,
    Instrument,
    AmountType,
    ActionConfig,
    Rule,
    rule_from_dict,
)
from .engine import MIN_RULE_INDEX, evaluate_rule, rule_signal_series

__all__ = [
    'ConditionType',
    'Direction',
    'MACDSignal',
    'PriceChangeCondition',
    'RSICondition',
    'MACDCondition',
    'VolumeCondition',
    'TimeCondition',
    'UnknownCondition',
    'Condition',
    'condition_from_dict',
    'evaluate_condition',
    'RuleType',
    'LogicOperator',
    'Instrument',
    'AmountType',
    'ActionConfig',
    'Rule',
    'rule_from_dict',
    'MIN_RULE_INDEX',
    'evaluate_rule',
    'rule_signal_series',
]
