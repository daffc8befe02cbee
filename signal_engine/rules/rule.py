"""
Trading rule definitions.

A rule combines conditions with AND/OR and carries the trade action and
exit parameters used by the backtest simulator and the order bridge.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from ..errors import InvalidRuleError
from .conditions import Condition, condition_from_dict


class RuleType(Enum):
    BUY = "BUY"
    SELL = "SELL"
    BOTH = "BOTH"


class LogicOperator(Enum):
    AND = "AND"
    OR = "OR"


class Instrument(Enum):
    BULL = "BULL"
    BEAR = "BEAR"
    PRIMARY = "primary"
    COUNTERWEIGHT = "counterweight"


class AmountType(Enum):
    SEK = "SEK"
    UNITS = "units"
    PERCENT = "percent"


@dataclass(frozen=True)
class ActionConfig:
    """What to trade when a rule fires."""
    instrument: Instrument = Instrument.BULL
    amount_type: AmountType = AmountType.SEK
    amount: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'instrument': self.instrument.value,
            'amount_type': self.amount_type.value,
            'amount': self.amount,
        }


@dataclass(frozen=True)
class Rule:
    """
    A user-defined trading rule.

    stop_loss_percent / take_profit_percent are None when the user left
    them unset; the simulator then applies its defaults.
    """
    name: str
    rule_type: RuleType
    conditions: Tuple[Condition, ...]
    logic_operator: LogicOperator = LogicOperator.AND
    action_config: ActionConfig = field(default_factory=ActionConfig)
    stop_loss_percent: Optional[float] = None
    take_profit_percent: Optional[float] = None
    trailing_stop: bool = False
    is_active: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'rule_type': self.rule_type.value,
            'conditions': [c.to_dict() for c in self.conditions],
            'logic_operator': self.logic_operator.value,
            'action_config': self.action_config.to_dict(),
            'stop_loss_percent': self.stop_loss_percent,
            'take_profit_percent': self.take_profit_percent,
            'trailing_stop': self.trailing_stop,
            'is_active': self.is_active,
        }


def _enum(enum_cls, value, label: str):
    try:
        return enum_cls(value)
    except ValueError:
        raise InvalidRuleError(f"Invalid {label}: {value!r}") from None


def rule_from_dict(data: Dict[str, Any]) -> Rule:
    """
    Build a Rule from its stored form.

    Args:
        data: Rule record (name, rule_type, conditions, logic_operator,
              action_config, stop_loss_percent, take_profit_percent)

    Returns:
        Rule

    Raises:
        InvalidRuleError: if the rule type, logic operator or action
            config cannot be parsed
    """
    if not isinstance(data, dict):
        raise InvalidRuleError("Rule definition must be a mapping")

    conditions = data.get('conditions') or []
    if not isinstance(conditions, list):
        raise InvalidRuleError("Rule conditions must be a list")

    action = data.get('action_config') or {}
    try:
        amount = float(action.get('amount') or 0.0)
    except (TypeError, ValueError):
        raise InvalidRuleError(f"Invalid action amount: {action.get('amount')!r}") from None

    stop_loss = data.get('stop_loss_percent')
    take_profit = data.get('take_profit_percent')

    return Rule(
        name=str(data.get('name') or 'Unnamed rule'),
        rule_type=_enum(RuleType, data.get('rule_type', 'BUY'), 'rule type'),
        conditions=tuple(condition_from_dict(c) for c in conditions),
        logic_operator=_enum(LogicOperator, data.get('logic_operator') or 'AND',
                             'logic operator'),
        action_config=ActionConfig(
            instrument=_enum(Instrument, action.get('instrument', 'BULL'), 'instrument'),
            amount_type=_enum(AmountType, action.get('amount_type', 'SEK'), 'amount type'),
            amount=amount,
        ),
        stop_loss_percent=float(stop_loss) if stop_loss is not None else None,
        take_profit_percent=float(take_profit) if take_profit is not None else None,
        trailing_stop=bool(data.get('trailing_stop', False)),
        is_active=bool(data.get('is_active', True)),
    )
