"""
Condition Evaluator module.

Conditions are the building blocks of trading rules. Each one is
evaluated against the close prices up to a bar index, never later:
- price_change: percent move over a short lookback
- rsi: RSI threshold or threshold crossing
- macd: MACD/signal crossings and histogram sign
- volume, time: declared for stored rules, always evaluate to False
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Sequence, Union
import logging

from ..indicators.calculator import macd, rsi

logger = logging.getLogger(__name__)

PRICE_CHANGE_LOOKBACK = 5
DEFAULT_RSI_THRESHOLD = 50.0


class ConditionType(Enum):
    PRICE_CHANGE = "price_change"
    RSI = "rsi"
    MACD = "macd"
    VOLUME = "volume"
    TIME = "time"


class Direction(Enum):
    UP = "up"
    DOWN = "down"
    ANY = "any"


class MACDSignal(Enum):
    BULLISH_CROSS = "bullish_cross"
    BEARISH_CROSS = "bearish_cross"
    HISTOGRAM_POSITIVE = "histogram_positive"
    HISTOGRAM_NEGATIVE = "histogram_negative"


_GREATER = ('>', 'gt')
_LESS = ('<', 'lt')


@dataclass(frozen=True)
class PriceChangeCondition:
    """Percent price move over the last few bars."""
    direction: Direction = Direction.ANY
    min_percent: Optional[float] = None
    operator: Optional[str] = None
    value: Optional[float] = None

    def threshold(self) -> float:
        return self.min_percent or self.value or 0.0

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            'type': ConditionType.PRICE_CHANGE.value,
            'direction': self.direction.value,
            'min_percent': self.min_percent,
            'operator': self.operator,
            'value': self.value,
        })


@dataclass(frozen=True)
class RSICondition:
    """RSI comparison (<, >) or crossing (crosses_above, crosses_below)."""
    operator: str
    value: float = DEFAULT_RSI_THRESHOLD

    def to_dict(self) -> Dict[str, Any]:
        return {'type': ConditionType.RSI.value,
                'operator': self.operator, 'value': self.value}


@dataclass(frozen=True)
class MACDCondition:
    signal: str

    def to_dict(self) -> Dict[str, Any]:
        return {'type': ConditionType.MACD.value, 'condition': self.signal}


@dataclass(frozen=True)
class VolumeCondition:
    vs_average: Optional[str] = None
    multiplier: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact({'type': ConditionType.VOLUME.value,
                         'vs_average': self.vs_average,
                         'multiplier': self.multiplier})


@dataclass(frozen=True)
class TimeCondition:
    params: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {'type': ConditionType.TIME.value, **self.params}


@dataclass(frozen=True)
class UnknownCondition:
    """A stored condition of a type this engine does not evaluate."""
    raw: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.raw)


Condition = Union[PriceChangeCondition, RSICondition, MACDCondition,
                  VolumeCondition, TimeCondition, UnknownCondition]


def _compact(data: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in data.items() if v is not None}


def _optional_float(value) -> Optional[float]:
    return float(value) if value is not None else None


def condition_from_dict(data: Dict[str, Any]) -> Condition:
    """
    Parse a condition from its stored form.

    Args:
        data: Dict with a 'type' key plus type-specific parameters

    Returns:
        Typed condition; unrecognised types become UnknownCondition
    """
    kind = data.get('type')

    if kind == ConditionType.PRICE_CHANGE.value:
        direction = data.get('direction') or Direction.ANY.value
        return PriceChangeCondition(
            direction=Direction(direction) if direction in
            {d.value for d in Direction} else Direction.ANY,
            min_percent=_optional_float(data.get('min_percent')),
            operator=data.get('operator'),
            value=_optional_float(data.get('value')),
        )
    if kind == ConditionType.RSI.value:
        value = data.get('value')
        # Range operators store a [low, high] pair
        numeric = isinstance(value, (int, float)) and not isinstance(value, bool)
        return RSICondition(
            operator=data.get('operator') or '',
            value=float(value) if numeric else DEFAULT_RSI_THRESHOLD,
        )
    if kind == ConditionType.MACD.value:
        return MACDCondition(signal=data.get('operator') or data.get('condition') or '')
    if kind == ConditionType.VOLUME.value:
        return VolumeCondition(vs_average=data.get('vs_average'),
                               multiplier=_optional_float(data.get('multiplier')))
    if kind == ConditionType.TIME.value:
        return TimeCondition({k: v for k, v in data.items() if k != 'type'})

    logger.debug(f"Unknown condition type '{kind}', will evaluate to False")
    return UnknownCondition(dict(data))


def _price_change(condition: PriceChangeCondition, prices: Sequence[float],
                  index: int) -> bool:
    lookback = min(PRICE_CHANGE_LOOKBACK, index)
    if lookback == 0:
        return False

    past = prices[index - lookback]
    if past == 0:
        return False
    change = (prices[index] - past) / past * 100
    threshold = condition.threshold()

    if condition.direction == Direction.UP or condition.operator == 'gt':
        return change >= threshold
    if condition.direction == Direction.DOWN or condition.operator == 'lt':
        return change <= -threshold
    return abs(change) >= threshold


def _rsi(condition: RSICondition, prices: Sequence[float], index: int) -> bool:
    current = rsi(prices)
    op = condition.operator
    value = condition.value

    if op in _LESS:
        return current < value
    if op in _GREATER:
        return current > value
    if op in ('crosses_above', 'crosses_below'):
        if index < 1:
            return False
        previous = rsi(prices[:-1])
        if op == 'crosses_above':
            return previous < value and current >= value
        return previous > value and current <= value
    return False


def _macd(condition: MACDCondition, prices: Sequence[float], index: int) -> bool:
    current = macd(prices)
    signal = condition.signal

    if signal == MACDSignal.HISTOGRAM_POSITIVE.value:
        return current.macd - current.signal > 0
    if signal == MACDSignal.HISTOGRAM_NEGATIVE.value:
        return current.macd - current.signal < 0
    if signal in (MACDSignal.BULLISH_CROSS.value, MACDSignal.BEARISH_CROSS.value):
        if index < 1:
            return False
        previous = macd(prices[:-1])
        if signal == MACDSignal.BULLISH_CROSS.value:
            return previous.macd < previous.signal and current.macd >= current.signal
        return previous.macd > previous.signal and current.macd <= current.signal
    return False


def evaluate_condition(condition: Condition, closes: Sequence[float],
                       index: int) -> bool:
    """
    Evaluate one condition at a bar index.

    Args:
        condition: Typed condition
        closes: Full close-price series, oldest first
        index: Bar index; only closes[:index + 1] are used

    Returns:
        True if the condition holds at the index
    """
    if index < 0 or index >= len(closes):
        return False
    prices = list(closes[:index + 1])

    if isinstance(condition, PriceChangeCondition):
        return _price_change(condition, prices, index)
    if isinstance(condition, RSICondition):
        return _rsi(condition, prices, index)
    if isinstance(condition, MACDCondition):
        return _macd(condition, prices, index)
    return False
