"""
Indicator Signal module.

Turns the latest indicator snapshot into a BUY/SELL signal:
- RSI below 30 / above 70 gives an oversold BUY / overbought SELL
- A MACD signal-line cross confirms an agreeing signal or creates one
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, Optional, Sequence
import logging

from ..config import IndicatorConfig
from ..data.price_bar import PriceBar
from .calculator import IndicatorCalculator, IndicatorSet

logger = logging.getLogger(__name__)

MIN_BARS = 15


class SignalType(Enum):
    """Direction of an indicator signal."""
    BUY = "BUY"
    SELL = "SELL"


class SignalStrength(Enum):
    STRONG = "STRONG"
    MODERATE = "MODERATE"
    WEAK = "WEAK"


@dataclass(frozen=True)
class IndicatorSignal:
    """Signal derived from RSI and MACD with price targets."""
    timestamp: Optional[datetime]
    signal_type: SignalType
    strength: SignalStrength
    current_price: float
    target_price: float
    stop_loss: float
    probability_up: float
    probability_down: float
    reasoning: str

    def to_dict(self) -> Dict:
        return {
            'timestamp': self.timestamp.isoformat() if self.timestamp else None,
            'signal_type': self.signal_type.value,
            'strength': self.strength.value,
            'current_price': self.current_price,
            'target_price': self.target_price,
            'stop_loss': self.stop_loss,
            'probability_up': self.probability_up,
            'probability_down': self.probability_down,
            'reasoning': self.reasoning,
        }


def _macd_cross(current: IndicatorSet, previous: Optional[IndicatorSet]) -> int:
    """+1 for a bullish cross, -1 for a bearish cross, else 0."""
    if previous is None:
        return 0
    if previous.macd < previous.macd_signal and current.macd > current.macd_signal:
        return 1
    if previous.macd > previous.macd_signal and current.macd < current.macd_signal:
        return -1
    return 0


def signal_from_indicators(current: IndicatorSet,
                           previous: Optional[IndicatorSet] = None,
                           bar_count: int = MIN_BARS) -> Optional[IndicatorSignal]:
    """
    Derive a signal from two consecutive indicator snapshots.

    Args:
        current: Snapshot at the latest bar
        previous: Snapshot at the bar before (for MACD crosses)
        bar_count: Number of bars behind the current snapshot

    Returns:
        IndicatorSignal, or None when no condition is met
    """
    if current.close is None:
        return None

    signal_type = None
    strength = SignalStrength.WEAK
    reasons = []
    prob_up = 50.0
    prob_down = 50.0

    rsi_value = current.rsi_14
    if bar_count >= MIN_BARS and 0 < rsi_value < 100:
        if rsi_value < 30:
            signal_type = SignalType.BUY
            strength = SignalStrength.STRONG if rsi_value < 20 else SignalStrength.MODERATE
            reasons.append(f"RSI oversold at {rsi_value:.1f}")
            prob_up = min(85.0, 50 + (30 - rsi_value) * 1.5)
            prob_down = 100 - prob_up
        elif rsi_value > 70:
            signal_type = SignalType.SELL
            strength = SignalStrength.STRONG if rsi_value > 80 else SignalStrength.MODERATE
            reasons.append(f"RSI overbought at {rsi_value:.1f}")
            prob_down = min(85.0, 50 + (rsi_value - 70) * 1.5)
            prob_up = 100 - prob_down

    cross = _macd_cross(current, previous)
    if cross == 1:
        if signal_type == SignalType.BUY:
            strength = SignalStrength.STRONG
            reasons.append("MACD bullish crossover")
            prob_up = min(90.0, prob_up + 10)
            prob_down = 100 - prob_up
        elif signal_type is None:
            signal_type = SignalType.BUY
            strength = SignalStrength.MODERATE
            reasons = ["MACD bullish crossover"]
            prob_up, prob_down = 65.0, 35.0
    elif cross == -1:
        if signal_type == SignalType.SELL:
            strength = SignalStrength.STRONG
            reasons.append("MACD bearish crossover")
            prob_down = min(90.0, prob_down + 10)
            prob_up = 100 - prob_down
        elif signal_type is None:
            signal_type = SignalType.SELL
            strength = SignalStrength.MODERATE
            reasons = ["MACD bearish crossover"]
            prob_down, prob_up = 65.0, 35.0

    if signal_type is None:
        return None

    close = current.close
    is_buy = signal_type == SignalType.BUY
    return IndicatorSignal(
        timestamp=current.timestamp,
        signal_type=signal_type,
        strength=strength,
        current_price=close,
        target_price=close * (1.01 if is_buy else 0.99),
        stop_loss=close * (0.98 if is_buy else 1.02),
        probability_up=prob_up,
        probability_down=prob_down,
        reasoning="; ".join(reasons),
    )


def generate_indicator_signal(bars: Sequence[PriceBar],
                              config: IndicatorConfig = None) -> Optional[IndicatorSignal]:
    """Indicator signal at the last bar of a price history."""
    if not bars:
        return None
    calculator = IndicatorCalculator(config)
    current = calculator.calculate(bars)
    previous = calculator.calculate(bars[:-1]) if len(bars) > 1 else None
    signal = signal_from_indicators(current, previous, bar_count=len(bars))
    if signal is not None:
        logger.info(f"{signal.signal_type.value} signal ({signal.strength.value}): "
                    f"{signal.reasoning}")
    return signal
