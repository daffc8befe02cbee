"""
Reversal and chart-pattern analysis tools.

- Reversal Meter: probability of a turn from RSI extremes, Bollinger
  position and momentum divergence
- Micro-Pattern Scanner: double bottoms/tops, breakouts and dojis in the
  most recent bars
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import List, Optional, Sequence
import logging

from ..config import ToolSettings
from ..data.price_bar import PriceBar, closes
from ..indicators.calculator import bollinger_position, rsi
from .base import ToolResult, ToolSignal

logger = logging.getLogger(__name__)

REVERSAL_METER = "Reversal Meter"
MICRO_PATTERN = "Micro-Pattern"

REVERSAL_MIN_BARS = 20
PATTERN_MIN_BARS = 20
PATTERN_WINDOW = 30


class Direction(Enum):
    UP = "UP"
    DOWN = "DOWN"
    NEUTRAL = "NEUTRAL"


def _momentum(bars: Sequence[PriceBar]) -> float:
    """Relative close change from the first to the last bar."""
    first = bars[0].close
    if first == 0:
        return 0.0
    return (bars[-1].close - first) / first


def detect_divergence(bars: Sequence[PriceBar]) -> bool:
    """
    Price/momentum divergence between the last 5 bars and the 5 before.

    Bearish: higher high with less than half the previous momentum.
    Bullish: lower low with more than half the previous momentum.
    """
    if len(bars) < 10:
        return False
    recent = bars[-5:]
    previous = bars[-10:-5]
    recent_momentum = _momentum(recent)
    previous_momentum = _momentum(previous)

    recent_high = max(b.high for b in recent)
    previous_high = max(b.high for b in previous)
    if recent_high > previous_high and recent_momentum < previous_momentum * 0.5:
        return True

    recent_low = min(b.low for b in recent)
    previous_low = min(b.low for b in previous)
    return recent_low < previous_low and recent_momentum > previous_momentum * 0.5


def reversal_meter(bars: Sequence[PriceBar], current_price: Optional[float],
                   settings: ToolSettings,
                   now: Optional[datetime] = None) -> Optional[ToolResult]:
    """
    Estimate the probability of a near-term trend reversal.

    Args:
        bars: Price history, oldest first (at least 20 bars)
        current_price: Unused; the latest close is the reference
        settings: Tool settings
        now: Unused

    Returns:
        ToolResult scoring +/-15 toward the expected reversal, or HOLD
        when the probability is below 25%
    """
    if not settings.reversal_meter_enabled or len(bars) < REVERSAL_MIN_BARS:
        return None

    prices = closes(bars)
    rsi_value = rsi(prices, 14)
    bb_position = bollinger_position(prices, 20)
    divergence = detect_divergence(bars)

    probability = 0.0
    direction = Direction.NEUTRAL
    if rsi_value > 80:
        probability = (rsi_value - 80) * 4
        direction = Direction.DOWN
    elif rsi_value < 20:
        probability = (20 - rsi_value) * 4
        direction = Direction.UP

    if bb_position > 0.95:
        probability += 15
        if direction == Direction.NEUTRAL:
            direction = Direction.DOWN
    elif bb_position < 0.05:
        probability += 15
        if direction == Direction.NEUTRAL:
            direction = Direction.UP

    if divergence:
        probability += 10
    probability = min(probability, 95.0)

    if probability < 25 or direction == Direction.NEUTRAL:
        return ToolResult(
            name=REVERSAL_METER,
            score=0.0,
            confidence=40.0,
            signal=ToolSignal.HOLD,
            reasoning=f"Low reversal probability ({probability:.0f}%)",
        )

    up = direction == Direction.UP
    return ToolResult(
        name=REVERSAL_METER,
        score=15.0 if up else -15.0,
        confidence=probability,
        signal=ToolSignal.BUY if up else ToolSignal.SELL,
        reasoning=(f"{probability:.0f}% probability of a reversal "
                   f"{'upward' if up else 'downward'} (RSI {rsi_value:.1f})"),
    )


class PatternType(Enum):
    DOUBLE_BOTTOM = "Double bottom"
    DOUBLE_TOP = "Double top"
    BREAKOUT = "Breakout"
    BREAKDOWN = "Breakdown"
    DOJI = "Doji (indecision)"


@dataclass(frozen=True)
class DetectedPattern:
    pattern_type: PatternType
    confidence: float
    direction: Direction


def _double_bottom(bars: Sequence[PriceBar]) -> Optional[DetectedPattern]:
    if len(bars) < 10:
        return None
    lows = [b.low for b in bars]
    floor = min(lows)
    indices = [i for i, low in enumerate(lows) if low < floor * 1.02]
    if len(indices) >= 2 and indices[-1] - indices[0] >= 3:
        if bars[-1].close > floor * 1.01:
            return DetectedPattern(PatternType.DOUBLE_BOTTOM, 65.0, Direction.UP)
    return None


def _double_top(bars: Sequence[PriceBar]) -> Optional[DetectedPattern]:
    if len(bars) < 10:
        return None
    highs = [b.high for b in bars]
    ceiling = max(highs)
    indices = [i for i, high in enumerate(highs) if high > ceiling * 0.98]
    if len(indices) >= 2 and indices[-1] - indices[0] >= 3:
        if bars[-1].close < ceiling * 0.99:
            return DetectedPattern(PatternType.DOUBLE_TOP, 65.0, Direction.DOWN)
    return None


def _breakout(bars: Sequence[PriceBar]) -> Optional[DetectedPattern]:
    if len(bars) < 20:
        return None
    recent = bars[-5:]
    older = bars[-20:-5]

    if max(b.high for b in recent) > max(b.high for b in older) * 1.005:
        return DetectedPattern(PatternType.BREAKOUT, 60.0, Direction.UP)
    if min(b.low for b in recent) < min(b.low for b in older) * 0.995:
        return DetectedPattern(PatternType.BREAKDOWN, 60.0, Direction.DOWN)
    return None


def _doji(bars: Sequence[PriceBar]) -> Optional[DetectedPattern]:
    if not bars:
        return None
    latest = bars[-1]
    body = abs(latest.close - latest.open)
    total_range = latest.high - latest.low
    if total_range > 0 and body / total_range < 0.1:
        return DetectedPattern(PatternType.DOJI, 55.0, Direction.NEUTRAL)
    return None


def detect_micro_patterns(bars: Sequence[PriceBar]) -> List[DetectedPattern]:
    """All patterns present in the given window, in detection order."""
    detectors = (_double_bottom, _double_top, _breakout, _doji)
    return [p for p in (detect(bars) for detect in detectors) if p is not None]


def micro_pattern_scanner(bars: Sequence[PriceBar], current_price: Optional[float],
                          settings: ToolSettings,
                          now: Optional[datetime] = None) -> Optional[ToolResult]:
    """Report the strongest micro pattern in the last 30 bars."""
    if not settings.micro_pattern_enabled or len(bars) < PATTERN_MIN_BARS:
        return None

    patterns = detect_micro_patterns(bars[-PATTERN_WINDOW:])
    if not patterns:
        return ToolResult(
            name=MICRO_PATTERN,
            score=0.0,
            confidence=40.0,
            signal=ToolSignal.HOLD,
            reasoning="No micro patterns detected",
        )

    strongest = patterns[0]
    for pattern in patterns[1:]:
        if pattern.confidence > strongest.confidence:
            strongest = pattern

    if strongest.direction == Direction.UP:
        score, signal = 12.0, ToolSignal.BUY
    elif strongest.direction == Direction.DOWN:
        score, signal = -12.0, ToolSignal.SELL
    else:
        score, signal = 0.0, ToolSignal.HOLD

    return ToolResult(
        name=MICRO_PATTERN,
        score=score,
        confidence=strongest.confidence,
        signal=signal,
        reasoning=(f"{strongest.pattern_type.value} detected "
                   f"({strongest.confidence:.0f}% confidence)"),
    )
