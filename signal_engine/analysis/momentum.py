"""
Momentum-based analysis tools.

- Momentum Pulse: short-horizon acceleration of the current price
- Frequency Analyzer: which bar interval momentum trading works best on
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional, Sequence
import logging
import math

from ..config import ToolSettings
from ..data.price_bar import PriceBar
from .base import ToolResult, ToolSignal, bars_since, clamp, resolve_now, trailing_window

logger = logging.getLogger(__name__)

MOMENTUM_PULSE = "Momentum Pulse"
FREQUENCY_ANALYZER = "Frequency Analyzer"

MAX_PULSE = 25.0
MIN_PULSE = 3.0

FREQUENCY_MIN_BARS = 50
FREQUENCY_INTERVALS = (
    (60, "1 min"),
    (300, "5 min"),
    (900, "15 min"),
    (3600, "1 hour"),
    (14400, "4 hours"),
    (86400, "1 day"),
)


def _price_change(bars: Sequence[PriceBar], current_price: float,
                  now: datetime, seconds: int) -> float:
    """Percent change of current_price vs the oldest bar in the window."""
    recent = bars_since(bars, now - timedelta(seconds=seconds))
    if len(recent) < 2 or recent[0].close == 0:
        return 0.0
    oldest = recent[0].close
    return (current_price - oldest) / oldest * 100


def momentum_pulse(bars: Sequence[PriceBar], current_price: Optional[float],
                   settings: ToolSettings,
                   now: Optional[datetime] = None) -> Optional[ToolResult]:
    """
    Detect a short-term momentum burst.

    Compares the 1-minute move with the average 1-minute move over the
    last 5 minutes (and 5-minute vs 15-minute) to measure acceleration.

    Args:
        bars: Price history, oldest first
        current_price: Latest traded price
        settings: Tool settings (momentum_sensitivity scales the pulse)
        now: Evaluation time, defaults to the latest bar

    Returns:
        ToolResult, or None if disabled or without price data
    """
    if not settings.momentum_pulse_enabled or not bars or not current_price:
        return None
    now = resolve_now(bars, now)

    change_1m = _price_change(bars, current_price, now, 60)
    change_5m = _price_change(bars, current_price, now, 300)
    change_15m = _price_change(bars, current_price, now, 900)
    change_1h = _price_change(bars, current_price, now, 3600)

    short_term = change_1m - change_5m / 5
    medium_term = change_5m - change_15m / 3
    pulse = abs(short_term * 50 + medium_term * 30) * settings.momentum_sensitivity

    if pulse < MIN_PULSE:
        return ToolResult(
            name=MOMENTUM_PULSE,
            score=0.0,
            confidence=30.0,
            signal=ToolSignal.HOLD,
            reasoning=f"No significant pulse (1h change {change_1h:+.2f}%)",
        )

    bullish = short_term > 0
    strength = min(pulse, MAX_PULSE)
    return ToolResult(
        name=MOMENTUM_PULSE,
        score=strength if bullish else -strength,
        confidence=min(pulse * 3, 95.0),
        signal=ToolSignal.BUY if bullish else ToolSignal.SELL,
        reasoning=(f"{'Upward' if bullish else 'Downward'} pulse {pulse:.1f} "
                   f"(1m {change_1m:+.2f}%, 5m {change_5m:+.2f}%)"),
    )


@dataclass(frozen=True)
class IntervalScore:
    seconds: int
    name: str
    score: int
    win_rate: float
    return_percent: float
    noise_ratio: float


def _group_by_interval(bars: Sequence[PriceBar], seconds: int) -> List[List[PriceBar]]:
    """Split bars into consecutive groups spanning at most `seconds` each."""
    span = timedelta(seconds=seconds)
    groups: List[List[PriceBar]] = []
    current: List[PriceBar] = []
    group_start = bars[0].timestamp

    for bar in bars:
        if bar.timestamp - group_start > span:
            if current:
                groups.append(current)
            current = [bar]
            group_start = bar.timestamp
        else:
            current.append(bar)
    if current:
        groups.append(current)
    return groups


def _score_interval(bars: Sequence[PriceBar], seconds: int, name: str) -> IntervalScore:
    """Simulate momentum-continuation trades on one interval."""
    if len(bars) < 10:
        return IntervalScore(seconds, name, 0, 0.0, 0.0, 1.0)

    groups = _group_by_interval(bars, seconds)
    if len(groups) < 5:
        return IntervalScore(seconds, name, 30, 50.0, 0.0, 0.5)

    wins = losses = 0
    total_return = 0.0
    noise_sum = 0.0

    for i in range(1, len(groups) - 1):
        prev_close = groups[i - 1][-1].close
        curr_close = groups[i][-1].close
        next_close = groups[i + 1][-1].close
        if prev_close == 0 or curr_close == 0:
            continue
        prev_change = (curr_close - prev_close) / prev_close
        next_change = (next_close - curr_close) / curr_close

        if (prev_change > 0 and next_change > 0) or (prev_change < 0 and next_change < 0):
            wins += 1
            total_return += abs(next_change) * 100
        else:
            losses += 1
            total_return -= abs(next_change) * 100

        group = groups[i]
        noise_sum += sum(abs(b.range_pct) for b in group) / len(group)

    trades = wins + losses
    win_rate = wins / trades * 100 if trades > 0 else 50.0
    avg_noise = noise_sum / max(len(groups) - 2, 1)
    noise_ratio = min(avg_noise * 100, 1.0)

    raw = (win_rate * 0.4
           + clamp(total_return + 50, 0, 100) * 0.3
           + (1 - noise_ratio) * 100 * 0.3)
    score = int(clamp(math.floor(raw + 0.5), 0, 100))
    return IntervalScore(seconds, name, score, win_rate, total_return, noise_ratio)


def frequency_analyzer(bars: Sequence[PriceBar], current_price: Optional[float],
                       settings: ToolSettings,
                       now: Optional[datetime] = None) -> Optional[ToolResult]:
    """
    Find the bar interval where momentum trades have worked best.

    Only bars within frequency_lookback_days of the latest bar are used.
    """
    if not settings.frequency_analyzer_enabled:
        return None
    window = trailing_window(bars, timedelta(days=settings.frequency_lookback_days))
    if len(window) < FREQUENCY_MIN_BARS:
        return None

    results = [_score_interval(window, seconds, name)
               for seconds, name in FREQUENCY_INTERVALS]
    optimal = results[0]
    for result in results[1:]:
        if result.score > optimal.score:
            optimal = result

    if optimal.score > 70:
        score = 15.0
    elif optimal.score > 50:
        score = 5.0
    else:
        score = -5.0

    logger.debug(f"Frequency scores: {[(r.name, r.score) for r in results]}")
    return ToolResult(
        name=FREQUENCY_ANALYZER,
        score=score,
        confidence=float(min(optimal.score, 95)),
        signal=ToolSignal.BUY if optimal.score > 60 else ToolSignal.HOLD,
        reasoning=f"Optimal interval: {optimal.name} (score {optimal.score}/100)",
    )
