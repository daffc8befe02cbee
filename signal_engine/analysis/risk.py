"""
Risk and exit analysis tools.

- Smart Exit Optimizer: historically best holding period plus a
  volatility-based target and stop
- Risk-Per-Minute: recent price volatility per minute vs the period before
"""

from bisect import bisect_left
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional, Sequence
import logging

from ..config import ToolSettings
from ..data.price_bar import PriceBar
from .base import ToolResult, ToolSignal, clamp, mean_range_percent

logger = logging.getLogger(__name__)

SMART_EXIT = "Smart Exit"
RISK_PER_MINUTE = "Risk/Minute"

SMART_EXIT_MIN_BARS = 100
RISK_MIN_BARS = 60
RISK_WINDOW = 30

HOLD_PERIODS = (
    (5, "5 min"),
    (15, "15 min"),
    (60, "1 hour"),
    (240, "4 hours"),
    (1440, "1 day"),
)


@dataclass(frozen=True)
class HoldPeriodStats:
    minutes: int
    label: str
    avg_return: float
    max_drawdown: float
    win_rate: float
    score: float


@dataclass(frozen=True)
class ExitStrategy:
    optimal_hold_time: str
    suggested_target: float
    suggested_stop: float
    confidence: float


def hold_period_stats(bars: Sequence[PriceBar], minutes: int, label: str) -> HoldPeriodStats:
    """
    Outcome of buying at every bar and selling `minutes` later.

    The exit is the first later bar at or past the holding period.
    """
    timestamps = [b.timestamp for b in bars]
    period = timedelta(minutes=minutes)
    returns: List[float] = []
    wins = 0
    max_drawdown = 0.0

    for i in range(len(bars) - 1):
        entry = bars[i]
        if entry.close == 0:
            continue
        exit_index = max(bisect_left(timestamps, entry.timestamp + period), i + 1)
        if exit_index >= len(bars):
            break

        return_pct = (bars[exit_index].close - entry.close) / entry.close * 100
        returns.append(return_pct)
        if return_pct > 0:
            wins += 1

        lowest = min(b.low for b in bars[i:exit_index + 1])
        max_drawdown = max(max_drawdown, (entry.close - lowest) / entry.close * 100)

    if returns:
        avg_return = sum(returns) / len(returns)
        win_rate = wins / len(returns) * 100
    else:
        avg_return, max_drawdown, win_rate = 0.0, 0.0, 50.0

    score = clamp(
        win_rate * 0.4
        + max(0.0, (avg_return + 5) * 5) * 0.3
        + max(0.0, (5 - max_drawdown) * 10) * 0.3,
        0, 100,
    )
    return HoldPeriodStats(minutes, label, avg_return, max_drawdown, win_rate, score)


def optimal_exit(bars: Sequence[PriceBar], current_price: float) -> ExitStrategy:
    """Best holding period and volatility-scaled target/stop levels."""
    results = [hold_period_stats(bars, minutes, label) for minutes, label in HOLD_PERIODS]
    optimal = results[0]
    for result in results[1:]:
        if result.score > optimal.score:
            optimal = result

    # Mean range over the last 50 bars
    volatility = mean_range_percent(bars[-50:])
    return ExitStrategy(
        optimal_hold_time=optimal.label,
        suggested_target=current_price * (1 + volatility * 0.5 / 100),
        suggested_stop=current_price * (1 - volatility * 0.3 / 100),
        confidence=min(optimal.score, 90.0),
    )


def smart_exit_optimizer(bars: Sequence[PriceBar], current_price: Optional[float],
                         settings: ToolSettings,
                         now: Optional[datetime] = None) -> Optional[ToolResult]:
    """
    Suggest an exit plan. Always HOLD; the score only reflects how
    reliable past exits at the optimal horizon have been.
    """
    if (not settings.smart_exit_enabled or not current_price
            or len(bars) < SMART_EXIT_MIN_BARS):
        return None

    strategy = optimal_exit(bars, current_price)
    if strategy.confidence > 60:
        score = 10.0
    elif strategy.confidence > 40:
        score = 5.0
    else:
        score = 0.0

    target_pct = (strategy.suggested_target / current_price - 1) * 100
    return ToolResult(
        name=SMART_EXIT,
        score=score,
        confidence=strategy.confidence,
        signal=ToolSignal.HOLD,
        reasoning=(f"Optimal hold time: {strategy.optimal_hold_time}, "
                   f"target +{target_pct:.1f}%, stop {strategy.suggested_stop:.2f}"),
    )


def volatility_per_minute(bars: Sequence[PriceBar]) -> float:
    """Sum of relative close changes divided by elapsed minutes."""
    total_change = 0.0
    total_minutes = 0.0
    for prev, cur in zip(bars, bars[1:]):
        minutes = abs((cur.timestamp - prev.timestamp).total_seconds()) / 60
        if minutes > 0 and prev.close != 0:
            total_change += abs(cur.close - prev.close) / prev.close
            total_minutes += minutes
    return total_change / total_minutes if total_minutes > 0 else 0.0


def risk_per_minute(bars: Sequence[PriceBar], current_price: Optional[float],
                    settings: ToolSettings,
                    now: Optional[datetime] = None) -> Optional[ToolResult]:
    """Compare the last 30 bars' per-minute volatility with the 30 before."""
    if not settings.risk_per_minute_enabled or len(bars) < RISK_MIN_BARS:
        return None

    recent = bars[-RISK_WINDOW:]
    older = bars[-2 * RISK_WINDOW:-RISK_WINDOW]
    current = volatility_per_minute(recent)
    average = volatility_per_minute(older) or current

    if current > average * 1.5:
        score, signal = -15.0, ToolSignal.HOLD
        reasoning = f"High risk: {current * 100:.2f}%/min (avg {average * 100:.2f}%/min)"
    elif current < average * 0.5:
        score, signal = 10.0, ToolSignal.BUY
        reasoning = f"Low risk: {current * 100:.2f}%/min - good entry"
    else:
        score, signal = 5.0, ToolSignal.HOLD
        reasoning = f"Normal risk: {current * 100:.2f}%/min"

    return ToolResult(
        name=RISK_PER_MINUTE,
        score=score,
        confidence=float(min(len(recent) * 2, 85)),
        signal=signal,
        reasoning=reasoning,
    )
