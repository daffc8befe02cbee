"""
Time-of-day analysis tools.

- Volatility Window: how the current hour has historically performed
- Trade Timing Score: composite of volatility, trend, levels and session
"""

from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence
import logging
import math

from ..config import ToolSettings
from ..data.price_bar import PriceBar
from .base import (ToolResult, ToolSignal, clamp, mean_range_percent,
                   resolve_now, trailing_window)

logger = logging.getLogger(__name__)

VOLATILITY_WINDOW = "Volatility Window"
TRADE_TIMING = "Trade Timing"

VOLATILITY_MIN_BARS = 24
GOOD_TRADING_HOURS = ((9, 11), (14, 16))
MARKET_OPEN_HOUR = 8
MARKET_CLOSE_HOUR = 22


def is_market_open(now: datetime) -> bool:
    """Weekdays between 08:00 and 22:00."""
    if now.weekday() >= 5:
        return False
    return MARKET_OPEN_HOUR <= now.hour < MARKET_CLOSE_HOUR


def is_good_trading_time(now: datetime) -> bool:
    """European open (9-11) or US overlap (14-16), inclusive."""
    return any(start <= now.hour <= end for start, end in GOOD_TRADING_HOURS)


def hourly_stats(bars: Sequence[PriceBar]) -> Dict[int, Dict[str, float]]:
    """
    Volatility and average close-to-close return per hour of day.

    Hours with fewer than two bars are reported with sample_size 0.
    """
    stats = {}
    for hour in range(24):
        in_hour = [b for b in bars if b.timestamp.hour == hour]
        if len(in_hour) < 2:
            stats[hour] = {'volatility': 0.0, 'avg_return': 0.0, 'sample_size': 0}
            continue

        returns = [
            (cur.close - prev.close) / prev.close
            for prev, cur in zip(in_hour, in_hour[1:]) if prev.close != 0
        ]
        stats[hour] = {
            'volatility': mean_range_percent(in_hour),
            'avg_return': sum(returns) / (len(in_hour) - 1) * 100,
            'sample_size': len(in_hour),
        }
    return stats


def volatility_window(bars: Sequence[PriceBar], current_price: Optional[float],
                      settings: ToolSettings,
                      now: Optional[datetime] = None) -> Optional[ToolResult]:
    """
    Rank the current hour against all hours by historical average return.

    Top third is a good window (BUY, +10), bottom third a bad one (-10).
    """
    if not settings.volatility_window_enabled:
        return None
    window = trailing_window(bars, timedelta(hours=settings.volatility_window_hours))
    if len(window) < VOLATILITY_MIN_BARS:
        return None
    now = resolve_now(bars, now)

    stats = hourly_stats(window)
    ranked: List[int] = sorted(
        (h for h, s in stats.items() if s['sample_size'] > 0),
        key=lambda h: stats[h]['avg_return'],
        reverse=True,
    )
    current = stats[now.hour]

    if current['sample_size'] == 0:
        return ToolResult(
            name=VOLATILITY_WINDOW,
            score=0.0,
            confidence=0.0,
            signal=ToolSignal.HOLD,
            reasoning=f"No history for hour {now.hour}:00",
        )

    rank = ranked.index(now.hour) + 1
    total = len(ranked)
    is_good = rank <= math.ceil(total / 3)
    is_bad = rank > math.ceil(total * 2 / 3)

    return ToolResult(
        name=VOLATILITY_WINDOW,
        score=10.0 if is_good else (-10.0 if is_bad else 0.0),
        confidence=float(min(current['sample_size'] * 5, 90)),
        signal=ToolSignal.BUY if is_good else ToolSignal.HOLD,
        reasoning=f"Hour {now.hour}:00 ranks #{rank}/{total} historically",
    )


def _volatility_in_range(bars: Sequence[PriceBar]) -> bool:
    if len(bars) < 20:
        return True
    volatility = mean_range_percent(bars[-20:])
    return 0.3 <= volatility <= 2


def _trend_alignment(bars: Sequence[PriceBar]) -> str:
    if len(bars) < 20:
        return "NEUTRAL"
    sma5 = sum(b.close for b in bars[-5:]) / 5
    sma20 = sum(b.close for b in bars[-20:]) / 20
    if sma20 == 0:
        return "NEUTRAL"
    diff = (sma5 - sma20) / sma20 * 100
    if diff > 0.5:
        return "UP"
    if diff < -0.5:
        return "DOWN"
    return "NEUTRAL"


def _support_resistance(bars: Sequence[PriceBar], current_price: float) -> str:
    if len(bars) < 50:
        return "none"
    recent = bars[-50:]
    resistance = max(b.high for b in recent)
    support = min(b.low for b in recent)
    threshold = (resistance - support) * 0.05
    if abs(current_price - support) < threshold:
        return "support"
    if abs(current_price - resistance) < threshold:
        return "resistance"
    return "none"


def timing_score(bars: Sequence[PriceBar], current_price: float, now: datetime) -> int:
    """Composite 0..100 timing score."""
    score = 50
    if _volatility_in_range(bars):
        score += 12

    trend = _trend_alignment(bars)
    if trend == "UP":
        score += 15
    elif trend == "DOWN":
        score -= 10

    level = _support_resistance(bars, current_price)
    if level == "support":
        score += 10
    elif level == "resistance":
        score -= 10

    if is_good_trading_time(now):
        score += 8
    if not is_market_open(now):
        score -= 25

    return int(clamp(score, 0, 100))


def trade_timing_score(bars: Sequence[PriceBar], current_price: Optional[float],
                       settings: ToolSettings,
                       now: Optional[datetime] = None) -> Optional[ToolResult]:
    """
    Score how favourable right now is for opening a trade.

    Returns:
        ToolResult with confidence equal to the 0..100 timing score
    """
    if not settings.timing_score_enabled or not bars or not current_price:
        return None
    now = resolve_now(bars, now)
    score = timing_score(bars, current_price, now)

    if score >= 70:
        signal, label = ToolSignal.BUY, "good setup"
    elif score <= 30:
        signal, label = ToolSignal.SELL, "poor setup"
    else:
        signal, label = ToolSignal.HOLD, "neutral"

    if score > 70:
        tool_score = 15.0
    elif score > 50:
        tool_score = 5.0
    elif score < 30:
        tool_score = -15.0
    else:
        tool_score = 0.0

    return ToolResult(
        name=TRADE_TIMING,
        score=tool_score,
        confidence=float(score),
        signal=signal,
        reasoning=f"Timing score {score}/100 - {label}",
    )
