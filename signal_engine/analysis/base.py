"""
Shared types for the analysis tools.

Every tool is a pure function
    tool(bars, current_price, settings, now) -> Optional[ToolResult]
returning None when it is disabled or has too little data.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from ..data.price_bar import PriceBar


class ToolSignal(Enum):
    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


@dataclass(frozen=True)
class ToolResult:
    """One tool's vote: score (roughly -25..25), confidence 0..100."""
    name: str
    score: float
    confidence: float
    signal: ToolSignal
    reasoning: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'score': self.score,
            'confidence': self.confidence,
            'signal': self.signal.value,
            'reasoning': self.reasoning,
        }


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def resolve_now(bars: Sequence[PriceBar], now: Optional[datetime]) -> Optional[datetime]:
    """The injected time, or the latest bar's timestamp when none is given."""
    if now is not None:
        return now
    return bars[-1].timestamp if bars else None


def bars_since(bars: Sequence[PriceBar], start: datetime) -> List[PriceBar]:
    """Bars with timestamp at or after `start`."""
    return [b for b in bars if b.timestamp >= start]


def trailing_window(bars: Sequence[PriceBar], span: timedelta) -> List[PriceBar]:
    """Bars within `span` of the latest bar."""
    if not bars:
        return []
    return bars_since(bars, bars[-1].timestamp - span)


def mean_range_percent(bars: Sequence[PriceBar]) -> float:
    """Average (high - low) / close in percent."""
    if not bars:
        return 0.0
    return sum(b.range_pct for b in bars) / len(bars) * 100
