"""
Multi-Tool Signal Aggregator.

Runs the nine analysis tools and folds their votes into a single
BULL/BEAR recommendation with entry, target and stop levels.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple
import logging

from ..config import ToolSettings
from ..data.price_bar import PriceBar
from .base import ToolResult, resolve_now
from .correlation import correlation_radar
from .momentum import frequency_analyzer, momentum_pulse
from .reversal import micro_pattern_scanner, reversal_meter
from .risk import risk_per_minute, smart_exit_optimizer
from .timing import trade_timing_score, volatility_window

logger = logging.getLogger(__name__)

AnalysisTool = Callable[[Sequence[PriceBar], Optional[float], ToolSettings,
                         Optional[datetime]], Optional[ToolResult]]

# Evaluation order of the tools
TOOLS: Tuple[AnalysisTool, ...] = (
    frequency_analyzer,
    momentum_pulse,
    volatility_window,
    micro_pattern_scanner,
    smart_exit_optimizer,
    reversal_meter,
    trade_timing_score,
    correlation_radar,
    risk_per_minute,
)


class RecommendationAction(Enum):
    BUY_BULL = "BUY_BULL"
    SELL_BULL = "SELL_BULL"
    BUY_BEAR = "BUY_BEAR"
    SELL_BEAR = "SELL_BEAR"
    HOLD = "HOLD"


@dataclass(frozen=True)
class TradeStrategy:
    entry: float
    target: float
    stop_loss: float
    suggested_hold_time: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'entry': self.entry,
            'target': self.target,
            'stop_loss': self.stop_loss,
            'suggested_hold_time': self.suggested_hold_time,
        }


@dataclass(frozen=True)
class CombinedRecommendation:
    action: RecommendationAction
    confidence: float
    strategy: TradeStrategy
    factors: List[ToolResult] = field(default_factory=list)

    @property
    def total_score(self) -> float:
        return sum(f.score for f in self.factors)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'action': self.action.value,
            'confidence': self.confidence,
            'total_score': self.total_score,
            'factors': [f.to_dict() for f in self.factors],
            'strategy': self.strategy.to_dict(),
        }


def run_analysis_tools(bars: Sequence[PriceBar], current_price: Optional[float],
                       settings: ToolSettings = None,
                       now: Optional[datetime] = None,
                       max_workers: int = 1) -> List[ToolResult]:
    """
    Evaluate every enabled tool.

    Args:
        bars: Price history, oldest first
        current_price: Latest traded price
        settings: Tool settings (defaults enable every tool)
        now: Evaluation time; defaults to the latest bar's timestamp
        max_workers: >1 evaluates the tools on a thread pool

    Returns:
        Results of the tools that produced one, in fixed tool order
    """
    settings = settings or ToolSettings()
    now = resolve_now(bars, now)

    def run_tool(tool: AnalysisTool) -> Optional[ToolResult]:
        return tool(bars, current_price, settings, now)

    if max_workers > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            results = list(executor.map(run_tool, TOOLS))
    else:
        results = [run_tool(tool) for tool in TOOLS]

    factors = [r for r in results if r is not None]
    logger.debug(f"{len(factors)}/{len(TOOLS)} analysis tools produced a result")
    return factors


def combine_recommendation(factors: Sequence[ToolResult],
                           current_price: Optional[float]) -> CombinedRecommendation:
    """
    Fold tool results into one recommendation.

    Total score above 10 buys BULL, below -10 buys BEAR, otherwise HOLD.
    Confidence is the mean tool confidence capped at 95.
    """
    price = current_price or 0.0
    if not factors or price == 0:
        return CombinedRecommendation(
            action=RecommendationAction.HOLD,
            confidence=0.0,
            strategy=TradeStrategy(price, price, price, "-"),
        )

    total_score = sum(f.score for f in factors)
    avg_confidence = sum(f.confidence for f in factors) / len(factors)

    # The +/-25 "strong" tier maps to the same actions
    if total_score < -10:
        action = RecommendationAction.BUY_BEAR
    elif total_score > 10:
        action = RecommendationAction.BUY_BULL
    else:
        action = RecommendationAction.HOLD

    strong = abs(total_score) > 20
    target_pct = 0.015 if strong else 0.01
    stop_pct = 0.01 if strong else 0.02
    bullish = total_score > 0

    strategy = TradeStrategy(
        entry=price,
        target=price * (1 + target_pct) if bullish else price * (1 - target_pct),
        stop_loss=price * (1 - stop_pct) if bullish else price * (1 + stop_pct),
        suggested_hold_time="15-60 min" if abs(total_score) > 30 else "5-15 min",
    )
    return CombinedRecommendation(
        action=action,
        confidence=min(avg_confidence, 95.0),
        strategy=strategy,
        factors=list(factors),
    )


def analyze(bars: Sequence[PriceBar], current_price: Optional[float],
            settings: ToolSettings = None,
            now: Optional[datetime] = None) -> CombinedRecommendation:
    """Run the tools and combine them in one call."""
    factors = run_analysis_tools(bars, current_price, settings, now)
    recommendation = combine_recommendation(factors, current_price)
    logger.info(f"Recommendation: {recommendation.action.value} "
                f"(score {recommendation.total_score:+.1f}, "
                f"confidence {recommendation.confidence:.0f})")
    return recommendation
