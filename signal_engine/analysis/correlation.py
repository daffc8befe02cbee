"""
Correlation Radar.

Scores oil against USD strength, equity risk sentiment and geopolitical
risk. No external feeds are wired in, so the inputs are simulated
deterministically from the evaluation time.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Sequence
import math

from ..config import ToolSettings
from ..data.price_bar import PriceBar
from .base import ToolResult, ToolSignal, clamp, resolve_now

CORRELATION_RADAR = "Correlation Radar"

GEOPOLITICAL_BASELINE = 0.2


@dataclass(frozen=True)
class CorrelationInputs:
    usd_strength: float
    equity_sentiment: float
    geopolitical_risk: float


def _epoch_ms(now: datetime) -> float:
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.timestamp() * 1000


def simulated_inputs(now: datetime) -> CorrelationInputs:
    """USD moves during the US session (14-20), equities during 9-17."""
    epoch_ms = _epoch_ms(now)
    usd = math.sin(epoch_ms / 10_000_000) * 2 if 14 <= now.hour <= 20 else 0.0
    equity = 0.3 + math.sin(epoch_ms / 5_000_000) * 0.5 if 9 <= now.hour <= 17 else 0.0
    return CorrelationInputs(usd, equity, GEOPOLITICAL_BASELINE)


def score_correlations(inputs: CorrelationInputs) -> ToolResult:
    """Oil trades inverse to USD and with risk-on sentiment."""
    score = 0.0
    factors: List[str] = []

    if inputs.usd_strength < -1:
        score += 10
        factors.append("USD weakening (+)")
    elif inputs.usd_strength > 1:
        score -= 10
        factors.append("USD strengthening (-)")

    if inputs.equity_sentiment > 0.5:
        score += 5
        factors.append("Risk-on sentiment (+)")
    elif inputs.equity_sentiment < -0.5:
        score -= 5
        factors.append("Risk-off sentiment (-)")

    if inputs.geopolitical_risk > 0.5:
        score += 8
        factors.append("Geopolitical tension (+)")

    if score > 10:
        signal = ToolSignal.BUY
    elif score < -10:
        signal = ToolSignal.SELL
    else:
        signal = ToolSignal.HOLD

    return ToolResult(
        name=CORRELATION_RADAR,
        score=clamp(score, -20, 20),
        confidence=60.0,
        signal=signal,
        reasoning=", ".join(factors) if factors else "No strong correlations",
    )


def correlation_radar(bars: Sequence[PriceBar], current_price: Optional[float],
                      settings: ToolSettings,
                      now: Optional[datetime] = None) -> Optional[ToolResult]:
    if not settings.correlation_radar_enabled:
        return None
    now = resolve_now(bars, now)
    if now is None:
        return None
    return score_correlations(simulated_inputs(now))
