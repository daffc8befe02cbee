"""
Indicator Calculator module.

Computes RSI, SMA, EMA, MACD, Bollinger Bands and ATR from price history.
Every function works on the window it is given and returns a neutral
value instead of raising when the window is too short.
"""

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Dict, List, Optional, Sequence
import logging

import numpy as np
import pandas as pd

from ..config import IndicatorConfig
from ..data.price_bar import PriceBar, closes

logger = logging.getLogger(__name__)

NEUTRAL_RSI = 50.0
NEUTRAL_BB_POSITION = 0.5


@dataclass(frozen=True)
class MACDResult:
    """MACD line, signal line and histogram at the last price."""
    macd: float
    signal: float
    histogram: float


@dataclass(frozen=True)
class BollingerBands:
    upper: float
    middle: float
    lower: float


def rsi(prices: Sequence[float], period: int = 14) -> float:
    """
    Relative Strength Index over the last `period` price changes.

    Uses a simple average of gains and losses (not Wilder smoothing).

    Args:
        prices: Price window, oldest first
        period: Number of changes to average

    Returns:
        RSI in [0, 100]; 50 if fewer than period + 1 prices
    """
    if len(prices) < period + 1:
        return NEUTRAL_RSI

    changes = np.diff(np.asarray(prices[-(period + 1):], dtype=float))
    avg_gain = changes[changes > 0].sum() / period
    avg_loss = -changes[changes < 0].sum() / period

    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return float(100.0 - 100.0 / (1.0 + rs))


def sma(prices: Sequence[float], period: int) -> Optional[float]:
    """Mean of the most recent `period` prices, None if too few."""
    if period <= 0 or len(prices) < period:
        return None
    return float(np.mean(prices[-period:]))


def ema(prices: Sequence[float], period: int) -> List[float]:
    """
    Exponential moving average series seeded with the first price.

    Args:
        prices: Price series, oldest first
        period: EMA period (multiplier 2 / (period + 1))

    Returns:
        EMA value for every input price
    """
    if len(prices) == 0:
        return []
    series = pd.Series(prices, dtype=float)
    return series.ewm(span=period, adjust=False).mean().tolist()


def macd(prices: Sequence[float], fast: int = 12, slow: int = 26,
         signal_period: int = 9) -> MACDResult:
    """
    MACD at the last price.

    The signal line is an EMA computed over only the last `signal_period`
    MACD values. All zeros if fewer than `slow` prices.
    """
    if len(prices) < slow:
        return MACDResult(0.0, 0.0, 0.0)

    ema_fast = ema(prices, fast)
    ema_slow = ema(prices, slow)
    macd_line = [f - s for f, s in zip(ema_fast, ema_slow)]
    signal_line = ema(macd_line[-signal_period:], signal_period)

    macd_value = macd_line[-1]
    signal_value = signal_line[-1]
    return MACDResult(macd_value, signal_value, macd_value - signal_value)


def bollinger_bands(prices: Sequence[float], period: int = 20,
                    num_std: float = 2.0) -> Optional[BollingerBands]:
    """Bollinger Bands (population std) over the last `period` prices."""
    if len(prices) < period:
        return None
    window = np.asarray(prices[-period:], dtype=float)
    middle = float(window.mean())
    std = float(window.std())
    return BollingerBands(middle + num_std * std, middle, middle - num_std * std)


def bollinger_position(prices: Sequence[float], period: int = 20,
                       num_std: float = 2.0) -> float:
    """
    Position of the last price within the Bollinger Bands.

    Returns:
        0 at the lower band, 1 at the upper band, clamped to [0, 1].
        0.5 when data is short or the bands have collapsed.
    """
    bands = bollinger_bands(prices, period, num_std)
    if bands is None or bands.upper == bands.lower:
        return NEUTRAL_BB_POSITION
    position = (prices[-1] - bands.lower) / (bands.upper - bands.lower)
    return float(min(1.0, max(0.0, position)))


def atr(bars: Sequence[PriceBar], period: int = 14) -> Optional[float]:
    """Average True Range as a simple mean of the last `period` true ranges."""
    if len(bars) < period + 1:
        return None
    true_ranges = []
    for prev, bar in zip(bars[-(period + 1):-1], bars[-period:]):
        true_ranges.append(max(
            bar.high - bar.low,
            abs(bar.high - prev.close),
            abs(bar.low - prev.close),
        ))
    return float(np.mean(true_ranges))


@dataclass(frozen=True)
class IndicatorSet:
    """Snapshot of every indicator at one bar."""
    timestamp: Optional[datetime]
    close: Optional[float]
    rsi_14: float
    sma_5: Optional[float]
    sma_10: Optional[float]
    sma_20: Optional[float]
    sma_50: Optional[float]
    ema_12: Optional[float]
    ema_26: Optional[float]
    macd: float
    macd_signal: float
    macd_histogram: float
    bollinger_upper: Optional[float]
    bollinger_middle: Optional[float]
    bollinger_lower: Optional[float]
    bollinger_position: float
    atr_14: Optional[float]

    def to_dict(self) -> Dict:
        data = asdict(self)
        if self.timestamp is not None:
            data['timestamp'] = self.timestamp.isoformat()
        return data


class IndicatorCalculator:
    """
    Computes IndicatorSet snapshots for a bar series.

    Periods come from IndicatorConfig; the fixed-name fields of
    IndicatorSet are filled from the configured SMA periods in order.
    """

    def __init__(self, config: IndicatorConfig = None):
        self.config = config or IndicatorConfig()

    def _ema_last(self, prices: List[float], period: int) -> Optional[float]:
        if len(prices) < period:
            return None
        return ema(prices, period)[-1]

    def calculate(self, bars: Sequence[PriceBar]) -> IndicatorSet:
        """
        Calculate all indicators at the last bar.

        Args:
            bars: Price history, oldest first

        Returns:
            IndicatorSet (neutral values for an empty or short history)
        """
        cfg = self.config
        prices = closes(bars)
        smas = [sma(prices, p) for p in cfg.sma_periods]
        smas += [None] * (4 - len(smas))
        macd_result = macd(prices, cfg.macd_fast, cfg.macd_slow, cfg.macd_signal)
        bands = bollinger_bands(prices, cfg.bollinger_period, cfg.bollinger_std)

        return IndicatorSet(
            timestamp=bars[-1].timestamp if bars else None,
            close=prices[-1] if prices else None,
            rsi_14=rsi(prices, cfg.rsi_period),
            sma_5=smas[0],
            sma_10=smas[1],
            sma_20=smas[2],
            sma_50=smas[3],
            ema_12=self._ema_last(prices, cfg.macd_fast),
            ema_26=self._ema_last(prices, cfg.macd_slow),
            macd=macd_result.macd,
            macd_signal=macd_result.signal,
            macd_histogram=macd_result.histogram,
            bollinger_upper=bands.upper if bands else None,
            bollinger_middle=bands.middle if bands else None,
            bollinger_lower=bands.lower if bands else None,
            bollinger_position=bollinger_position(
                prices, cfg.bollinger_period, cfg.bollinger_std),
            atr_14=atr(bars, cfg.atr_period),
        )

    def calculate_frame(self, bars: Sequence[PriceBar]) -> pd.DataFrame:
        """
        Calculate indicators for every bar.

        Each row uses only the bars up to and including its own, so the
        frame never looks ahead.

        Returns:
            DataFrame indexed by timestamp, one column per indicator
        """
        rows = []
        for i in range(len(bars)):
            snapshot = asdict(self.calculate(bars[:i + 1]))
            rows.append(snapshot)

        df = pd.DataFrame(rows)
        if not df.empty:
            df = df.set_index('timestamp')
        logger.debug(f"Calculated indicator frame with {len(df)} rows")
        return df


def compute_indicators(bars: Sequence[PriceBar],
                       config: IndicatorConfig = None) -> IndicatorSet:
    """Indicator snapshot at the last bar."""
    return IndicatorCalculator(config).calculate(bars)
