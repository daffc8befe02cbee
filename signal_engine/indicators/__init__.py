"""
Indicators module for the Signal Engine.

Provides:
- Pure indicator functions (RSI, SMA, EMA, MACD, Bollinger, ATR)
- IndicatorSet snapshots and the IndicatorCalculator
- RSI/MACD driven indicator signals
"""

from .calculator import (
    MACDResult,
    BollingerBands,
    IndicatorSet,
    IndicatorCalculator,
    rsi,
    sma,
    ema,
    macd,
    bollinger_bands,
    bollinger_position,
    atr,
    compute_indicators,
)
from .signals import (
    SignalType,
    SignalStrength,
    IndicatorSignal,
    signal_from_indicators,
    generate_indicator_signal,
)

__all__ = [
    'MACDResult',
    'BollingerBands',
    'IndicatorSet',
    'IndicatorCalculator',
    'rsi',
    'sma',
    'ema',
    'macd',
    'bollinger_bands',
    'bollinger_position',
    'atr',
    'compute_indicators',
    'SignalType',
    'SignalStrength',
    'IndicatorSignal',
    'signal_from_indicators',
    'generate_indicator_signal',
]
