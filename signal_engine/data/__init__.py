"""
Data module for the Signal Engine.

Provides:
- PriceBar, the OHLCV record used throughout the engine
- Conversions between bar lists, records and pandas DataFrames
"""

from .price_bar import (
    PriceBar,
    closes,
    bars_from_records,
    bars_to_frame,
    bars_from_frame,
)

__all__ = [
    'PriceBar',
    'closes',
    'bars_from_records',
    'bars_to_frame',
    'bars_from_frame',
]
