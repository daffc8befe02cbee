"""
Shared fixtures for the Signal Engine test suite.
"""

import sys
from datetime import datetime, timedelta
from pathlib import Path
from typing import List, Optional, Sequence

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from signal_engine.data.price_bar import PriceBar


# Wednesday morning, inside market hours
START = datetime(2024, 1, 3, 10, 0)


def make_bars(prices: Sequence[float], start: datetime = START,
              step: timedelta = timedelta(minutes=1),
              spread: float = 0.0, opens: Optional[Sequence[float]] = None) -> List[PriceBar]:
    """Bars with the given closes, high/low at close +/- spread."""
    bars = []
    for i, close in enumerate(prices):
        bars.append(PriceBar(
            timestamp=start + i * step,
            open=opens[i] if opens is not None else close,
            high=close + spread,
            low=close - spread,
            close=close,
            volume=1000.0,
        ))
    return bars


@pytest.fixture
def bar_factory():
    """Factory building PriceBar lists from close prices."""
    return make_bars


@pytest.fixture
def rising_bars():
    """120 one-minute bars climbing 0.01 per bar."""
    return make_bars([100 + 0.01 * i for i in range(120)], spread=0.05)


@pytest.fixture
def flat_bars():
    """60 one-minute bars at 100."""
    return make_bars([100.0] * 60)
