"""
Price bar module.

Defines the OHLCV bar consumed by every engine component and the
conversions between bar lists and pandas DataFrames.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional
import logging

import pandas as pd

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ['open', 'high', 'low', 'close']


@dataclass(frozen=True)
class PriceBar:
    """A single OHLCV observation."""
    timestamp: datetime
    open: float
    high: float
    low: float
    close: float
    volume: Optional[float] = None

    @property
    def range_pct(self) -> float:
        """High-low range as a fraction of the close."""
        if self.close == 0:
            return 0.0
        return (self.high - self.low) / self.close

    def to_dict(self) -> Dict[str, Any]:
        return {
            'timestamp': self.timestamp.isoformat(),
            'open': self.open,
            'high': self.high,
            'low': self.low,
            'close': self.close,
            'volume': self.volume,
        }


def closes(bars: Iterable[PriceBar]) -> List[float]:
    """Close prices of a bar sequence."""
    return [bar.close for bar in bars]


def bars_from_records(records: Iterable[Dict[str, Any]]) -> List[PriceBar]:
    """
    Build bars from plain records, e.g. rows from the price provider.

    A record needs a timestamp and a close; missing open/high/low fall back
    to the close. Records are sorted ascending and duplicate timestamps
    dropped (first wins).
    """
    bars = {}
    for record in records:
        ts = record['timestamp']
        if not isinstance(ts, datetime):
            ts = pd.Timestamp(ts).to_pydatetime()
        if ts in bars:
            continue
        close = float(record['close'])
        volume = record.get('volume')
        bars[ts] = PriceBar(
            timestamp=ts,
            open=float(record.get('open') or close),
            high=float(record.get('high') or close),
            low=float(record.get('low') or close),
            close=close,
            volume=float(volume) if volume is not None else None,
        )
    return [bars[ts] for ts in sorted(bars)]


def bars_to_frame(bars: List[PriceBar]) -> pd.DataFrame:
    """Convert bars to a DataFrame indexed by timestamp."""
    df = pd.DataFrame(
        [(b.open, b.high, b.low, b.close, b.volume) for b in bars],
        columns=['open', 'high', 'low', 'close', 'volume'],
        index=pd.DatetimeIndex([b.timestamp for b in bars], name='timestamp'),
    )
    return df


def bars_from_frame(df: pd.DataFrame) -> List[PriceBar]:
    """
    Convert a DataFrame to bars.

    Accepts either a DatetimeIndex or a 'timestamp' column. Column names
    are lower-cased; rows with missing OHLC values are dropped and
    duplicate timestamps removed.
    """
    df = df.copy()
    df.columns = [str(c).lower() for c in df.columns]
    if 'timestamp' in df.columns:
        df = df.set_index('timestamp')

    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"Missing required columns: {missing}")

    if not isinstance(df.index, pd.DatetimeIndex):
        df.index = pd.to_datetime(df.index)

    for col in REQUIRED_COLUMNS:
        df[col] = pd.to_numeric(df[col], errors='coerce')

    original_len = len(df)
    df = df.dropna(subset=REQUIRED_COLUMNS)
    df = df[~df.index.duplicated(keep='first')].sort_index()
    if len(df) < original_len:
        logger.debug(f"Dropped {original_len - len(df)} invalid or duplicate rows")

    has_volume = 'volume' in df.columns
    bars = []
    for ts, row in df.iterrows():
        volume = row['volume'] if has_volume and pd.notna(row['volume']) else None
        bars.append(PriceBar(
            timestamp=ts.to_pydatetime(),
            open=float(row['open']),
            high=float(row['high']),
            low=float(row['low']),
            close=float(row['close']),
            volume=float(volume) if volume is not None else None,
        ))
    return bars
