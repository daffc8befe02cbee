"""
Tests for price bars and DataFrame conversion.
"""

from datetime import datetime

import pandas as pd
import pytest

from signal_engine.data.price_bar import (
    PriceBar, bars_from_frame, bars_from_records, bars_to_frame, closes,
)


class TestPriceBar:

    def test_range_pct(self):
        bar = PriceBar(datetime(2024, 1, 3), 100.0, 102.0, 98.0, 100.0)
        assert bar.range_pct == pytest.approx(0.04)

    def test_range_pct_zero_close(self):
        assert PriceBar(datetime(2024, 1, 3), 0.0, 0.0, 0.0, 0.0).range_pct == 0.0

    def test_closes(self, flat_bars):
        assert closes(flat_bars[:3]) == [100.0, 100.0, 100.0]


class TestRecords:

    def test_sorted_and_deduplicated(self):
        bars = bars_from_records([
            {'timestamp': '2024-01-03T10:02:00', 'close': 82.5},
            {'timestamp': '2024-01-03T10:00:00', 'close': 82.0, 'high': 82.4, 'low': 81.9},
            {'timestamp': '2024-01-03T10:02:00', 'close': 99.0},
        ])
        assert [b.close for b in bars] == [82.0, 82.5]
        assert bars[0].high == 82.4

    def test_missing_ohlc_falls_back_to_close(self):
        bar = bars_from_records([{'timestamp': datetime(2024, 1, 3), 'close': 80.0}])[0]
        assert (bar.open, bar.high, bar.low) == (80.0, 80.0, 80.0)
        assert bar.volume is None


class TestFrames:

    def test_round_trip(self, rising_bars):
        df = bars_to_frame(rising_bars)
        assert df.index.name == 'timestamp'
        assert bars_from_frame(df) == rising_bars

    def test_timestamp_column_and_cleaning(self):
        df = pd.DataFrame({
            'Timestamp': pd.to_datetime(['2024-01-03 10:01', '2024-01-03 10:00',
                                         '2024-01-03 10:00', '2024-01-03 10:02']),
            'Open': [1, 2, 3, 4],
            'High': [1, 2, 3, 4],
            'Low': [1, 2, 3, 4],
            'Close': [1, 2, 3, 'bad'],
        })
        bars = bars_from_frame(df)
        assert [b.close for b in bars] == [2.0, 1.0]
        assert all(b.volume is None for b in bars)

    def test_missing_columns(self):
        df = pd.DataFrame({'timestamp': pd.to_datetime(['2024-01-03']), 'close': [1.0]})
        with pytest.raises(ValueError):
            bars_from_frame(df)
