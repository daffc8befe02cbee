"""
Tests for the Multi-Tool Signal Aggregator.
"""

import pytest

from signal_engine.analysis.aggregator import (
    RecommendationAction, TOOLS, analyze, combine_recommendation, run_analysis_tools,
)
from signal_engine.analysis.base import ToolResult, ToolSignal
from signal_engine.config import ToolSettings

PRICE = 100.0


def factors(*scores, confidence=50.0):
    return [ToolResult(f"tool-{i}", score, confidence, ToolSignal.HOLD, "")
            for i, score in enumerate(scores)]


def all_disabled():
    return ToolSettings(**{f"{tool}_enabled": False for tool in (
        'frequency_analyzer', 'momentum_pulse', 'volatility_window',
        'micro_pattern', 'smart_exit', 'reversal_meter', 'timing_score',
        'correlation_radar', 'risk_per_minute',
    )})


# ─────────────────────────────────────────────────────────────────
# COMBINATION TESTS
# ─────────────────────────────────────────────────────────────────

class TestCombineRecommendation:
    """Score thresholds, levels and confidence."""

    def test_bullish(self):
        rec = combine_recommendation(factors(6, 5), PRICE)
        assert rec.action == RecommendationAction.BUY_BULL
        assert rec.total_score == 11
        assert rec.strategy.entry == PRICE
        assert rec.strategy.target == pytest.approx(101.0)
        assert rec.strategy.stop_loss == pytest.approx(98.0)
        assert rec.strategy.suggested_hold_time == "5-15 min"

    def test_bearish(self):
        rec = combine_recommendation(factors(-6, -5), PRICE)
        assert rec.action == RecommendationAction.BUY_BEAR
        assert rec.strategy.target == pytest.approx(99.0)
        assert rec.strategy.stop_loss == pytest.approx(102.0)

    @pytest.mark.parametrize("scores", [(5,), (10,), (-10,), (15, -15)])
    def test_hold_band(self, scores):
        assert combine_recommendation(factors(*scores), PRICE).action == RecommendationAction.HOLD

    def test_strong_signal_levels(self):
        rec = combine_recommendation(factors(25, 10), PRICE)
        assert rec.action == RecommendationAction.BUY_BULL
        assert rec.strategy.target == pytest.approx(101.5)
        assert rec.strategy.stop_loss == pytest.approx(99.0)
        assert rec.strategy.suggested_hold_time == "15-60 min"

    def test_strong_bearish_levels(self):
        rec = combine_recommendation(factors(-25), PRICE)
        assert rec.action == RecommendationAction.BUY_BEAR
        assert rec.strategy.target == pytest.approx(98.5)
        assert rec.strategy.stop_loss == pytest.approx(101.0)
        assert rec.strategy.suggested_hold_time == "5-15 min"

    def test_confidence_is_mean(self):
        rec = combine_recommendation(
            [ToolResult("a", 0, 30, ToolSignal.HOLD, ""),
             ToolResult("b", 0, 60, ToolSignal.HOLD, "")], PRICE)
        assert rec.confidence == pytest.approx(45.0)

    def test_confidence_capped(self):
        assert combine_recommendation(factors(20, confidence=100.0), PRICE).confidence == 95.0

    def test_no_factors(self):
        rec = combine_recommendation([], PRICE)
        assert rec.action == RecommendationAction.HOLD
        assert rec.confidence == 0.0
        assert rec.strategy.target == PRICE
        assert rec.strategy.stop_loss == PRICE

    def test_no_price(self):
        assert combine_recommendation(factors(30), 0).action == RecommendationAction.HOLD
        assert combine_recommendation(factors(30), None).action == RecommendationAction.HOLD

    def test_to_dict(self):
        data = combine_recommendation(factors(6, 5), PRICE).to_dict()
        assert data['action'] == 'BUY_BULL'
        assert data['total_score'] == 11
        assert len(data['factors']) == 2
        assert data['strategy']['entry'] == PRICE


# ─────────────────────────────────────────────────────────────────
# TOOL RUNNER TESTS
# ─────────────────────────────────────────────────────────────────

class TestRunAnalysisTools:
    """Enabled tools, ordering and parallel evaluation."""

    def test_all_disabled(self, rising_bars):
        assert run_analysis_tools(rising_bars, 101.19, all_disabled()) == []

    def test_fixed_order(self, rising_bars):
        results = run_analysis_tools(rising_bars, 101.19)
        names = [r.name for r in results]
        assert names == [
            "Frequency Analyzer", "Momentum Pulse", "Volatility Window", "Micro-Pattern",
            "Smart Exit", "Reversal Meter", "Trade Timing", "Correlation Radar",
            "Risk/Minute",
        ]

    def test_single_tool(self, rising_bars):
        settings = all_disabled()
        settings.reversal_meter_enabled = True
        results = run_analysis_tools(rising_bars, 101.19, settings)
        assert [r.name for r in results] == ["Reversal Meter"]

    def test_parallel_matches_sequential(self, rising_bars):
        sequential = run_analysis_tools(rising_bars, 101.19)
        parallel = run_analysis_tools(rising_bars, 101.19, max_workers=len(TOOLS))
        assert parallel == sequential

    def test_default_now(self, rising_bars):
        assert run_analysis_tools(rising_bars, 101.19) == \
            run_analysis_tools(rising_bars, 101.19, now=rising_bars[-1].timestamp)

    def test_analyze(self, rising_bars):
        rec = analyze(rising_bars, 101.19)
        assert rec.factors == run_analysis_tools(rising_bars, 101.19)
        assert rec.total_score == sum(f.score for f in rec.factors)
        assert rec.confidence <= 95.0
