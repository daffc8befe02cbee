"""
Analysis module for the Signal Engine.

Provides:
- Nine independent heuristic analysis tools
- The aggregator combining them into a BULL/BEAR recommendation
"""

from .base import ToolResult, ToolSignal
from .momentum import momentum_pulse, frequency_analyzer
from .timing import volatility_window, trade_timing_score, is_market_open
from .reversal import reversal_meter, micro_pattern_scanner, detect_micro_patterns
from .risk import smart_exit_optimizer, risk_per_minute, optimal_exit
from .correlation import correlation_radar
from .aggregator import (
    TOOLS,
    RecommendationAction,
    TradeStrategy,
    CombinedRecommendation,
    run_analysis_tools,
    combine_recommendation,
    analyze,
)

__all__ = [
    'ToolResult',
    'ToolSignal',
    'momentum_pulse',
    'frequency_analyzer',
    'volatility_window',
    'trade_timing_score',
    'is_market_open',
    'reversal_meter',
    'micro_pattern_scanner',
    'detect_micro_patterns',
    'smart_exit_optimizer',
    'risk_per_minute',
    'optimal_exit',
    'correlation_radar',
    'TOOLS',
    'RecommendationAction',
    'TradeStrategy',
    'CombinedRecommendation',
    'run_analysis_tools',
    'combine_recommendation',
    'analyze',
]
