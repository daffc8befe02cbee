"""
BULL/BEAR Signal Engine.

Rule-based signal generation, backtesting and multi-tool analysis for
leveraged oil certificates.

Main entry points:
    compute_indicators(bars)
    evaluate_rule(rule, bars, index)
    run_backtest(rule, bars, initial_capital)
    run_analysis_tools(bars, current_price, settings, now=None)
    combine_recommendation(factors, current_price)
"""

from .config import Config, ToolSettings, load_config, save_config
from .errors import SignalEngineError, InsufficientDataError, InvalidRuleError
from .data.price_bar import PriceBar, bars_from_frame, bars_from_records, bars_to_frame
from .indicators.calculator import IndicatorSet, compute_indicators
from .rules.rule import Rule, rule_from_dict
from .rules.engine import evaluate_rule
from .backtest.engine import run_backtest, run_backtests
from .backtest.result import BacktestResult
from .analysis.base import ToolResult, ToolSignal
from .analysis.aggregator import (
    CombinedRecommendation,
    RecommendationAction,
    analyze,
    combine_recommendation,
    run_analysis_tools,
)

__version__ = "1.0.0"

__all__ = [
    'Config',
    'ToolSettings',
    'load_config',
    'save_config',
    'SignalEngineError',
    'InsufficientDataError',
    'InvalidRuleError',
    'PriceBar',
    'bars_from_frame',
    'bars_from_records',
    'bars_to_frame',
    'IndicatorSet',
    'compute_indicators',
    'Rule',
    'rule_from_dict',
    'evaluate_rule',
    'run_backtest',
    'run_backtests',
    'BacktestResult',
    'ToolResult',
    'ToolSignal',
    'CombinedRecommendation',
    'RecommendationAction',
    'analyze',
    'combine_recommendation',
    'run_analysis_tools',
]
