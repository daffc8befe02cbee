"""
Backtest module for the Signal Engine.

Provides:
- Deterministic, bar-by-bar rule backtest engine
- Trade, equity curve and result records with JSON persistence
- Concurrent batch runs over several rules
"""

from .engine import BacktestEngine, Position, run_backtest, run_backtests
from .result import BacktestResult, EquityCurvePoint, ExitReason, SimulatedTrade

__all__ = [
    'BacktestEngine',
    'Position',
    'run_backtest',
    'run_backtests',
    'BacktestResult',
    'EquityCurvePoint',
    'ExitReason',
    'SimulatedTrade',
]
