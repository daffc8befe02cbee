"""
Exception types raised by the Signal Engine.
"""


class SignalEngineError(Exception):
    """Base class for all engine errors."""


class InsufficientDataError(SignalEngineError, ValueError):
    """Not enough price history to run a backtest."""

    def __init__(self, available: int, required: int):
        self.available = available
        self.required = required
        super().__init__(
            f"Insufficient price data: {available} bars, need at least {required}"
        )


class InvalidRuleError(SignalEngineError, ValueError):
    """Malformed rule definition."""
