"""
Backtest Result and Trade dataclasses.

Provides structured, deterministic output from backtest runs.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
import json
import math
from pathlib import Path

import numpy as np
import pandas as pd

TRADING_DAYS_PER_YEAR = 252


class ExitReason(Enum):
    STOP_LOSS = "stop_loss"
    TAKE_PROFIT = "take_profit"
    END_OF_DATA = "end_of_data"


@dataclass(frozen=True)
class SimulatedTrade:
    """A completed round-trip trade."""
    entry_date: datetime
    entry_price: float
    exit_date: datetime
    exit_price: float
    amount: float  # SEK committed at entry
    profit_percent: float
    profit_sek: float
    type: str  # rule type of the rule that opened it
    exit_reason: ExitReason

    @property
    def hold_duration_seconds(self) -> float:
        return (self.exit_date - self.entry_date).total_seconds()

    @property
    def is_winner(self) -> bool:
        return self.profit_sek > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'entry_date': self.entry_date.isoformat(),
            'entry_price': self.entry_price,
            'exit_date': self.exit_date.isoformat(),
            'exit_price': self.exit_price,
            'amount': self.amount,
            'profit_percent': self.profit_percent,
            'profit_sek': self.profit_sek,
            'type': self.type,
            'exit_reason': self.exit_reason.value,
            'hold_duration_seconds': self.hold_duration_seconds,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SimulatedTrade':
        data = data.copy()
        data.pop('hold_duration_seconds', None)
        data['entry_date'] = datetime.fromisoformat(data['entry_date'])
        data['exit_date'] = datetime.fromisoformat(data['exit_date'])
        data['exit_reason'] = ExitReason(data['exit_reason'])
        return cls(**data)


@dataclass(frozen=True)
class EquityCurvePoint:
    """Equity (realized plus unrealized) at one processed bar."""
    date: datetime
    equity: float
    position_open: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'date': self.date.isoformat(),
            'equity': self.equity,
            'position_open': self.position_open,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EquityCurvePoint':
        return cls(
            date=datetime.fromisoformat(data['date']),
            equity=data['equity'],
            position_open=data.get('position_open', False),
        )


@dataclass
class BacktestResult:
    """
    Complete backtest result.

    Summary metrics are derived from the trade list in __post_init__;
    drawdown and the loss streak come from the simulation itself.
    """

    # Identification
    rule_name: str
    rule_type: str
    config_hash: str
    data_hash: str

    # Run info
    initial_capital: float
    bar_count: int
    start_date: Optional[datetime]
    end_date: Optional[datetime]

    trades: List[SimulatedTrade]
    equity_curve: List[EquityCurvePoint]

    max_drawdown_percent: float = 0.0
    max_consecutive_losses: int = 0

    # Derived metrics
    total_trades: int = field(init=False, default=0)
    winning_trades: int = field(init=False, default=0)
    losing_trades: int = field(init=False, default=0)
    win_rate: float = field(init=False, default=0.0)  # percent
    gross_profit: float = field(init=False, default=0.0)
    gross_loss: float = field(init=False, default=0.0)
    net_profit: float = field(init=False, default=0.0)
    avg_win: float = field(init=False, default=0.0)
    avg_loss: float = field(init=False, default=0.0)
    profit_factor: float = field(init=False, default=0.0)
    best_trade: float = field(init=False, default=0.0)
    worst_trade: float = field(init=False, default=0.0)
    avg_hold_duration_seconds: float = field(init=False, default=0.0)
    sharpe_ratio: Optional[float] = field(init=False, default=None)

    def __post_init__(self):
        self._calculate_metrics()

    def _calculate_metrics(self):
        """Calculate all metrics from trade list."""
        if not self.trades:
            return

        self.total_trades = len(self.trades)
        winners = [t for t in self.trades if t.is_winner]
        losers = [t for t in self.trades if not t.is_winner]

        self.winning_trades = len(winners)
        self.losing_trades = len(losers)
        self.win_rate = self.winning_trades / self.total_trades * 100

        self.gross_profit = sum(t.profit_sek for t in winners)
        self.gross_loss = abs(sum(t.profit_sek for t in losers))
        self.net_profit = self.gross_profit - self.gross_loss

        if winners:
            self.avg_win = self.gross_profit / len(winners)
        if losers:
            self.avg_loss = self.gross_loss / len(losers)

        if self.gross_loss > 0:
            self.profit_factor = self.gross_profit / self.gross_loss
        elif self.gross_profit > 0:
            self.profit_factor = float('inf')

        self.best_trade = max(t.profit_sek for t in self.trades)
        self.worst_trade = min(t.profit_sek for t in self.trades)
        self.avg_hold_duration_seconds = (
            sum(t.hold_duration_seconds for t in self.trades) / self.total_trades
        )

        # Simplified Sharpe over per-trade percent returns
        returns = np.array([t.profit_percent for t in self.trades])
        if len(returns) > 1:
            std = float(returns.std(ddof=1))
            if std > 0:
                self.sharpe_ratio = float(
                    returns.mean() / std * math.sqrt(TRADING_DAYS_PER_YEAR))

    @property
    def final_equity(self) -> float:
        return self.initial_capital + self.net_profit

    @property
    def total_return_percent(self) -> float:
        if self.initial_capital == 0:
            return 0.0
        return self.net_profit / self.initial_capital * 100

    def equity_frame(self) -> pd.DataFrame:
        """Equity curve as a DataFrame indexed by date."""
        df = pd.DataFrame(
            [(p.equity, p.position_open) for p in self.equity_curve],
            columns=['equity', 'position_open'],
            index=pd.DatetimeIndex([p.date for p in self.equity_curve], name='date'),
        )
        return df

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            'rule_name': self.rule_name,
            'rule_type': self.rule_type,
            'config_hash': self.config_hash,
            'data_hash': self.data_hash,
            'initial_capital': self.initial_capital,
            'bar_count': self.bar_count,
            'start_date': self.start_date.isoformat() if self.start_date else None,
            'end_date': self.end_date.isoformat() if self.end_date else None,
            'trades': [t.to_dict() for t in self.trades],
            'equity_curve': [p.to_dict() for p in self.equity_curve],
            'metrics': {
                'total_trades': self.total_trades,
                'winning_trades': self.winning_trades,
                'losing_trades': self.losing_trades,
                'win_rate': self.win_rate,
                'gross_profit': self.gross_profit,
                'gross_loss': self.gross_loss,
                'net_profit': self.net_profit,
                'total_return_percent': self.total_return_percent,
                'final_equity': self.final_equity,
                'avg_win': self.avg_win,
                'avg_loss': self.avg_loss,
                'profit_factor': self.profit_factor,
                'best_trade': self.best_trade,
                'worst_trade': self.worst_trade,
                'avg_hold_duration_seconds': self.avg_hold_duration_seconds,
                'sharpe_ratio': self.sharpe_ratio,
                'max_drawdown_percent': self.max_drawdown_percent,
                'max_consecutive_losses': self.max_consecutive_losses,
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BacktestResult':
        """Rebuild a result; derived metrics are recomputed from the trades."""
        metrics = data.get('metrics', {})
        start, end = data.get('start_date'), data.get('end_date')
        return cls(
            rule_name=data['rule_name'],
            rule_type=data['rule_type'],
            config_hash=data['config_hash'],
            data_hash=data['data_hash'],
            initial_capital=data['initial_capital'],
            bar_count=data['bar_count'],
            start_date=datetime.fromisoformat(start) if start else None,
            end_date=datetime.fromisoformat(end) if end else None,
            trades=[SimulatedTrade.from_dict(t) for t in data.get('trades', [])],
            equity_curve=[EquityCurvePoint.from_dict(p)
                          for p in data.get('equity_curve', [])],
            max_drawdown_percent=metrics.get('max_drawdown_percent', 0.0),
            max_consecutive_losses=metrics.get('max_consecutive_losses', 0),
        )

    def save(self, path: str):
        """Save result to JSON file."""
        filepath = Path(path)
        filepath.parent.mkdir(parents=True, exist_ok=True)

        with open(filepath, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, path: str) -> 'BacktestResult':
        """Load result from JSON file."""
        with open(path, 'r') as f:
            return cls.from_dict(json.load(f))

    def summary(self) -> str:
        """Get human-readable summary."""
        sharpe = f"{self.sharpe_ratio:.2f}" if self.sharpe_ratio is not None else "n/a"
        return f"""
Backtest Result: {self.rule_name} ({self.rule_type})
{'='*50}
Config Hash: {self.config_hash}   Data Hash: {self.data_hash}
Period: {self.start_date} to {self.end_date} ({self.bar_count} bars)

Performance:
  Total Trades: {self.total_trades}
  Win Rate: {self.win_rate:.1f}%
  Net Profit: {self.net_profit:,.2f} SEK ({self.total_return_percent:+.2f}%)
  Profit Factor: {self.profit_factor:.2f}
  Avg Win / Loss: {self.avg_win:,.2f} / {self.avg_loss:,.2f} SEK
  Best / Worst: {self.best_trade:,.2f} / {self.worst_trade:,.2f} SEK

Risk:
  Max Drawdown: {self.max_drawdown_percent:.2f}%
  Max Consecutive Losses: {self.max_consecutive_losses}
  Sharpe Ratio: {sharpe}
"""
