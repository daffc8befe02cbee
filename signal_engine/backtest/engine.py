"""
Deterministic Backtest Engine.

Bar-by-bar simulation of a single trading rule:
- At most one open position, sized with a fixed 10% equity cap
- Stop-loss / take-profit exits on the bar close
- Forced liquidation on the last bar
- Reproducibility via config and data hashing
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import List, Optional, Sequence
import hashlib
import json
import logging

from ..config import BacktestConfig
from ..data.price_bar import PriceBar
from ..errors import InsufficientDataError, InvalidRuleError, SignalEngineError
from ..rules.engine import evaluate_rule
from ..rules.rule import AmountType, Rule
from .result import BacktestResult, EquityCurvePoint, ExitReason, SimulatedTrade

logger = logging.getLogger(__name__)


@dataclass
class Position:
    """Open position during a backtest."""
    entry_date: datetime
    entry_price: float
    amount: float

    def profit_percent(self, price: float) -> float:
        return (price - self.entry_price) / self.entry_price * 100


class BacktestEngine:
    """
    Replays a rule over historical bars.

    Each processed bar runs, in order: exit check for the open position,
    entry check when flat, equity sample. A position closed on a bar may
    be re-entered on that same bar.
    """

    def __init__(self, config: BacktestConfig = None):
        """
        Initialize backtest engine.

        Args:
            config: Backtest configuration
        """
        self.config = config or BacktestConfig()
        self._reset(0.0)

    def _reset(self, initial_capital: float):
        """Reset engine state."""
        self._equity = initial_capital
        self._position: Optional[Position] = None
        self._trades: List[SimulatedTrade] = []
        self._equity_curve: List[EquityCurvePoint] = []
        self._peak = initial_capital
        self._max_drawdown_percent = 0.0
        self._consecutive_losses = 0
        self._max_consecutive_losses = 0

    def run(self, rule: Rule, bars: Sequence[PriceBar],
            initial_capital: float) -> BacktestResult:
        """
        Run the backtest.

        Args:
            rule: Rule whose signals open positions
            bars: Price history, oldest first
            initial_capital: Starting equity in SEK

        Returns:
            BacktestResult with trades, equity curve and metrics

        Raises:
            InsufficientDataError: fewer bars than config.min_data_points
            InvalidRuleError: rule has no conditions
        """
        if len(bars) < self.config.min_data_points:
            logger.warning(f"Backtest of '{rule.name}' refused: "
                           f"{len(bars)} bars < {self.config.min_data_points}")
            raise InsufficientDataError(len(bars), self.config.min_data_points)
        if not rule.conditions:
            raise InvalidRuleError(f"Rule '{rule.name}' has no conditions")

        logger.info(f"Starting backtest: '{rule.name}' on {len(bars)} bars, "
                    f"capital {initial_capital:,.2f} SEK")
        self._reset(initial_capital)

        stop_loss = rule.stop_loss_percent or self.config.default_stop_loss_percent
        take_profit = rule.take_profit_percent or self.config.default_take_profit_percent
        last_index = len(bars) - 1

        for i in range(self.config.warmup_bars, len(bars)):
            self._process_bar(rule, bars, i, last_index, stop_loss, take_profit,
                              initial_capital)

        result = BacktestResult(
            rule_name=rule.name,
            rule_type=rule.rule_type.value,
            config_hash=self._config_hash(rule, initial_capital),
            data_hash=self._hash_data(bars),
            initial_capital=initial_capital,
            bar_count=len(bars),
            start_date=bars[0].timestamp,
            end_date=bars[-1].timestamp,
            trades=list(self._trades),
            equity_curve=list(self._equity_curve),
            max_drawdown_percent=self._max_drawdown_percent,
            max_consecutive_losses=self._max_consecutive_losses,
        )

        logger.info(f"Backtest complete: {result.total_trades} trades, "
                    f"net profit {result.net_profit:,.2f} SEK")
        return result

    def _process_bar(self, rule: Rule, bars: Sequence[PriceBar], index: int,
                     last_index: int, stop_loss: float, take_profit: float,
                     initial_capital: float):
        bar = bars[index]

        if self._position is not None:
            pct = self._position.profit_percent(bar.close)
            reason = None
            if pct <= -stop_loss:
                reason = ExitReason.STOP_LOSS
            elif pct >= take_profit:
                reason = ExitReason.TAKE_PROFIT
            elif index == last_index:
                reason = ExitReason.END_OF_DATA
            if reason is not None:
                self._close_position(rule, bar, pct, reason)

        # No entries on the last bar: nothing would close them
        if self._position is None and index < last_index and evaluate_rule(rule, bars, index):
            self._open_position(rule, bar, initial_capital)

        self._track_equity(bar)

    def _position_amount(self, rule: Rule, price: float, initial_capital: float) -> float:
        """SEK to commit: the configured amount capped at max_position_pct of equity."""
        action = rule.action_config
        if action.amount > 0:
            if action.amount_type == AmountType.SEK:
                configured = action.amount
            elif action.amount_type == AmountType.PERCENT:
                configured = initial_capital * action.amount / 100
            else:
                configured = action.amount * price
        else:
            configured = self.config.default_position_size
        return min(configured, self._equity * self.config.max_position_pct)

    def _open_position(self, rule: Rule, bar: PriceBar, initial_capital: float):
        if bar.close <= 0:
            return
        amount = self._position_amount(rule, bar.close, initial_capital)
        if amount <= 0:
            logger.debug(f"Skipped entry at {bar.timestamp}: no equity available")
            return
        self._position = Position(bar.timestamp, bar.close, amount)
        logger.debug(f"Opened position at {bar.close:.2f} ({amount:,.2f} SEK)")

    def _close_position(self, rule: Rule, bar: PriceBar, pct: float,
                        reason: ExitReason):
        position = self._position
        profit = pct / 100 * position.amount
        self._equity += profit

        self._trades.append(SimulatedTrade(
            entry_date=position.entry_date,
            entry_price=position.entry_price,
            exit_date=bar.timestamp,
            exit_price=bar.close,
            amount=position.amount,
            profit_percent=pct,
            profit_sek=profit,
            type=rule.rule_type.value,
            exit_reason=reason,
        ))

        if profit < 0:
            self._consecutive_losses += 1
            self._max_consecutive_losses = max(self._max_consecutive_losses,
                                               self._consecutive_losses)
        else:
            self._consecutive_losses = 0

        self._position = None
        logger.debug(f"Closed position at {bar.close:.2f}: {profit:,.2f} SEK ({reason.value})")

    def _track_equity(self, bar: PriceBar):
        """Track equity curve and drawdown."""
        unrealized = 0.0
        if self._position is not None:
            unrealized = self._position.profit_percent(bar.close) / 100 * self._position.amount

        equity = self._equity + unrealized
        self._equity_curve.append(EquityCurvePoint(
            date=bar.timestamp,
            equity=equity,
            position_open=self._position is not None,
        ))

        self._peak = max(self._peak, equity)
        if self._peak > 0:
            drawdown = (self._peak - equity) / self._peak * 100
            self._max_drawdown_percent = max(self._max_drawdown_percent, drawdown)

    def _config_hash(self, rule: Rule, initial_capital: float) -> str:
        """Generate deterministic hash of rule and configuration."""
        config_dict = {
            'config': asdict(self.config),
            'rule': rule.to_dict(),
            'initial_capital': initial_capital,
        }
        config_str = json.dumps(config_dict, sort_keys=True)
        return hashlib.md5(config_str.encode()).hexdigest()[:8]

    def _hash_data(self, bars: Sequence[PriceBar]) -> str:
        """Generate hash of input data for reproducibility."""
        data_str = "|".join(f"{b.timestamp.isoformat()}:{b.close}" for b in bars)
        return hashlib.md5(data_str.encode()).hexdigest()[:8]


def run_backtest(rule: Rule, bars: Sequence[PriceBar], initial_capital: float,
                 config: BacktestConfig = None) -> BacktestResult:
    """Backtest a single rule with a fresh engine."""
    return BacktestEngine(config).run(rule, bars, initial_capital)


def run_backtests(rules: Sequence[Rule], bars: Sequence[PriceBar],
                  initial_capital: float, config: BacktestConfig = None,
                  max_workers: int = 4) -> List[Optional[BacktestResult]]:
    """
    Backtest several rules concurrently.

    Args:
        rules: Rules to test
        bars: Shared price history
        initial_capital: Starting equity for each run
        config: Backtest configuration
        max_workers: Thread pool size

    Returns:
        One result per rule in input order; None where the run was refused
    """
    results: List[Optional[BacktestResult]] = [None] * len(rules)

    def run_one(index: int):
        try:
            return index, run_backtest(rules[index], bars, initial_capital, config)
        except SignalEngineError as e:
            logger.error(f"Backtest of '{rules[index].name}' failed: {e}")
            return index, None

    logger.info(f"Running {len(rules)} backtests...")

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = [executor.submit(run_one, i) for i in range(len(rules))]
        for future in as_completed(futures):
            index, result = future.result()
            results[index] = result

    successful = sum(1 for r in results if r is not None)
    logger.info(f"Completed {successful}/{len(rules)} backtests")
    return results
