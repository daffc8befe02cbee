"""
Tests for the Backtest Engine and BacktestResult.
"""

import json
import math

import numpy as np
import pytest

from signal_engine.backtest.engine import BacktestEngine, run_backtest, run_backtests
from signal_engine.backtest.result import BacktestResult, ExitReason
from signal_engine.config import BacktestConfig
from signal_engine.errors import InsufficientDataError, InvalidRuleError
from signal_engine.rules.conditions import PriceChangeCondition, RSICondition
from signal_engine.rules.rule import ActionConfig, AmountType, Rule, RuleType

CAPITAL = 100_000.0


# ─────────────────────────────────────────────────────────────────
# FIXTURES
# ─────────────────────────────────────────────────────────────────

def make_rule(conditions=(RSICondition('>', 0.0),), **kwargs):
    """RSI > 0 fires on any bar whose recent closes never fell."""
    return Rule(name="always-long", rule_type=RuleType.BUY,
                conditions=tuple(conditions), **kwargs)


@pytest.fixture
def take_profit_bars(bar_factory):
    """Flat at 100, climbs to 103.1 by bar 29, then flat."""
    closes = [100.0] * 27 + [101.0, 102.0] + [103.1] * 31
    return bar_factory(closes)


@pytest.fixture
def stop_loss_bars(bar_factory):
    """Flat at 100, drops 6% on bar 27, then flat."""
    return bar_factory([100.0] * 27 + [94.0] * 33)


@pytest.fixture
def choppy_bars(bar_factory):
    closes = [100 + 4 * math.sin(i / 2) for i in range(120)]
    return bar_factory(closes)


# ─────────────────────────────────────────────────────────────────
# VALIDATION TESTS
# ─────────────────────────────────────────────────────────────────

class TestValidation:
    """Runs that must be refused."""

    def test_insufficient_data(self, bar_factory):
        with pytest.raises(InsufficientDataError) as exc:
            run_backtest(make_rule(), bar_factory([100.0] * 10), CAPITAL)
        assert exc.value.available == 10
        assert exc.value.required == 50

    def test_insufficient_data_is_value_error(self, bar_factory):
        with pytest.raises(ValueError):
            run_backtest(make_rule(), bar_factory([100.0] * 49), CAPITAL)

    def test_empty_conditions(self, flat_bars):
        with pytest.raises(InvalidRuleError):
            run_backtest(make_rule(conditions=()), flat_bars, CAPITAL)


# ─────────────────────────────────────────────────────────────────
# EXIT TESTS
# ─────────────────────────────────────────────────────────────────

class TestExits:
    """Take-profit, stop-loss and forced liquidation."""

    def test_take_profit_bar(self, take_profit_bars):
        rule = make_rule(stop_loss_percent=2.0, take_profit_percent=3.0)
        result = run_backtest(rule, take_profit_bars, CAPITAL)

        first = result.trades[0]
        assert first.entry_date == take_profit_bars[26].timestamp
        assert first.exit_date == take_profit_bars[29].timestamp
        assert first.exit_price == 103.1
        assert first.exit_reason == ExitReason.TAKE_PROFIT
        assert first.amount == pytest.approx(1_000.0)
        assert first.profit_sek == pytest.approx(31.0)

    def test_reentry_on_exit_bar(self, take_profit_bars):
        rule = make_rule(stop_loss_percent=2.0, take_profit_percent=3.0)
        result = run_backtest(rule, take_profit_bars, CAPITAL)

        second = result.trades[1]
        assert second.entry_date == take_profit_bars[29].timestamp
        assert second.exit_date == take_profit_bars[-1].timestamp
        assert second.exit_reason == ExitReason.END_OF_DATA
        assert second.profit_sek == pytest.approx(0.0)

    def test_take_profit_metrics(self, take_profit_bars):
        rule = make_rule(stop_loss_percent=2.0, take_profit_percent=3.0)
        result = run_backtest(rule, take_profit_bars, CAPITAL)

        assert result.total_trades == 2
        assert result.win_rate == pytest.approx(50.0)
        assert result.profit_factor == float('inf')
        assert result.max_consecutive_losses == 0
        assert result.max_drawdown_percent == pytest.approx(0.0)
        assert result.final_equity == pytest.approx(CAPITAL + 31.0)

    def test_default_stop_loss(self, stop_loss_bars):
        result = run_backtest(make_rule(), stop_loss_bars, CAPITAL)

        first = result.trades[0]
        assert first.exit_reason == ExitReason.STOP_LOSS
        assert first.exit_date == stop_loss_bars[27].timestamp
        assert first.profit_sek == pytest.approx(-60.0)
        assert result.max_consecutive_losses == 1
        assert result.max_drawdown_percent == pytest.approx(0.06)
        assert result.equity_curve[1].equity == pytest.approx(CAPITAL - 60.0)

    def test_stop_loss_metrics(self, stop_loss_bars):
        result = run_backtest(make_rule(), stop_loss_bars, CAPITAL)
        assert result.gross_profit == 0.0
        assert result.gross_loss == pytest.approx(60.0)
        assert result.profit_factor == 0.0
        assert result.avg_loss == pytest.approx(30.0)
        assert result.worst_trade == pytest.approx(-60.0)

    def test_no_trades(self, flat_bars):
        result = run_backtest(make_rule(conditions=(RSICondition('<', 0.0),)),
                              flat_bars, CAPITAL)
        assert result.trades == []
        assert result.win_rate == 0.0
        assert result.profit_factor == 0.0
        assert result.sharpe_ratio is None
        assert result.max_drawdown_percent == 0.0


# ─────────────────────────────────────────────────────────────────
# INVARIANT TESTS
# ─────────────────────────────────────────────────────────────────

class TestInvariants:
    """Single position, equity curve and determinism."""

    def test_one_position_at_a_time(self, choppy_bars):
        rule = make_rule(conditions=(PriceChangeCondition(),),
                         stop_loss_percent=1.0, take_profit_percent=1.0)
        result = run_backtest(rule, choppy_bars, CAPITAL)

        assert result.total_trades > 1
        for previous, trade in zip(result.trades, result.trades[1:]):
            assert trade.entry_date >= previous.exit_date
        for trade in result.trades:
            assert trade.entry_date < trade.exit_date

    def test_equity_sample_per_processed_bar(self, choppy_bars):
        result = run_backtest(make_rule(conditions=(PriceChangeCondition(),)),
                              choppy_bars, CAPITAL)
        assert len(result.equity_curve) == len(choppy_bars) - 26
        assert result.equity_curve[0].date == choppy_bars[26].timestamp

    def test_last_bar_is_flat(self, choppy_bars):
        result = run_backtest(make_rule(conditions=(PriceChangeCondition(),)),
                              choppy_bars, CAPITAL)
        assert not result.equity_curve[-1].position_open
        assert result.equity_curve[-1].equity == pytest.approx(result.final_equity)

    def test_drawdown_non_negative(self, choppy_bars):
        result = run_backtest(make_rule(conditions=(PriceChangeCondition(),)),
                              choppy_bars, CAPITAL)
        assert result.max_drawdown_percent >= 0.0

    def test_deterministic(self, choppy_bars):
        rule = make_rule(conditions=(PriceChangeCondition(),),
                         stop_loss_percent=1.0, take_profit_percent=1.0)
        first = run_backtest(rule, choppy_bars, CAPITAL).to_dict()
        second = run_backtest(rule, choppy_bars, CAPITAL).to_dict()
        assert json.dumps(first, sort_keys=True) == json.dumps(second, sort_keys=True)

    def test_engine_reusable(self, choppy_bars, stop_loss_bars):
        engine = BacktestEngine()
        rule = make_rule()
        engine.run(rule, choppy_bars, CAPITAL)
        assert engine.run(rule, stop_loss_bars, CAPITAL).to_dict() == \
            run_backtest(rule, stop_loss_bars, CAPITAL).to_dict()


# ─────────────────────────────────────────────────────────────────
# SIZING TESTS
# ─────────────────────────────────────────────────────────────────

class TestPositionSizing:
    """Configured amount, capped at 10% of equity."""

    def test_sek_amount_capped(self, stop_loss_bars):
        rule = make_rule(action_config=ActionConfig(amount_type=AmountType.SEK, amount=50_000))
        result = run_backtest(rule, stop_loss_bars, CAPITAL)
        assert result.trades[0].amount == pytest.approx(10_000.0)

    def test_sek_amount_below_cap(self, stop_loss_bars):
        rule = make_rule(action_config=ActionConfig(amount_type=AmountType.SEK, amount=2_000))
        result = run_backtest(rule, stop_loss_bars, CAPITAL)
        assert result.trades[0].amount == pytest.approx(2_000.0)

    def test_percent_amount(self, stop_loss_bars):
        rule = make_rule(action_config=ActionConfig(amount_type=AmountType.PERCENT, amount=5))
        result = run_backtest(rule, stop_loss_bars, CAPITAL)
        assert result.trades[0].amount == pytest.approx(5_000.0)

    def test_units_amount(self, stop_loss_bars):
        rule = make_rule(action_config=ActionConfig(amount_type=AmountType.UNITS, amount=30))
        result = run_backtest(rule, stop_loss_bars, CAPITAL)
        assert result.trades[0].amount == pytest.approx(3_000.0)

    def test_default_amount(self, stop_loss_bars):
        result = run_backtest(make_rule(), stop_loss_bars, 1_000_000.0)
        assert result.trades[0].amount == pytest.approx(1_000.0)

    def test_zero_amount_uses_default(self, stop_loss_bars):
        rule = make_rule(action_config=ActionConfig(amount_type=AmountType.SEK, amount=0))
        result = run_backtest(rule, stop_loss_bars, CAPITAL)
        assert result.trades[0].amount == pytest.approx(1_000.0)

    def test_small_account(self, stop_loss_bars):
        result = run_backtest(make_rule(), stop_loss_bars, 5_000.0)
        assert result.trades[0].amount == pytest.approx(500.0)

    def test_custom_config(self, bar_factory):
        config = BacktestConfig(min_data_points=20, warmup_bars=10)
        result = run_backtest(make_rule(), bar_factory([100.0] * 20), CAPITAL, config)
        assert len(result.equity_curve) == 10


# ─────────────────────────────────────────────────────────────────
# RESULT TESTS
# ─────────────────────────────────────────────────────────────────

class TestBacktestResult:
    """Serialization, summary and batch runs."""

    def test_save_load(self, take_profit_bars, tmp_path):
        rule = make_rule(stop_loss_percent=2.0, take_profit_percent=3.0)
        result = run_backtest(rule, take_profit_bars, CAPITAL)
        path = tmp_path / "results" / "run.json"
        result.save(str(path))

        loaded = BacktestResult.load(str(path))
        assert loaded.to_dict() == result.to_dict()
        assert loaded.trades[0].exit_reason == ExitReason.TAKE_PROFIT

    def test_trade_dict(self, take_profit_bars):
        rule = make_rule(stop_loss_percent=2.0, take_profit_percent=3.0)
        trade = run_backtest(rule, take_profit_bars, CAPITAL).trades[0].to_dict()
        assert trade['type'] == 'BUY'
        assert trade['exit_reason'] == 'take_profit'
        assert trade['hold_duration_seconds'] == 180.0

    def test_hashes(self, take_profit_bars, stop_loss_bars):
        rule = make_rule()
        a = run_backtest(rule, take_profit_bars, CAPITAL)
        b = run_backtest(rule, stop_loss_bars, CAPITAL)
        c = run_backtest(rule, take_profit_bars, 50_000.0)
        assert a.config_hash == b.config_hash
        assert a.data_hash != b.data_hash
        assert a.config_hash != c.config_hash

    def test_summary(self, take_profit_bars):
        summary = run_backtest(make_rule(), take_profit_bars, CAPITAL).summary()
        assert "always-long" in summary
        assert "Win Rate" in summary

    def test_equity_frame(self, take_profit_bars):
        result = run_backtest(make_rule(), take_profit_bars, CAPITAL)
        frame = result.equity_frame()
        assert len(frame) == len(result.equity_curve)
        assert list(frame.columns) == ['equity', 'position_open']

    def test_sharpe(self, bar_factory):
        closes = [100.0] * 27 + [102.0, 99.96] + [103.0] * 31
        rule = make_rule(conditions=(PriceChangeCondition(),),
                         stop_loss_percent=1.0, take_profit_percent=1.0)
        result = run_backtest(rule, bar_factory(closes), CAPITAL)

        returns = [t.profit_percent for t in result.trades]
        assert returns == pytest.approx([2.0, -2.0, 304 / 99.96, 0.0])
        expected = np.mean(returns) / np.std(returns, ddof=1) * math.sqrt(252)
        assert result.sharpe_ratio == pytest.approx(expected)
        assert result.sharpe_ratio == pytest.approx(5.409, rel=1e-3)

    def test_sharpe_undefined(self, take_profit_bars):
        data = run_backtest(make_rule(), take_profit_bars, CAPITAL).to_dict()
        single = BacktestResult.from_dict({**data, 'trades': data['trades'][:1]})
        assert single.sharpe_ratio is None

    def test_run_backtests(self, take_profit_bars):
        rules = [make_rule(), make_rule(conditions=())]
        results = run_backtests(rules, take_profit_bars, CAPITAL, max_workers=2)
        assert len(results) == 2
        assert results[0].to_dict() == run_backtest(rules[0], take_profit_bars, CAPITAL).to_dict()
        assert results[1] is None
