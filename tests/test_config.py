"""
Tests for configuration loading and saving.
"""

import pytest
import yaml

from signal_engine.config import Config, ToolSettings, load_config, save_config


class TestConfig:

    def test_defaults(self):
        config = load_config()
        assert config.initial_capital == 100_000.0
        assert config.backtest.min_data_points == 50
        assert config.backtest.default_stop_loss_percent == 5.0
        assert config.backtest.default_take_profit_percent == 3.0
        assert config.indicators.sma_periods == (5, 10, 20, 50)
        assert config.tools.volatility_window_hours == 168

    def test_missing_file_uses_defaults(self, tmp_path):
        assert load_config(str(tmp_path / "nope.yaml")) == Config()

    def test_partial_override(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.dump({
            'initial_capital': 50_000,
            'backtest': {'default_stop_loss_percent': 2.5},
            'indicators': {'sma_periods': [3, 7]},
            'tools': {'smart_exit_enabled': False},
        }))
        config = load_config(str(path))
        assert config.initial_capital == 50_000
        assert config.backtest.default_stop_loss_percent == 2.5
        assert config.backtest.default_take_profit_percent == 3.0
        assert config.indicators.sma_periods == (3, 7)
        assert config.tools.smart_exit_enabled is False
        assert config.tools.momentum_pulse_enabled is True

    def test_unknown_key(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.dump({'backtest': {'leverage': 3}}))
        with pytest.raises(ValueError):
            load_config(str(path))

    def test_save_load(self, tmp_path):
        config = Config(name="brent", initial_capital=25_000.0)
        config.tools.momentum_sensitivity = 2.0
        path = tmp_path / "config.yaml"
        save_config(config, str(path))
        assert load_config(str(path)) == config


class TestToolSettings:

    def test_all_enabled_by_default(self):
        settings = ToolSettings()
        flags = [v for k, v in settings.to_dict().items() if k.endswith('_enabled')]
        assert len(flags) == 9
        assert all(flags)

    def test_from_dict_ignores_unknown(self):
        settings = ToolSettings.from_dict({
            'momentum_sensitivity': 1.5,
            'user_id': 'abc',
            'created_at': '2024-01-01',
        })
        assert settings.momentum_sensitivity == 1.5
        assert settings.frequency_lookback_days == 30

    def test_from_dict_none(self):
        assert ToolSettings.from_dict(None) == ToolSettings()
