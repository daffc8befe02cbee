"""
Configuration module for the BULL/BEAR Signal Engine.

Contains indicator periods, backtest parameters and the analysis tool
settings, with YAML load/save helpers.
"""

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, Tuple
from pathlib import Path
import yaml


@dataclass
class IndicatorConfig:
    """Indicator calculation configuration."""
    rsi_period: int = 14
    macd_fast: int = 12
    macd_slow: int = 26
    macd_signal: int = 9
    bollinger_period: int = 20
    bollinger_std: float = 2.0
    atr_period: int = 14
    sma_periods: Tuple[int, ...] = (5, 10, 20, 50)


@dataclass
class BacktestConfig:
    """Backtest simulation configuration."""
    min_data_points: int = 50
    warmup_bars: int = 26  # First bar at which rules may fire
    max_position_pct: float = 0.10  # Max 10% of equity per trade
    default_position_size: float = 1_000.0  # SEK, when the rule sets no amount
    default_stop_loss_percent: float = 5.0
    default_take_profit_percent: float = 3.0


@dataclass
class ToolSettings:
    """Enable flags and tuning knobs for the nine analysis tools."""
    frequency_analyzer_enabled: bool = True
    momentum_pulse_enabled: bool = True
    volatility_window_enabled: bool = True
    micro_pattern_enabled: bool = True
    smart_exit_enabled: bool = True
    reversal_meter_enabled: bool = True
    timing_score_enabled: bool = True
    correlation_radar_enabled: bool = True
    risk_per_minute_enabled: bool = True
    frequency_lookback_days: int = 30
    momentum_sensitivity: float = 1.0
    volatility_window_hours: int = 168

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ToolSettings':
        """Build settings from a stored row, ignoring unknown columns."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in (data or {}).items() if k in known})


@dataclass
class Config:
    """Main configuration container."""
    name: str = "SignalEngine"
    initial_capital: float = 100_000.0
    indicators: IndicatorConfig = field(default_factory=IndicatorConfig)
    backtest: BacktestConfig = field(default_factory=BacktestConfig)
    tools: ToolSettings = field(default_factory=ToolSettings)


_SECTIONS = ('indicators', 'backtest', 'tools')


def load_config(config_path: str = None) -> Config:
    """
    Load configuration from YAML file or use defaults.

    Args:
        config_path: Path to YAML config file (optional)

    Returns:
        Config object with all settings
    """
    config = Config()
    if not config_path or not Path(config_path).exists():
        return config

    with open(config_path, 'r') as f:
        yaml_config = yaml.safe_load(f) or {}

    for key in ('name', 'initial_capital'):
        if key in yaml_config:
            setattr(config, key, yaml_config[key])

    # Merge each section over its defaults
    for section in _SECTIONS:
        target = getattr(config, section)
        for key, value in (yaml_config.get(section) or {}).items():
            if not hasattr(target, key):
                raise ValueError(f"Unknown config key '{section}.{key}'")
            if key == 'sma_periods':
                value = tuple(value)
            setattr(target, key, value)
    return config


def save_config(config: Config, config_path: str):
    """Save configuration to YAML file."""
    config_dict = {
        'name': config.name,
        'initial_capital': config.initial_capital,
    }
    for section in _SECTIONS:
        section_dict = asdict(getattr(config, section))
        if 'sma_periods' in section_dict:
            section_dict['sma_periods'] = list(section_dict['sma_periods'])
        config_dict[section] = section_dict
    with open(config_path, 'w') as f:
        yaml.dump(config_dict, f, default_flow_style=False)


# Default configuration instance
DEFAULT_CONFIG = Config()
