"""
Command-line entry point.

Loads price bars from CSV, then backtests rules and/or runs the
analysis tools on them:

    python -m signal_engine --prices brent.csv --rule rsi_rule.yaml
    python -m signal_engine --prices brent.csv --analyze
"""

import argparse
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import List

import pandas as pd
import yaml

from .analysis.aggregator import analyze
from .backtest.engine import run_backtests
from .config import load_config
from .data.price_bar import PriceBar, bars_from_frame
from .indicators.calculator import IndicatorCalculator
from .indicators.signals import generate_indicator_signal
from .rules.rule import Rule, rule_from_dict

logger = logging.getLogger(__name__)


def load_bars(path: str) -> List[PriceBar]:
    """Read OHLC bars from a CSV with a timestamp column."""
    df = pd.read_csv(path, parse_dates=['timestamp'])
    bars = bars_from_frame(df)
    logger.info(f"Loaded {len(bars)} bars from {path}")
    return bars


def load_rules(path: str) -> List[Rule]:
    """Read one rule, or a list of rules, from a YAML file."""
    with open(path, 'r') as f:
        data = yaml.safe_load(f)
    if isinstance(data, dict) and 'rules' in data:
        data = data['rules']
    if isinstance(data, dict):
        data = [data]
    return [rule_from_dict(item) for item in data or []]


def main(argv=None):
    """Main entry point."""
    parser = argparse.ArgumentParser(description='BULL/BEAR Signal Engine')
    parser.add_argument('--prices', required=True, help='CSV with timestamp,open,high,low,close')
    parser.add_argument('--rule', action='append', default=[],
                        help='YAML rule file (repeatable)')
    parser.add_argument('--config', type=str, default=None, help='YAML config file')
    parser.add_argument('--capital', type=float, default=None, help='Initial capital in SEK')
    parser.add_argument('--analyze', action='store_true', help='Run the analysis tools')
    parser.add_argument('--indicators', action='store_true',
                        help='Print the latest indicators and indicator signal')
    parser.add_argument('--price', type=float, default=None,
                        help='Current price (defaults to the last close)')
    parser.add_argument('--now', type=str, default=None,
                        help='Evaluation time, ISO format (defaults to the last bar)')
    parser.add_argument('--output', type=str, default=None,
                        help='Directory for JSON backtest results')
    parser.add_argument('--verbose', action='store_true', help='Debug logging')

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    config = load_config(args.config)
    bars = load_bars(args.prices)
    if not bars:
        parser.error(f"No usable bars in {args.prices}")

    if args.indicators:
        snapshot = IndicatorCalculator(config.indicators).calculate(bars)
        print(json.dumps(snapshot.to_dict(), indent=2))
        signal = generate_indicator_signal(bars, config.indicators)
        print(json.dumps(signal.to_dict(), indent=2) if signal else "No indicator signal")

    rules = [rule for path in args.rule for rule in load_rules(path)]
    if rules:
        capital = args.capital if args.capital is not None else config.initial_capital
        results = run_backtests(rules, bars, capital, config.backtest)
        for rule, result in zip(rules, results):
            if result is None:
                print(f"\nBacktest of '{rule.name}' could not run")
                continue
            print(result.summary())
            if args.output:
                path = Path(args.output) / f"{rule.name.replace(' ', '_')}_{result.config_hash}.json"
                result.save(str(path))
                logger.info(f"Saved result to {path}")

    if args.analyze:
        now = datetime.fromisoformat(args.now) if args.now else None
        price = args.price if args.price is not None else bars[-1].close
        recommendation = analyze(bars, price, config.tools, now)
        print(json.dumps(recommendation.to_dict(), indent=2))

    if not rules and not args.analyze and not args.indicators:
        parser.print_help()


if __name__ == '__main__':
    main()
