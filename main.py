"""
Main entry point for the SMC setup scanner
"""
import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Dict, List

import pandas as pd
from rich.console import Console
from rich.table import Table
from rich import box

from config import AppConfig, load_config
from smc_engine.core import FCSQuoteGateway, QuoteGateway, SMCAnalyzer, StaticQuoteGateway
from smc_engine.data_loader import load_csv_rows
from smc_engine.models import SMCTradeSetup

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO", log_file: str = "smc_scanner.log"):
    """Setup logging configuration"""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler(sys.stderr)
        ]
    )

    # Suppress noisy loggers
    logging.getLogger('asyncio').setLevel(logging.WARNING)
    logging.getLogger('aiohttp').setLevel(logging.WARNING)


def load_csv_dir(csv_dir: str) -> StaticQuoteGateway:
    """
    Build an offline gateway from CSV exports named like EURUSD_4H.csv

    Args:
        csv_dir: Directory containing one CSV per pair and timeframe
    """
    rows: Dict[str, List[dict]] = {}

    for path in sorted(Path(csv_dir).glob('*.csv')):
        symbol, sep, period = path.stem.rpartition('_')
        if not sep or len(symbol) != 6:
            logger.warning(f"Skipping {path.name}: expected <PAIR>_<TIMEFRAME>.csv")
            continue

        pair = f"{symbol[:3]}/{symbol[3:]}".upper()
        try:
            rows[StaticQuoteGateway.key(pair, period.upper())] = load_csv_rows(str(path))
        except ValueError as e:
            logger.warning(f"Skipping {path.name}: {e}")

    logger.info(f"Loaded {len(rows)} CSV series from {csv_dir}")
    return StaticQuoteGateway(rows)


def render_setups(setups: List[SMCTradeSetup], console: Console):
    """Print ranked setups as a table"""
    if not setups:
        console.print("[yellow]No SMC setups found[/yellow]")
        return

    table = Table(title="SMC Trade Setups", box=box.SIMPLE_HEAVY)
    for column in ("#", "Pair", "Tier", "Dir", "Pattern", "HTF", "Entry", "SL", "TP",
                   "Prob", "Status", "Score"):
        table.add_column(column)

    for rank, setup in enumerate(setups, 1):
        color = "green" if setup.direction == 'buy' else "red"
        table.add_row(
            str(rank),
            setup.pair,
            setup.strategy,
            f"[{color}]{setup.direction.upper()}[/{color}]",
            setup.pattern,
            setup.higher_timeframe,
            setup.entry,
            setup.stop_loss,
            setup.take_profit,
            setup.probability,
            setup.confirmation_status,
            str(setup.confluence_score)
        )

    console.print(table)


async def run_scan(config: AppConfig, gateway: QuoteGateway, pairs: List[str]) -> List[SMCTradeSetup]:
    analyzer = SMCAnalyzer(gateway, config)
    return await analyzer.run_analysis(pairs)


async def run_live_scan(config: AppConfig, pairs: List[str]) -> List[SMCTradeSetup]:
    async with FCSQuoteGateway(
        api_key=config.api_key,
        base_url=config.base_url,
        requests_per_minute=config.requests_per_minute
    ) as gateway:
        return await run_scan(config, gateway, pairs)


def main():
    """Main function with command line argument parsing"""
    parser = argparse.ArgumentParser(
        description='SMC Scanner - multi-timeframe Smart Money Concepts setups',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py
  python main.py --pairs EUR/USD GBP/JPY --out setups.csv
  python main.py --csv-dir data/ --log-level DEBUG
        """
    )

    parser.add_argument('--config', default='config/settings.yaml',
                        help='YAML configuration file (default: config/settings.yaml)')
    parser.add_argument('--pairs', nargs='+',
                        help='Pairs to analyze (default: pairs from config)')
    parser.add_argument('--csv-dir',
                        help='Analyze offline CSV files (<PAIR>_<TIMEFRAME>.csv) instead of the live API')
    parser.add_argument('--out',
                        help='Write ranked setups to this CSV file')
    parser.add_argument('--log-level',
                        help='Override configured log level')

    args = parser.parse_args()

    config = load_config(args.config)
    setup_logging(args.log_level or config.log_level)

    pairs = [p.upper() for p in args.pairs] if args.pairs else config.pairs

    if args.csv_dir:
        if not Path(args.csv_dir).is_dir():
            print(f"Error: CSV directory not found: {args.csv_dir}")
            sys.exit(1)
        setups = asyncio.run(run_scan(config, load_csv_dir(args.csv_dir), pairs))
    else:
        if not config.api_key:
            print("Error: no FCS API key (set api_key in config or FCS_API_KEY)")
            sys.exit(1)
        setups = asyncio.run(run_live_scan(config, pairs))

    render_setups(setups, Console())

    if args.out:
        pd.DataFrame([s.to_dict() for s in setups]).to_csv(args.out, index=False)
        print(f"Results saved to: {args.out}")


if __name__ == '__main__':
    main()
