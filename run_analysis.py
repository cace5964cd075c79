#!/usr/bin/env python3
"""
Run a one-off Elliott Wave analysis from the command line.
Fetches klines from Binance (or a sample CSV) and prints a report, once or
every poll interval with --watch.
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Callable, Optional

from analysis.analyzer import ElliottWaveAnalyzer
from analysis.config import AnalyzerConfig, load_settings
from analysis.models import AnalysisResult, AnalysisStatus
from analysis.system_reporter import SystemReporter
from ingest.adapters import DataAdapter, get_data_adapter

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Elliott Wave analysis for one symbol")
    parser.add_argument("--symbol", help="Trading pair, e.g. BTCUSDT (default from config)")
    parser.add_argument("--interval", help="Kline interval, e.g. 1h (default from config)")
    parser.add_argument("--limit", type=int, help="Number of klines to analyze (max 1000)")
    parser.add_argument("--csv", help="Read klines from this CSV instead of the exchange")
    parser.add_argument("--config", default="config.yaml", help="Path to config.yaml")
    parser.add_argument("--json", action="store_true", help="Print the raw result as JSON")
    parser.add_argument("--watch", action="store_true",
                        help="Keep re-analyzing every poll_interval_seconds until interrupted")
    return parser.parse_args(argv)


def build_adapter(symbol: str, interval: str, csv_path, data_source: dict) -> DataAdapter:
    if csv_path:
        return get_data_adapter(symbol, interval, 'csv', {**data_source, 'csv_path': csv_path})
    return get_data_adapter(symbol, interval, 'binance', data_source)


async def watch(adapter: DataAdapter, analyzer: ElliottWaveAnalyzer, limit: int,
                render: Callable[[AnalysisResult], None], iterations: Optional[int] = None) -> int:
    """
    Re-analyzes the latest klines every `adapter.poll_interval_seconds`.

    Runs until cancelled, or for `iterations` polls when given. Polls that
    return no klines are logged and skipped.

    Returns:
        Number of analyses rendered
    """
    rendered = 0
    polls = 0
    while True:
        klines = await adapter.fetch_latest_klines(limit=limit)
        if klines:
            render(analyzer.analyze(klines))
            rendered += 1
        else:
            logger.warning(f"No klines available for {adapter.symbol} ({adapter.interval})")
        polls += 1
        if iterations is not None and polls >= iterations:
            return rendered
        await asyncio.sleep(adapter.poll_interval_seconds)


def main(argv=None) -> int:
    args = parse_args(argv)
    settings = load_settings(args.config)
    logging.basicConfig(level=getattr(logging, str(settings.get("log_level", "INFO")).upper(), logging.INFO),
                        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    data_source = settings["data_source"]
    symbol = (args.symbol or data_source["default_symbol"]).upper()
    interval = args.interval or data_source["default_interval"]
    limit = args.limit or data_source["default_limit"]

    adapter = build_adapter(symbol, interval, args.csv, data_source)
    analyzer = ElliottWaveAnalyzer(AnalyzerConfig.from_dict(settings.get("analyzer")))
    reporter = SystemReporter()

    def render(result: AnalysisResult):
        if args.json:
            print(json.dumps({"symbol": symbol, "interval": interval, **result.to_dict()}, indent=2))
        else:
            print(reporter.format_analysis(result, symbol))

    if args.watch:
        logger.info(f"Watching {symbol} ({interval}) every {adapter.poll_interval_seconds}s")
        try:
            asyncio.run(watch(adapter, analyzer, limit, render))
        except KeyboardInterrupt:
            logger.info("Stopped watching")
        return 0

    klines = asyncio.run(adapter.fetch_latest_klines(limit=limit))
    if not klines:
        logger.error(f"No klines available for {symbol} ({interval})")
        return 1

    result = analyzer.analyze(klines)
    render(result)

    return 1 if result.status == AnalysisStatus.ERROR else 0


if __name__ == "__main__":
    sys.exit(main())
