#!/usr/bin/env python3
"""
Create sample kline CSV files for offline analysis
"""

import argparse
import logging
import os

from analysis.sample_data import (
    BEARISH_IMPULSE_ANCHORS, BULLISH_IMPULSE_ANCHORS, generate_wave_klines, klines_to_csv_frame,
)

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

SCENARIOS = {
    'bullish': BULLISH_IMPULSE_ANCHORS,
    'bearish': BEARISH_IMPULSE_ANCHORS,
}


def create_sample_data(output: str = "data/sample_klines.csv", scenario: str = 'bullish',
                       bars_per_leg: int = 5, wick: float = 0.0) -> str:
    klines = generate_wave_klines(SCENARIOS[scenario], bars_per_leg=bars_per_leg, wick=wick)
    df = klines_to_csv_frame(klines)

    directory = os.path.dirname(output)
    if directory:
        os.makedirs(directory, exist_ok=True)
    df.to_csv(output, index=False)
    logger.info(f"Created {output} with {len(df)} rows ({scenario} five-wave scenario)")
    return output


def main():
    parser = argparse.ArgumentParser(description="Write a synthetic five-wave kline CSV")
    parser.add_argument("--output", default="data/sample_klines.csv", help="CSV path to write")
    parser.add_argument("--scenario", choices=sorted(SCENARIOS), default="bullish")
    parser.add_argument("--bars-per-leg", type=int, default=5)
    parser.add_argument("--wick", type=float, default=0.0, help="High/low wick as a fraction of price")
    args = parser.parse_args()
    create_sample_data(args.output, args.scenario, args.bars_per_leg, args.wick)


if __name__ == "__main__":
    main()
