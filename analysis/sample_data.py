"""
Synthetic kline generation for demos and tests.
"""

import logging
from typing import List, Sequence

import numpy as np
import pandas as pd

from .candles import klines_to_frame

logger = logging.getLogger(__name__)

# Turning points of a clean five-wave advance: 100 -> 120 -> 110 -> 140 -> 125 -> 160,
# with a lead-in from 105 and a pullback to 150.
BULLISH_IMPULSE_ANCHORS = (105.0, 100.0, 120.0, 110.0, 140.0, 125.0, 160.0, 150.0)
# The same shape mirrored downward: 160 -> 140 -> 150 -> 120 -> 135 -> 100.
BEARISH_IMPULSE_ANCHORS = (155.0, 160.0, 140.0, 150.0, 120.0, 135.0, 100.0, 110.0)

DEFAULT_START_TIME = 1_700_000_000_000
HOUR_MS = 60 * 60 * 1000


def wave_path(anchors: Sequence[float], bars_per_leg: int = 5) -> np.ndarray:
    """Linear price path through `anchors`, `bars_per_leg` steps per leg."""
    if len(anchors) < 2:
        raise ValueError("At least two anchors are needed")
    if bars_per_leg < 1:
        raise ValueError("bars_per_leg must be at least 1")
    legs = [np.linspace(a, b, bars_per_leg, endpoint=False) for a, b in zip(anchors, anchors[1:])]
    return np.concatenate(legs + [np.array([anchors[-1]], dtype=float)])


def generate_wave_klines(anchors: Sequence[float] = BULLISH_IMPULSE_ANCHORS, bars_per_leg: int = 5,
                         start_time: int = DEFAULT_START_TIME, interval_ms: int = HOUR_MS,
                         wick: float = 0.0, volume: float = 1000.0) -> List[list]:
    """
    Builds raw klines `[open_time, open, high, low, close, volume]` whose prices
    walk linearly between the anchors.

    Each candle opens and closes on the path price; `wick` widens high and low
    by that fraction of the price. Anchors land on candle indices
    0, bars_per_leg, 2 * bars_per_leg, ...
    """
    path = wave_path(anchors, bars_per_leg)
    klines = []
    for i, price in enumerate(path):
        price = float(price)
        klines.append([
            start_time + i * interval_ms,
            price,
            price * (1 + wick),
            price * (1 - wick),
            price,
            volume,
        ])
    logger.debug(f"Generated {len(klines)} synthetic klines through {len(anchors)} anchors")
    return klines


def klines_to_csv_frame(klines: Sequence[Sequence[float]]) -> pd.DataFrame:
    """Klines as a CSV-ready frame with a UTC timestamp column."""
    return klines_to_frame(klines).reset_index()
