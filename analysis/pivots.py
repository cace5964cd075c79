"""
Pivot Detector
Flags candles whose high (or low) is strictly extreme over a symmetric window.
"""

import logging
from typing import List, Sequence

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from .models import Candle, Pivot, PivotType

logger = logging.getLogger(__name__)


def _strict_extremes(values: np.ndarray, left_bars: int, right_bars: int, highs: bool) -> np.ndarray:
    """
    Boolean mask over candidate centres [left_bars, n - right_bars).

    A centre qualifies only if no other value in its window reaches it, so an
    equal neighbour disqualifies it.
    """
    windows = sliding_window_view(values, left_bars + right_bars + 1)
    centres = windows[:, left_bars][:, None]
    reaching = windows >= centres if highs else windows <= centres
    # the centre always reaches itself
    return reaching.sum(axis=1) == 1


def find_pivots(candles: Sequence[Candle], left_bars: int = 4, right_bars: int = 4) -> List[Pivot]:
    """
    Finds pivot highs and lows.

    Args:
        candles: Candles ordered by time.
        left_bars: Candles compared on the left of each centre.
        right_bars: Candles compared on the right of each centre.

    Returns:
        Pivots ordered by index; when one candle is both, the high comes first.
    """
    if left_bars < 0 or right_bars < 0:
        raise ValueError("left_bars and right_bars must be non-negative")
    if len(candles) < left_bars + right_bars + 1:
        return []

    highs = np.array([c.high for c in candles], dtype=float)
    lows = np.array([c.low for c in candles], dtype=float)
    is_high = _strict_extremes(highs, left_bars, right_bars, highs=True)
    is_low = _strict_extremes(lows, left_bars, right_bars, highs=False)

    pivots = []
    for offset in range(len(is_high)):
        candle = candles[offset + left_bars]
        if is_high[offset]:
            pivots.append(Pivot(index=candle.index, type=PivotType.HIGH, price=candle.high, time=candle.time))
        if is_low[offset]:
            pivots.append(Pivot(index=candle.index, type=PivotType.LOW, price=candle.low, time=candle.time))

    logger.debug(f"Found {len(pivots)} pivots in {len(candles)} candles (window {left_bars}/{right_bars})")
    return pivots
