"""
ZigZag Builder
Compresses pivots into a strictly alternating high/low sequence, dropping
moves smaller than a minimum percentage.
"""

import logging
from typing import List, Sequence

from .models import Pivot, PivotType

logger = logging.getLogger(__name__)


def _change_percent(start: Pivot, end: Pivot) -> float:
    return abs((end.price - start.price) / start.price) * 100


def create_zigzag(pivots: Sequence[Pivot], min_change_percent: float = 1.0) -> List[Pivot]:
    """
    Single greedy pass over the pivots.

    A pivot closer than `min_change_percent` to the last retained point is
    skipped outright. Otherwise an opposite-type pivot is appended, a higher
    high or lower low replaces the last point, and anything else is dropped.
    A replacement must also clear the threshold against the point before it,
    so every adjacent pair of the result does.

    Returns:
        The zig-zag points, or an empty list for fewer than two pivots.
    """
    if len(pivots) < 2:
        return []

    zigzag = [pivots[0]]
    for current in pivots[1:]:
        last = zigzag[-1]
        if _change_percent(last, current) < min_change_percent:
            continue

        if current.type != last.type:
            zigzag.append(current)
        elif (current.type == PivotType.HIGH and current.price > last.price) or \
                (current.type == PivotType.LOW and current.price < last.price):
            if len(zigzag) > 1 and _change_percent(zigzag[-2], current) < min_change_percent:
                continue
            zigzag[-1] = current

    logger.debug(f"ZigZag kept {len(zigzag)} of {len(pivots)} pivots at {min_change_percent}% threshold")
    return zigzag
