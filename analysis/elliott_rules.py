"""
Elliott Rule Engine
Wave geometry and the hard structural rules for motive (1-2-3-4-5) and
corrective (A-B-C) patterns.

Motive rules applied:
  1. Wave 2 never retraces beyond the start of wave 1.
  2. Wave 3 is never the shortest of waves 1, 3 and 5.
  3. Wave 4 never enters the price territory of wave 1.
  4. Consecutive points alternate between highs and lows.

Corrective rules applied:
  1. Wave B retraces at most 100% of wave A.
  2. Wave C is at least 61.8% of wave A.
  3. Wave C is at most 261.8% of wave A.
  4. Wave C ends beyond the start of wave A in the correction's direction.
"""

import logging
from typing import Optional, Sequence

from .config import AnalyzerConfig
from .models import (
    CorrectiveValidation, CorrectiveWaves, MotiveValidation, MotiveWaves,
    Pivot, PivotType, WaveSegment,
)

logger = logging.getLogger(__name__)


def calculate_wave_length(start: Pivot, end: Pivot) -> float:
    return abs(end.price - start.price)


def calculate_percentage_change(start_price: float, end_price: float) -> float:
    return ((end_price - start_price) / start_price) * 100


def calculate_retracement(start: Pivot, peak: Pivot, end: Pivot) -> float:
    """Fraction of the start->peak move given back by peak->end."""
    total_move = peak.price - start.price
    retracement = peak.price - end.price
    return abs(retracement / total_move)


def check_alternation(points: Sequence[Pivot]) -> bool:
    """True when no two consecutive points share a type."""
    return all(cur.type != prev.type for prev, cur in zip(points, points[1:]))


def build_segment(start: Pivot, end: Pivot, origin: Optional[Pivot] = None) -> WaveSegment:
    """Wave from `start` to `end`; with `origin`, also its retracement of origin->start."""
    return WaveSegment(
        start=start,
        end=end,
        length=calculate_wave_length(start, end),
        percentage=calculate_percentage_change(start.price, end.price),
        retracement=calculate_retracement(origin, start, end) if origin is not None else None,
    )


class ElliottRuleEngine:
    """
    Applies the Elliott Wave hard rules to candidate point windows.
    """
    def __init__(self, config: Optional[AnalyzerConfig] = None):
        self.config = config or AnalyzerConfig()
        logger.debug("Initialized ElliottRuleEngine")

    def build_motive_waves(self, points: Sequence[Pivot]) -> MotiveWaves:
        p0, p1, p2, p3, p4, p5 = points
        return MotiveWaves(
            w1=build_segment(p0, p1),
            w2=build_segment(p1, p2, origin=p0),
            w3=build_segment(p2, p3),
            w4=build_segment(p3, p4, origin=p2),
            w5=build_segment(p4, p5),
        )

    def build_corrective_waves(self, points: Sequence[Pivot]) -> CorrectiveWaves:
        p_a, p_b, p_c, p_d = points
        return CorrectiveWaves(
            w_a=build_segment(p_a, p_b),
            w_b=build_segment(p_b, p_c, origin=p_a),
            w_c=build_segment(p_c, p_d),
        )

    def validate_motive_wave_rules(self, points: Sequence[Pivot]) -> MotiveValidation:
        """
        Checks six points p0..p5 against the motive rules.

        Direction is bullish when p5 closes above p0.
        """
        p0, p1, p2, p3, p4, p5 = points
        is_bullish = p5.price > p0.price

        rule1 = p2.price > p0.price if is_bullish else p2.price < p0.price

        w1 = calculate_wave_length(p0, p1)
        w3 = calculate_wave_length(p2, p3)
        w5 = calculate_wave_length(p4, p5)
        rule2 = not (w3 < w1 and w3 < w5)

        rule3 = p4.price > p1.price if is_bullish else p4.price < p1.price

        validation = MotiveValidation(
            rule1=rule1,
            rule2=rule2,
            rule3=rule3,
            alternation=check_alternation(points),
        )
        if not validation.is_valid:
            logger.debug(f"Motive window at index {p0.index} rejected: {validation}")
        return validation

    @staticmethod
    def classify_correction(points: Sequence[Pivot]) -> Optional[bool]:
        """
        True for a bullish correction (starts on a high, ends on a low), False
        for a bearish one (low to high), None for any other shape.
        """
        first, last = points[0], points[-1]
        if first.type == PivotType.HIGH and last.type == PivotType.LOW:
            return True
        if first.type == PivotType.LOW and last.type == PivotType.HIGH:
            return False
        return None

    def validate_corrective_pattern(self, waves: CorrectiveWaves, is_bullish_correction: bool) -> CorrectiveValidation:
        c = self.config
        rule1 = waves.w_b.retracement <= c.fib1000

        c_to_a_ratio = waves.w_c.length / waves.w_a.length
        rule2 = c_to_a_ratio >= c.fib618
        rule3 = c_to_a_ratio <= c.fib2618

        if is_bullish_correction:
            rule4 = waves.w_a.start.price > waves.w_c.end.price
        else:
            rule4 = waves.w_a.start.price < waves.w_c.end.price

        validation = CorrectiveValidation(rule1=rule1, rule2=rule2, rule3=rule3, rule4=rule4)
        if not validation.is_valid:
            logger.debug(f"Corrective window at index {waves.w_a.start.index} rejected: {validation}")
        return validation
