"""
Fibonacci Target Engine
Forward price projections, support/resistance and target priorities for
validated patterns. Every projection is `start + direction * base * ratio`
with direction +1 for bullish and -1 for bearish.
"""

import logging
from typing import Optional, Sequence

from .config import AnalyzerConfig
from .models import (
    CompletionTargets, CorrectionTargets, CorrectiveKeyLevels, CorrectiveTargets,
    CorrectiveWaves, FibonacciLevels, MotiveKeyLevels, MotiveTargets, MotiveWaves,
    NextCycleTargets, NextImpulseTargets, TargetPriority,
)

logger = logging.getLogger(__name__)

ALL_LEVELS = ('fib236', 'fib382', 'fib500', 'fib618', 'fib764', 'fib1000', 'fib1272', 'fib1618', 'fib2618')
WAVE3_LEVELS = ('fib236', 'fib382', 'fib500', 'fib618', 'fib764')
TOTAL_RANGE_LEVELS = ('fib382', 'fib618', 'fib1000', 'fib1618')
WAVE_B_LEVELS = ('fib618', 'fib1000', 'fib1618')


class FibonacciTargetEngine:
    """
    Computes target records for motive and corrective patterns.
    """
    def __init__(self, config: Optional[AnalyzerConfig] = None):
        self.config = config or AnalyzerConfig()

    def project(self, start: float, base_length: float, direction: int, levels: Sequence[str]) -> FibonacciLevels:
        """Projects `base_length` from `start` at each named ratio."""
        return FibonacciLevels(**{
            name: start + direction * base_length * getattr(self.config, name)
            for name in levels
        })

    @staticmethod
    def calculate_target_priority(w1_targets: FibonacciLevels, w3_targets: FibonacciLevels,
                                  is_bullish: bool) -> TargetPriority:
        if is_bullish:
            return TargetPriority(main_target=w1_targets.fib618, secondary_target=w3_targets.fib382)
        return TargetPriority(main_target=w1_targets.fib382, secondary_target=w3_targets.fib618)

    @staticmethod
    def calculate_corrective_target_priority(a_targets: FibonacciLevels, is_bullish: bool) -> TargetPriority:
        return TargetPriority(
            main_target=a_targets.fib1000,
            secondary_target=a_targets.fib1618 if is_bullish else a_targets.fib1272,
            conservative_target=a_targets.fib618,
        )

    def calculate_motive_targets(self, waves: MotiveWaves, is_bullish: bool) -> MotiveTargets:
        """
        Targets for a 1-2-3-4-5 pattern.

        Wave 5 projections use wave 1 and wave 3 lengths from the wave 5 start
        and the 0-3 range from the wave 1 start; next-cycle extensions and
        post-pattern corrections use the full 0-5 length from the wave 5 end.
        """
        c = self.config
        direction = 1 if is_bullish else -1
        start_price = waves.w5.start.price
        origin = waves.w1.start.price
        pattern_end = waves.w5.end.price

        w1_targets = self.project(start_price, waves.w1.length, direction, ALL_LEVELS)
        w3_targets = self.project(start_price, waves.w3.length, direction, WAVE3_LEVELS)
        total_range = abs(waves.w3.end.price - origin)
        total_targets = self.project(origin, total_range, direction, TOTAL_RANGE_LEVELS)

        full_length = abs(pattern_end - origin)
        next_cycle = NextCycleTargets(
            extension100=pattern_end + direction * full_length * c.fib1000,
            extension127=pattern_end + direction * full_length * c.fib1272,
            extension162=pattern_end + direction * full_length * c.fib1618,
            extension262=pattern_end + direction * full_length * c.fib2618,
        )
        corrections = CorrectionTargets(
            correction236=pattern_end - direction * full_length * c.fib236,
            correction382=pattern_end - direction * full_length * c.fib382,
            correction500=pattern_end - direction * full_length * c.fib500,
            correction618=pattern_end - direction * full_length * c.fib618,
            correction786=pattern_end - direction * full_length * c.fib786,
        )

        return MotiveTargets(
            wave5_based_on_w1=w1_targets,
            wave5_based_on_w3=w3_targets,
            wave5_based_on_total=total_targets,
            next_cycle_targets=next_cycle,
            correction_targets=corrections,
            wave5_fib618=w1_targets.fib618,
            wave5_fib1000=w1_targets.fib1000,
            wave5_fib1618=w1_targets.fib1618,
            wave5_w3_fib382=w3_targets.fib382,
            wave5_w3_fib618=w3_targets.fib618,
            final_target=pattern_end,
            support=min(waves.w2.end.price, waves.w4.end.price),
            resistance=max(waves.w1.end.price, waves.w3.end.price, waves.w5.end.price),
            key_levels=MotiveKeyLevels(
                wave1_end=waves.w1.end.price,
                wave2_end=waves.w2.end.price,
                wave3_end=waves.w3.end.price,
                wave4_end=waves.w4.end.price,
                wave5_end=pattern_end,
            ),
            priority=self.calculate_target_priority(w1_targets, w3_targets, is_bullish),
        )

    def calculate_corrective_targets(self, waves: CorrectiveWaves, is_bullish: bool) -> CorrectiveTargets:
        """
        Targets for an A-B-C pattern, keyed on wave A and wave B lengths from
        the wave C start, plus completion and next-impulse projections from
        the full A-C length.
        """
        c = self.config
        direction = 1 if is_bullish else -1
        start_price = waves.w_c.start.price
        a_start = waves.w_a.start.price
        c_end = waves.w_c.end.price

        a_targets = self.project(start_price, waves.w_a.length, direction, ALL_LEVELS)
        b_targets = self.project(start_price, waves.w_b.length, direction, WAVE_B_LEVELS)

        full_length = abs(c_end - a_start)
        completion = CompletionTargets(
            completion100=a_start,
            completion127=a_start + direction * full_length * c.fib1272,
            completion162=a_start + direction * full_length * c.fib1618,
        )
        next_impulse = NextImpulseTargets(
            impulse_fib618=c_end + direction * full_length * c.fib618,
            impulse_fib1000=c_end + direction * full_length * c.fib1000,
            impulse_fib1618=c_end + direction * full_length * c.fib1618,
            impulse_fib2618=c_end + direction * full_length * c.fib2618,
        )

        return CorrectiveTargets(
            wave_c_based_on_a=a_targets,
            wave_c_based_on_b=b_targets,
            completion_targets=completion,
            next_impulse_targets=next_impulse,
            wave_c_fib618=a_targets.fib618,
            wave_c_fib1000=a_targets.fib1000,
            wave_c_fib1272=a_targets.fib1272,
            wave_c_fib1618=a_targets.fib1618,
            final_target=c_end,
            support=a_start if is_bullish else c_end,
            resistance=c_end if is_bullish else a_start,
            key_levels=CorrectiveKeyLevels(
                wave_a_start=a_start,
                wave_a_end=waves.w_b.start.price,
                wave_b_end=waves.w_c.start.price,
                wave_c_end=c_end,
            ),
            priority=self.calculate_corrective_target_priority(a_targets, is_bullish),
        )
