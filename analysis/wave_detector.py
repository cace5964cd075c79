import logging
from typing import List, Optional, Sequence

from .config import AnalyzerConfig
from .confidence import ConfidenceScorer
from .elliott_rules import (
    ElliottRuleEngine, calculate_percentage_change, calculate_wave_length, check_alternation,
)
from .fibonacci import FibonacciTargetEngine
from .models import CorrectivePattern, Direction, MotivePattern, Pattern, Pivot, SubWave

logger = logging.getLogger(__name__)

MOTIVE_WINDOW = 6
CORRECTIVE_WINDOW = 4


# --- Wave Detector ---
class WaveDetector:
    """
    Scans a zig-zag for motive and corrective patterns.
    Each window is validated by the rule engine, scored by the confidence
    scorer and given targets by the Fibonacci engine.
    """
    def __init__(self, config: Optional[AnalyzerConfig] = None,
                 rule_engine: Optional[ElliottRuleEngine] = None,
                 confidence_scorer: Optional[ConfidenceScorer] = None,
                 target_engine: Optional[FibonacciTargetEngine] = None):
        """
        Args:
            config: Analyzer settings; defaults when omitted.
            rule_engine: Structural rule checks.
            confidence_scorer: Fibonacci analysis and confidence scoring.
            target_engine: Price target projection.
        """
        self.config = config or AnalyzerConfig()
        self.rule_engine = rule_engine or ElliottRuleEngine(self.config)
        self.confidence_scorer = confidence_scorer or ConfidenceScorer(self.config)
        self.target_engine = target_engine or FibonacciTargetEngine(self.config)

    def identify_motive_pattern(self, points: Sequence[Pivot]) -> Optional[MotivePattern]:
        """
        Builds a 1-2-3-4-5 pattern from exactly six points.

        Returns:
            The pattern, or None when the window has the wrong size or breaks
            any motive rule.
        """
        if len(points) != MOTIVE_WINDOW:
            return None

        validation = self.rule_engine.validate_motive_wave_rules(points)
        if not validation.is_valid:
            return None

        is_bullish = points[-1].price > points[0].price
        waves = self.rule_engine.build_motive_waves(points)
        fibonacci_analysis = self.confidence_scorer.analyze_fibonacci_relationships(waves)

        return MotivePattern(
            direction=Direction.BULLISH if is_bullish else Direction.BEARISH,
            points=tuple(points),
            waves=waves,
            validation=validation,
            fibonacci_analysis=fibonacci_analysis,
            confidence=self.confidence_scorer.calculate_pattern_confidence(validation, fibonacci_analysis),
            targets=self.target_engine.calculate_motive_targets(waves, is_bullish),
        )

    def identify_corrective_pattern(self, points: Sequence[Pivot]) -> Optional[CorrectivePattern]:
        """
        Builds an A-B-C pattern from exactly four alternating points.

        The pattern direction is the opposite of the correction's own
        classification, and its targets are projected in that direction.
        """
        if len(points) != CORRECTIVE_WINDOW:
            return None
        if not check_alternation(points):
            return None

        is_bullish_correction = self.rule_engine.classify_correction(points)
        if is_bullish_correction is None:
            return None

        waves = self.rule_engine.build_corrective_waves(points)
        validation = self.rule_engine.validate_corrective_pattern(waves, is_bullish_correction)
        if not validation.is_valid:
            return None

        fibonacci_analysis = self.confidence_scorer.analyze_corrective_fibonacci(waves)
        return CorrectivePattern(
            direction=Direction.BEARISH if is_bullish_correction else Direction.BULLISH,
            points=tuple(points),
            waves=waves,
            validation=validation,
            fibonacci_analysis=fibonacci_analysis,
            confidence=self.confidence_scorer.calculate_corrective_confidence(validation, fibonacci_analysis),
            targets=self.target_engine.calculate_corrective_targets(waves, not is_bullish_correction),
        )

    def analyze_elliott_wave(self, zigzag: Sequence[Pivot]) -> List[Pattern]:
        """
        Slides six-point windows (motive) then four-point windows (corrective)
        over the zig-zag.

        Returns:
            Patterns at or above the confidence floor, motive first, in scan
            order. Callers sort by confidence.
        """
        if len(zigzag) < CORRECTIVE_WINDOW:
            return []

        floor = self.config.min_confidence
        patterns: List[Pattern] = []

        for i in range(len(zigzag) - MOTIVE_WINDOW + 1):
            pattern = self.identify_motive_pattern(zigzag[i:i + MOTIVE_WINDOW])
            if pattern and pattern.confidence >= floor:
                patterns.append(pattern)

        for i in range(len(zigzag) - CORRECTIVE_WINDOW + 1):
            pattern = self.identify_corrective_pattern(zigzag[i:i + CORRECTIVE_WINDOW])
            if pattern and pattern.confidence >= floor:
                patterns.append(pattern)

        logger.info(f"Wave scan of {len(zigzag)} zig-zag points found {len(patterns)} patterns")
        return patterns

    def find_nested_patterns(self, zigzag: Sequence[Pivot]) -> List[SubWave]:
        """Describes each leg of every six-point window as a sub-wave."""
        nested = []
        for i in range(len(zigzag) - MOTIVE_WINDOW + 1):
            window = zigzag[i:i + MOTIVE_WINDOW]
            for start, end in zip(window, window[1:]):
                nested.append(self.analyze_sub_wave(start, end))
        return nested

    @staticmethod
    def analyze_sub_wave(start: Pivot, end: Pivot) -> SubWave:
        return SubWave(
            start=start,
            end=end,
            length=calculate_wave_length(start, end),
            percentage=calculate_percentage_change(start.price, end.price),
            direction='up' if end.price > start.price else 'down',
            timeframe=end.time - start.time,
        )
