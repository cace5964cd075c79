"""
Confidence Scoring
Fibonacci relationship analysis and the 0-100 confidence score for motive
and corrective patterns.
"""

import logging
from typing import Optional

from .config import STANDARD_FIB_LEVELS, AnalyzerConfig
from .models import (
    CorrectiveFibonacciAnalysis, CorrectiveValidation, FibonacciCheck,
    MotiveFibonacciAnalysis, MotiveValidation, MotiveWaves, CorrectiveWaves,
)

logger = logging.getLogger(__name__)

# Points awarded per satisfied rule.
MOTIVE_RULE_WEIGHTS = {'rule1': 25.0, 'rule2': 30.0, 'rule3': 25.0, 'alternation': 10.0}
MOTIVE_FIB_BONUS = 2.5
CORRECTIVE_RULE_WEIGHTS = {'rule1': 25.0, 'rule2': 25.0, 'rule3': 25.0, 'rule4': 15.0}
CORRECTIVE_FIB_BONUS = 5.0
MAX_CONFIDENCE = 100.0


def find_closest_fib_level(value: float) -> float:
    """Nearest standard Fibonacci level; ties resolve to the lower level."""
    closest = STANDARD_FIB_LEVELS[0]
    min_diff = abs(value - closest)
    for level in STANDARD_FIB_LEVELS:
        diff = abs(value - level)
        if diff < min_diff:
            min_diff = diff
            closest = level
    return closest


def _check(value: float, low: float, high: float) -> FibonacciCheck:
    return FibonacciCheck(value=value, fib_level=find_closest_fib_level(value), is_valid=low <= value <= high)


class ConfidenceScorer:
    """
    Scores patterns from rule compliance plus Fibonacci band adherence.
    """
    def __init__(self, config: Optional[AnalyzerConfig] = None):
        self.config = config or AnalyzerConfig()
        logger.debug("Initialized ConfidenceScorer")

    def analyze_fibonacci_relationships(self, waves: MotiveWaves) -> MotiveFibonacciAnalysis:
        """
        Wave 2 retracement of wave 1 in [0.236, 0.786], wave 3 / wave 1 in
        [1.0, 2.618], wave 4 retracement of wave 3 in [0.236, 0.618] and
        wave 5 / wave 1 in [0.618, 1.618].
        """
        c = self.config
        return MotiveFibonacciAnalysis(
            wave2=_check(waves.w2.retracement, c.fib236, c.fib786),
            wave3=_check(waves.w3.length / waves.w1.length, c.fib1000, c.fib2618),
            wave4=_check(waves.w4.retracement, c.fib236, c.fib618),
            wave5=_check(waves.w5.length / waves.w1.length, c.fib618, c.fib1618),
        )

    def analyze_corrective_fibonacci(self, waves: CorrectiveWaves) -> CorrectiveFibonacciAnalysis:
        """Wave B retracement in [0.236, 0.786] and wave C / wave A in [0.618, 1.618]."""
        c = self.config
        return CorrectiveFibonacciAnalysis(
            wave_b=_check(waves.w_b.retracement, c.fib236, c.fib786),
            wave_c=_check(waves.w_c.length / waves.w_a.length, c.fib618, c.fib1618),
        )

    def calculate_pattern_confidence(self, validation: MotiveValidation,
                                     fibonacci_analysis: MotiveFibonacciAnalysis) -> float:
        confidence = sum(weight for rule, weight in MOTIVE_RULE_WEIGHTS.items() if getattr(validation, rule))
        confidence += MOTIVE_FIB_BONUS * sum(1 for check in fibonacci_analysis.checks() if check.is_valid)
        return min(confidence, MAX_CONFIDENCE)

    def calculate_corrective_confidence(self, validation: CorrectiveValidation,
                                        fibonacci_analysis: CorrectiveFibonacciAnalysis) -> float:
        confidence = sum(weight for rule, weight in CORRECTIVE_RULE_WEIGHTS.items() if getattr(validation, rule))
        confidence += CORRECTIVE_FIB_BONUS * sum(1 for check in fibonacci_analysis.checks() if check.is_valid)
        return min(confidence, MAX_CONFIDENCE)
