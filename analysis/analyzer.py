"""
Elliott Wave Analyzer
Runs the full pipeline on a candle window: pivots -> zig-zag -> wave
classification -> targets -> trend, levels and recommendations.
"""

import logging
import math
import time
from typing import List, Optional, Sequence

from .candles import CandleInput, normalize_candles
from .config import AnalyzerConfig
from .models import (
    AnalysisResult, AnalysisStatus, CurrentWaveAnalysis,
    Direction, DynamicLevels, MotivePattern, Pattern, PatternType, Recommendation,
)
from .pivots import find_pivots
from .wave_detector import WaveDetector
from .zigzag import create_zigzag

logger = logging.getLogger(__name__)

STRONG_SIGNAL_CONFIDENCE = 80
MEDIUM_SIGNAL_CONFIDENCE = 60
CORRECTION_COMPLETION_BAND = 0.02

WAVE_DESCRIPTIONS = {
    'extension_or_new_cycle': 'extension or new cycle',
    'corrective_phase': 'corrective phase',
    'correction_completion': 'correction completing',
    'new_impulse_starting': 'new impulse starting',
}

TREND_DESCRIPTIONS = {
    'bullish': 'bullish',
    'bearish': 'bearish',
    'neutral': 'neutral',
    'bullish_correction_end': 'end of a bullish correction',
    'bearish_correction_end': 'end of a bearish correction',
}


def _round_half_up(value: float) -> int:
    # 2.5 -> 3, not the banker's rounding of round()
    return int(math.floor(value + 0.5))


class ElliottWaveAnalyzer:
    """
    Orchestrates one point-in-time Elliott Wave analysis.

    `analyze()` never raises: every failure is reported through the
    result's `status`.
    """
    def __init__(self, config: Optional[AnalyzerConfig] = None, wave_detector: Optional[WaveDetector] = None):
        self.config = config or AnalyzerConfig()
        self.wave_detector = wave_detector or WaveDetector(self.config)
        logger.info(f"Initialized ElliottWaveAnalyzer with len1={self.config.len1}, "
                    f"zigzag threshold={self.config.zigzag_min_change_percent}%, "
                    f"confidence floor={self.config.min_confidence}")

    def analyze(self, klines: CandleInput) -> AnalysisResult:
        """
        Analyzes an ordered candle window.

        Args:
            klines: Raw exchange klines, dict rows, Candle records or an OHLCV DataFrame.

        Returns:
            AnalysisResult with status success, insufficient_data,
            insufficient_pivots, insufficient_zigzag, no_patterns_found or error.
        """
        try:
            return self._analyze(klines)
        except Exception as e:
            logger.error(f"Elliott Wave analysis failed: {e}", exc_info=True)
            return AnalysisResult(
                status=AnalysisStatus.ERROR,
                message='Analysis failed',
                error=str(e) or e.__class__.__name__,
                timestamp=int(time.time() * 1000),
            )

    def _analyze(self, klines: CandleInput) -> AnalysisResult:
        c = self.config
        candles = normalize_candles(klines)

        if len(candles) < c.min_candles:
            logger.info(f"Insufficient data: {len(candles)} candles, need {c.min_candles}")
            return AnalysisResult(
                status=AnalysisStatus.INSUFFICIENT_DATA,
                message=f'Analysis needs at least {c.min_candles} candles',
            )

        pivots = find_pivots(candles, c.len1, c.len1)
        if len(pivots) < c.min_pivots:
            logger.info(f"Insufficient pivots: {len(pivots)}, need {c.min_pivots}")
            return AnalysisResult(
                status=AnalysisStatus.INSUFFICIENT_PIVOTS,
                message='Not enough pivot points for analysis',
                pivots=pivots,
            )

        zigzag = create_zigzag(pivots, c.zigzag_min_change_percent)
        if len(zigzag) < c.min_zigzag_points:
            logger.info(f"Insufficient zig-zag: {len(zigzag)} points, need {c.min_zigzag_points}")
            return AnalysisResult(
                status=AnalysisStatus.INSUFFICIENT_ZIGZAG,
                message='Zig-zag too short for analysis',
                zigzag=zigzag,
                pivots=pivots,
            )

        patterns = self.wave_detector.analyze_elliott_wave(zigzag)
        if not patterns:
            return AnalysisResult(
                status=AnalysisStatus.NO_PATTERNS_FOUND,
                message='No valid Elliott Wave patterns found',
                zigzag=zigzag,
                pivots=pivots,
            )

        patterns = sorted(patterns, key=lambda p: p.confidence, reverse=True)
        trend = self.analyze_trend(patterns)
        current_price = candles[-1].close
        dynamic_levels = self.calculate_dynamic_levels(patterns, current_price)
        current_wave = self.analyze_current_wave(patterns, current_price)

        logger.info(f"Analysis complete: {len(patterns)} patterns, trend {trend}, "
                    f"top confidence {patterns[0].confidence:.1f}")
        return AnalysisResult(
            status=AnalysisStatus.SUCCESS,
            message=f'Found {len(patterns)} Elliott Wave patterns',
            patterns=patterns,
            zigzag=zigzag,
            pivots=pivots,
            trend=trend,
            current_price=current_price,
            dynamic_levels=dynamic_levels,
            nested_patterns=self.wave_detector.find_nested_patterns(zigzag),
            current_wave_analysis=current_wave,
            recommendations=self.generate_recommendations(patterns, current_price),
            summary=self.generate_analysis_summary(patterns, trend, current_wave),
            timestamp=int(time.time() * 1000),
        )

    @staticmethod
    def analyze_trend(patterns: Sequence[Pattern]) -> str:
        """Trend implied by the highest-confidence pattern."""
        if not patterns:
            return 'neutral'
        top = patterns[0]
        if top.pattern_type == PatternType.MOTIVE:
            return top.direction.value
        return f"{top.direction.value}_correction_end"

    @staticmethod
    def calculate_dynamic_levels(patterns: Sequence[Pattern], current_price: float) -> DynamicLevels:
        """
        Support, resistance and forward targets aggregated over motive patterns.

        Targets keep only levels ahead of the current price in each pattern's
        direction.
        """
        support, resistance, targets = set(), set(), set()
        for pattern in patterns:
            if not isinstance(pattern, MotivePattern):
                continue
            support.add(pattern.targets.support)
            resistance.add(pattern.targets.resistance)
            for level in pattern.targets.scalar_levels():
                if pattern.direction == Direction.BULLISH and level > current_price:
                    targets.add(level)
                elif pattern.direction == Direction.BEARISH and level < current_price:
                    targets.add(level)

        return DynamicLevels(
            support=sorted(support, reverse=True),
            resistance=sorted(resistance),
            targets=sorted(targets),
        )

    def analyze_current_wave(self, patterns: Sequence[Pattern], current_price: float) -> Optional[CurrentWaveAnalysis]:
        """Where the market sits relative to the end of the top pattern."""
        if not patterns:
            return None

        top = patterns[0]
        last_point = top.points[-1]
        expected_target = None
        stop_loss = None

        if isinstance(top, MotivePattern):
            bullish = top.direction == Direction.BULLISH
            if (bullish and current_price > last_point.price) or (not bullish and current_price < last_point.price):
                current_wave = 'extension_or_new_cycle'
                expected_target = top.targets.wave5_fib1618
                stop_loss = top.targets.support if bullish else top.targets.resistance
            else:
                current_wave = 'corrective_phase'
                expected_target = top.targets.support
        else:
            if abs(current_price - last_point.price) / last_point.price < CORRECTION_COMPLETION_BAND:
                current_wave = 'correction_completion'
                expected_target = top.targets.wave_c_fib1618
            else:
                current_wave = 'new_impulse_starting'

        return CurrentWaveAnalysis(
            current_wave=current_wave,
            expected_target=expected_target,
            stop_loss=stop_loss,
            confidence=top.confidence,
            timeframe=self.estimate_timeframe(top),
            risk_reward=self.calculate_risk_reward(current_price, expected_target, stop_loss),
        )

    @staticmethod
    def estimate_timeframe(pattern: Pattern) -> str:
        """Human-readable span of a pattern, from its first to last point."""
        hours = (pattern.points[-1].time - pattern.points[0].time) / (1000 * 60 * 60)
        if hours < 24:
            return f"{_round_half_up(hours)} hours"
        if hours < 24 * 7:
            return f"{_round_half_up(hours / 24)} days"
        return f"{_round_half_up(hours / (24 * 7))} weeks"

    @staticmethod
    def calculate_risk_reward(current_price: float, target: Optional[float], stop_loss: Optional[float]) -> Optional[float]:
        if target is None or stop_loss is None:
            return None
        potential_profit = abs(target - current_price)
        potential_loss = abs(current_price - stop_loss)
        if potential_loss <= 0:
            return None
        return round(potential_profit / potential_loss, 2)

    @staticmethod
    def generate_recommendations(patterns: Sequence[Pattern], current_price: float) -> List[Recommendation]:
        if not patterns:
            return [Recommendation(type='neutral', message='No clear signals at the moment', confidence=0)]

        top = patterns[0]
        if top.confidence >= STRONG_SIGNAL_CONFIDENCE:
            if isinstance(top, MotivePattern):
                targets = [top.targets.wave5_fib618, top.targets.wave5_fib1000, top.targets.wave5_fib1618]
                if top.direction == Direction.BULLISH:
                    return [Recommendation(
                        type='buy',
                        message='Strong bullish motive pattern - buying opportunity',
                        confidence=top.confidence,
                        entry=current_price,
                        targets=targets,
                        stop_loss=top.targets.support,
                    )]
                return [Recommendation(
                    type='sell',
                    message='Strong bearish motive pattern - selling opportunity',
                    confidence=top.confidence,
                    entry=current_price,
                    targets=targets,
                    stop_loss=top.targets.resistance,
                )]
            return [Recommendation(
                type='wait',
                message='Corrective pattern - wait for the correction to complete',
                confidence=top.confidence,
                expected_completion=top.targets.final_target,
            )]

        if top.confidence >= MEDIUM_SIGNAL_CONFIDENCE:
            return [Recommendation(
                type='caution',
                message='Medium-strength signal - proceed with caution',
                confidence=top.confidence,
            )]

        return [Recommendation(type='neutral', message='Signal too weak to act on', confidence=top.confidence)]

    @staticmethod
    def generate_analysis_summary(patterns: Sequence[Pattern], trend: str,
                                  current_wave: Optional[CurrentWaveAnalysis]) -> str:
        if not patterns:
            return 'No clear Elliott Wave patterns in the current data'

        top = patterns[0]
        kind = 'motive' if top.pattern_type == PatternType.MOTIVE else 'corrective'
        summary = f"Found {len(patterns)} Elliott Wave patterns. "
        summary += f"The strongest is a {top.direction.value} {kind} pattern "
        summary += f"with {top.confidence:.1f}% confidence. "
        if current_wave:
            summary += f"Current wave: {WAVE_DESCRIPTIONS.get(current_wave.current_wave, current_wave.current_wave)}. "
        summary += f"Overall trend: {TREND_DESCRIPTIONS.get(trend, trend)}."
        return summary
