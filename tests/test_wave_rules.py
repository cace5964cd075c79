"""
Tests for the Elliott Wave rule engine and the wave detector.
"""

import pytest

from analysis.config import AnalyzerConfig
from analysis.elliott_rules import ElliottRuleEngine, calculate_retracement, check_alternation
from analysis.models import Direction, PatternType, Pivot, PivotType
from analysis.wave_detector import WaveDetector

IMPULSE = [100, 120, 110, 140, 125, 160]


@pytest.fixture
def detector():
    return WaveDetector(AnalyzerConfig())


def test_valid_bullish_impulse(detector, make_pivots):
    pattern = detector.identify_motive_pattern(make_pivots(IMPULSE))

    assert pattern is not None, "A clean five-wave advance should be accepted"
    assert pattern.pattern_type == PatternType.MOTIVE
    assert pattern.direction == Direction.BULLISH
    assert pattern.validation.is_valid
    # wave 5 / wave 1 = 1.75 misses its Fibonacci band; every other check passes
    assert pattern.confidence == pytest.approx(97.5)
    assert pattern.waves.w2.retracement == pytest.approx(0.5)
    assert pattern.waves.w4.retracement == pytest.approx(0.5)


def test_valid_bearish_impulse(detector, make_pivots):
    pattern = detector.identify_motive_pattern(make_pivots([160, 140, 150, 120, 135, 100], first_type=PivotType.HIGH))

    assert pattern is not None
    assert pattern.direction == Direction.BEARISH
    assert pattern.targets.final_target < pattern.points[0].price


def test_wave3_shortest_rejected(detector, make_pivots):
    """Wave 3 (15) shorter than wave 1 (20) and wave 5 (29) breaks rule 2."""
    points = make_pivots([100, 120, 110, 125, 121, 150])
    validation = ElliottRuleEngine().validate_motive_wave_rules(points)

    assert validation.rule1 and validation.rule3, "Only rule 2 should fail for this window"
    assert not validation.rule2
    assert detector.identify_motive_pattern(points) is None


def test_wave2_beyond_wave1_start_rejected(detector, make_pivots):
    points = make_pivots([100, 120, 95, 140, 125, 160])
    assert not ElliottRuleEngine().validate_motive_wave_rules(points).rule1
    assert detector.identify_motive_pattern(points) is None


def test_wave4_overlap_rejected(detector, make_pivots):
    points = make_pivots([100, 120, 110, 140, 115, 160])
    assert not ElliottRuleEngine().validate_motive_wave_rules(points).rule3
    assert detector.identify_motive_pattern(points) is None


def test_non_alternating_window_rejected(detector, make_pivots):
    points = make_pivots(IMPULSE)
    points[2] = Pivot(index=points[2].index, type=PivotType.HIGH, price=110.0, time=points[2].time)

    assert not check_alternation(points)
    assert detector.identify_motive_pattern(points) is None
    assert detector.identify_corrective_pattern(points[:4]) is None


def test_wrong_window_size(detector, make_pivots):
    assert detector.identify_motive_pattern(make_pivots(IMPULSE[:5])) is None
    assert detector.identify_corrective_pattern(make_pivots(IMPULSE[:5])) is None


def test_retracement_ratio(make_pivots):
    start, peak, end = make_pivots([100, 120, 110])
    assert calculate_retracement(start, peak, end) == pytest.approx(0.5)


def test_corrective_direction_is_inverted(detector, make_pivots):
    """
    A low-to-high correction is classified as bearish and labelled with the
    opposite direction, bullish. A high-to-low correction is labelled bearish.
    """
    rising = detector.identify_corrective_pattern(make_pivots([100, 120, 110, 140]))
    falling = detector.identify_corrective_pattern(make_pivots([160, 140, 150, 120], first_type=PivotType.HIGH))

    assert ElliottRuleEngine.classify_correction(rising.points) is False
    assert rising.direction == Direction.BULLISH
    assert ElliottRuleEngine.classify_correction(falling.points) is True
    assert falling.direction == Direction.BEARISH
    assert rising.confidence == pytest.approx(100.0)
    assert falling.confidence == pytest.approx(100.0)


def test_classify_correction_same_type_ends(make_pivots):
    points = make_pivots([120, 110, 130], first_type=PivotType.HIGH)
    assert ElliottRuleEngine.classify_correction(points) is None


def test_wave_b_beyond_wave_a_rejected(detector, make_pivots):
    # wave B retraces 300% of wave A
    points = make_pivots([120, 110, 140, 125], first_type=PivotType.HIGH)
    assert detector.identify_corrective_pattern(points) is None


def test_short_wave_c_rejected(detector, make_pivots):
    # wave C / wave A = 5 / 20
    points = make_pivots([100, 120, 110, 115])
    waves = ElliottRuleEngine().build_corrective_waves(points)
    validation = ElliottRuleEngine().validate_corrective_pattern(waves, is_bullish_correction=False)

    assert not validation.rule2
    assert detector.identify_corrective_pattern(points) is None


def test_scan_finds_motive_then_corrective(detector, make_pivots):
    patterns = detector.analyze_elliott_wave(make_pivots(IMPULSE))

    assert [p.pattern_type for p in patterns] == [PatternType.MOTIVE, PatternType.CORRECTIVE, PatternType.CORRECTIVE]
    for pattern in patterns:
        assert 0 <= pattern.confidence <= 100, "Confidence must stay within [0, 100]"


def test_confidence_floor_filters_patterns(make_pivots):
    detector = WaveDetector(AnalyzerConfig(min_confidence=99))
    patterns = detector.analyze_elliott_wave(make_pivots(IMPULSE))

    assert patterns, "Both corrective windows score 100 and pass the floor"
    assert all(p.pattern_type == PatternType.CORRECTIVE for p in patterns)


def test_scan_needs_four_points(detector, make_pivots):
    assert detector.analyze_elliott_wave(make_pivots([100, 120, 110])) == []


def test_nested_sub_waves(detector, make_pivots):
    sub_waves = detector.find_nested_patterns(make_pivots(IMPULSE))

    assert len(sub_waves) == 5
    assert [w.direction for w in sub_waves] == ['up', 'down', 'up', 'down', 'up']
    assert sub_waves[0].length == pytest.approx(20.0)
    assert sub_waves[0].percentage == pytest.approx(20.0)
    assert all(w.timeframe == 5 * 60 * 60 * 1000 for w in sub_waves)
