"""
End-to-end tests for ElliottWaveAnalyzer.
"""

import pytest

from analysis.analyzer import ElliottWaveAnalyzer
from analysis.config import AnalyzerConfig
from analysis.models import AnalysisStatus, Direction, MotivePattern, PatternType
from analysis.sample_data import generate_wave_klines


def test_too_few_candles(analyzer, bullish_klines):
    result = analyzer.analyze(bullish_klines[:15])

    assert result.status == AnalysisStatus.INSUFFICIENT_DATA
    assert result.patterns == []


def test_flat_series_has_no_pivots(analyzer):
    klines = [[i * 60_000, 100.0, 100.0, 100.0, 100.0, 1.0] for i in range(30)]
    result = analyzer.analyze(klines)

    assert result.status == AnalysisStatus.INSUFFICIENT_PIVOTS
    assert result.pivots == []


def test_small_moves_give_short_zigzag(bullish_klines):
    analyzer = ElliottWaveAnalyzer(AnalyzerConfig(zigzag_min_change_percent=50))
    result = analyzer.analyze(bullish_klines)

    assert result.status == AnalysisStatus.INSUFFICIENT_ZIGZAG
    assert len(result.pivots) == 6, "Pivots are still returned for inspection"


def test_expanding_swings_give_no_patterns(analyzer):
    # each wave B retraces more than all of wave A and wave 2 undercuts the wave 1 start
    klines = generate_wave_klines((105, 100, 110, 95, 120, 85, 135, 130))
    result = analyzer.analyze(klines)

    assert result.status == AnalysisStatus.NO_PATTERNS_FOUND
    assert result.patterns == []
    assert len(result.zigzag) == 6


def test_bullish_impulse(analyzer, bullish_klines):
    result = analyzer.analyze(bullish_klines)

    assert result.status == AnalysisStatus.SUCCESS
    motive = [p for p in result.patterns if p.pattern_type == PatternType.MOTIVE]
    assert motive, "The five-wave advance should be detected"
    assert motive[0].direction == Direction.BULLISH
    assert motive[0].confidence >= 70
    assert result.current_price == 150.0


def test_bullish_result_details(analyzer, bullish_klines):
    result = analyzer.analyze(bullish_klines)

    confidences = [p.confidence for p in result.patterns]
    assert confidences == sorted(confidences, reverse=True), "Patterns are ordered by confidence"
    # the first corrective window (100 -> 120 -> 110 -> 140) scores 100 and leads
    top = result.patterns[0]
    assert top.pattern_type == PatternType.CORRECTIVE
    assert top.direction == Direction.BULLISH
    assert result.trend == 'bullish_correction_end'

    assert result.dynamic_levels.support == [110.0]
    assert result.dynamic_levels.resistance == [160.0]
    assert result.dynamic_levels.targets == pytest.approx([125 + 20 * 1.618, 160.0])

    wave = result.current_wave_analysis
    assert wave.current_wave == 'new_impulse_starting'
    assert wave.timeframe == '15 hours'
    assert wave.risk_reward is None

    assert len(result.recommendations) == 1
    assert result.recommendations[0].type == 'wait'
    assert result.recommendations[0].expected_completion == 140.0
    assert len(result.nested_patterns) == 5
    assert 'corrective' in result.summary


def test_bearish_impulse(analyzer, bearish_klines):
    result = analyzer.analyze(bearish_klines)

    assert result.status == AnalysisStatus.SUCCESS
    motive = [p for p in result.patterns if isinstance(p, MotivePattern)]
    assert motive
    assert motive[0].direction == Direction.BEARISH
    assert motive[0].targets.final_target < motive[0].points[0].price
    assert result.trend == 'bearish_correction_end'
    assert result.dynamic_levels.targets == pytest.approx([100.0, 135 - 20 * 1.618])


def test_analysis_is_idempotent(analyzer, bullish_klines):
    first = analyzer.analyze(bullish_klines)
    second = analyzer.analyze(bullish_klines)

    assert len(first.patterns) == len(second.patterns)
    for a, b in zip(first.patterns, second.patterns):
        assert a.confidence == b.confidence
        assert a.targets.final_target == pytest.approx(b.targets.final_target, abs=1e-9)
        assert a.targets == b.targets
    assert first.dynamic_levels == second.dynamic_levels


def test_malformed_kline_reported_as_error(analyzer, bullish_klines):
    klines = [list(k) for k in bullish_klines]
    klines[3][2] = 'not-a-number'
    result = analyzer.analyze(klines)

    assert result.status == AnalysisStatus.ERROR
    assert result.error
    assert result.patterns == []


def test_unordered_candles_reported_as_error(analyzer, bullish_klines):
    result = analyzer.analyze(list(reversed(bullish_klines)))
    assert result.status == AnalysisStatus.ERROR


def test_accepts_dataframe(analyzer, bullish_klines):
    from analysis.candles import klines_to_frame

    result = analyzer.analyze(klines_to_frame(bullish_klines))
    assert result.status == AnalysisStatus.SUCCESS
    assert result.pivots[0].time == bullish_klines[5][0]


def test_result_serializes(analyzer, bullish_klines):
    data = analyzer.analyze(bullish_klines).to_dict()

    assert data['status'] == 'success'
    assert data['patterns'][0]['pattern_type'] == 'corrective'
    assert isinstance(data['patterns'][0]['points'], list)
    assert data['zigzag'][0]['type'] == 'low'


class TestCurrentWave:
    """Current-wave phases for a motive pattern at the top of the list."""

    @pytest.fixture
    def motive(self, make_pivots):
        from analysis.wave_detector import WaveDetector
        return WaveDetector().identify_motive_pattern(make_pivots([100, 120, 110, 140, 125, 160]))

    def test_extension(self, analyzer, motive):
        wave = analyzer.analyze_current_wave([motive], 170.0)
        assert wave.current_wave == 'extension_or_new_cycle'
        assert wave.expected_target == pytest.approx(motive.targets.wave5_fib1618)
        assert wave.stop_loss == 110.0
        assert wave.risk_reward == round(abs(wave.expected_target - 170.0) / 60.0, 2)

    def test_corrective_phase(self, analyzer, motive):
        wave = analyzer.analyze_current_wave([motive], 150.0)
        assert wave.current_wave == 'corrective_phase'
        assert wave.expected_target == 110.0
        assert wave.stop_loss is None

    def test_buy_recommendation(self, analyzer, motive):
        recs = analyzer.generate_recommendations([motive], 150.0)
        assert recs[0].type == 'buy'
        assert recs[0].stop_loss == 110.0
        assert recs[0].targets == [motive.targets.wave5_fib618, motive.targets.wave5_fib1000, motive.targets.wave5_fib1618]


def test_timeframe_units(make_pivots):
    from analysis.wave_detector import WaveDetector

    hour = 60 * 60 * 1000
    pattern = WaveDetector().identify_corrective_pattern(make_pivots([100, 120, 110, 140], spacing=16))
    assert pattern.points[-1].time - pattern.points[0].time == 48 * hour
    assert ElliottWaveAnalyzer.estimate_timeframe(pattern) == '2 days'


@pytest.mark.parametrize("spacing, label", [(20, '3 days'), (4, '12 hours'), (1, '3 hours'), (84, '2 weeks')])
def test_timeframe_rounds_halves_up(make_pivots, spacing, label):
    from analysis.wave_detector import WaveDetector

    # three legs of `spacing` hours: 60h is 2.5 days, 252h is 1.5 weeks
    pattern = WaveDetector().identify_corrective_pattern(make_pivots([100, 120, 110, 140], spacing=spacing))
    assert ElliottWaveAnalyzer.estimate_timeframe(pattern) == label


def test_no_patterns_recommendation():
    recs = ElliottWaveAnalyzer.generate_recommendations([], 100.0)
    assert len(recs) == 1 and recs[0].type == 'neutral'
