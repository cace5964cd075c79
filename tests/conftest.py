import pytest

from analysis.analyzer import ElliottWaveAnalyzer
from analysis.config import AnalyzerConfig
from analysis.models import Pivot, PivotType
from analysis.sample_data import BEARISH_IMPULSE_ANCHORS, BULLISH_IMPULSE_ANCHORS, generate_wave_klines

HOUR_MS = 60 * 60 * 1000


@pytest.fixture
def config():
    return AnalyzerConfig()


@pytest.fixture
def analyzer(config):
    return ElliottWaveAnalyzer(config)


@pytest.fixture
def bullish_klines():
    """36 hourly candles tracing 100 -> 120 -> 110 -> 140 -> 125 -> 160 at pivots."""
    return generate_wave_klines(BULLISH_IMPULSE_ANCHORS)


@pytest.fixture
def bearish_klines():
    """Mirror of the bullish series: 160 -> 140 -> 150 -> 120 -> 135 -> 100 at pivots."""
    return generate_wave_klines(BEARISH_IMPULSE_ANCHORS)


@pytest.fixture
def make_pivots():
    """Builds alternating pivots from prices; the first type is given explicitly."""
    def _make(prices, first_type=PivotType.LOW, spacing=5):
        pivots = []
        pivot_type = first_type
        for i, price in enumerate(prices):
            pivots.append(Pivot(index=i * spacing, type=pivot_type, price=float(price), time=i * spacing * HOUR_MS))
            pivot_type = PivotType.HIGH if pivot_type == PivotType.LOW else PivotType.LOW
        return pivots
    return _make
