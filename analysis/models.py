"""
Analysis Models
Typed records shared by the pivot detector, zig-zag builder, wave classifier,
Fibonacci target engine and the analysis orchestrator.
"""

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union


class PivotType(str, Enum):
    HIGH = 'high'
    LOW = 'low'


class Direction(str, Enum):
    BULLISH = 'bullish'
    BEARISH = 'bearish'


class PatternType(str, Enum):
    MOTIVE = 'motive'
    CORRECTIVE = 'corrective'


class AnalysisStatus(str, Enum):
    SUCCESS = 'success'
    INSUFFICIENT_DATA = 'insufficient_data'
    INSUFFICIENT_PIVOTS = 'insufficient_pivots'
    INSUFFICIENT_ZIGZAG = 'insufficient_zigzag'
    NO_PATTERNS_FOUND = 'no_patterns_found'
    ERROR = 'error'


@dataclass(frozen=True)
class Candle:
    """One OHLCV bar. `time` is the open time in epoch milliseconds."""
    time: int
    open: float
    high: float
    low: float
    close: float
    volume: float
    index: int


@dataclass(frozen=True)
class Pivot:
    """A local extreme; zig-zag points use the same shape."""
    index: int
    type: PivotType
    price: float
    time: int


@dataclass(frozen=True)
class WaveSegment:
    start: Pivot
    end: Pivot
    length: float
    percentage: float
    retracement: Optional[float] = None


@dataclass(frozen=True)
class MotiveWaves:
    w1: WaveSegment
    w2: WaveSegment
    w3: WaveSegment
    w4: WaveSegment
    w5: WaveSegment


@dataclass(frozen=True)
class CorrectiveWaves:
    w_a: WaveSegment
    w_b: WaveSegment
    w_c: WaveSegment


@dataclass(frozen=True)
class MotiveValidation:
    rule1: bool
    rule2: bool
    rule3: bool
    alternation: bool
    is_valid: bool = field(init=False)

    def __post_init__(self):
        object.__setattr__(self, 'is_valid',
                           self.rule1 and self.rule2 and self.rule3 and self.alternation)


@dataclass(frozen=True)
class CorrectiveValidation:
    rule1: bool
    rule2: bool
    rule3: bool
    rule4: bool
    is_valid: bool = field(init=False)

    def __post_init__(self):
        object.__setattr__(self, 'is_valid',
                           self.rule1 and self.rule2 and self.rule3 and self.rule4)


@dataclass(frozen=True)
class FibonacciCheck:
    """A measured ratio (retracement or length ratio) against its Fibonacci band."""
    value: float
    fib_level: float
    is_valid: bool


@dataclass(frozen=True)
class MotiveFibonacciAnalysis:
    wave2: FibonacciCheck
    wave3: FibonacciCheck
    wave4: FibonacciCheck
    wave5: FibonacciCheck

    def checks(self) -> Tuple[FibonacciCheck, ...]:
        return (self.wave2, self.wave3, self.wave4, self.wave5)


@dataclass(frozen=True)
class CorrectiveFibonacciAnalysis:
    wave_b: FibonacciCheck
    wave_c: FibonacciCheck

    def checks(self) -> Tuple[FibonacciCheck, ...]:
        return (self.wave_b, self.wave_c)


# Field name -> ratio, in ascending ratio order.
FIB_LEVEL_FIELDS = (
    ('fib236', 0.236),
    ('fib382', 0.382),
    ('fib500', 0.500),
    ('fib618', 0.618),
    ('fib764', 0.764),
    ('fib1000', 1.000),
    ('fib1272', 1.272),
    ('fib1618', 1.618),
    ('fib2618', 2.618),
)


@dataclass(frozen=True)
class FibonacciLevels:
    """Price projections keyed by Fibonacci ratio; unused ratios stay None."""
    fib236: Optional[float] = None
    fib382: Optional[float] = None
    fib500: Optional[float] = None
    fib618: Optional[float] = None
    fib764: Optional[float] = None
    fib1000: Optional[float] = None
    fib1272: Optional[float] = None
    fib1618: Optional[float] = None
    fib2618: Optional[float] = None

    def items(self) -> List[Tuple[str, float]]:
        """Populated (name, price) pairs in ascending ratio order."""
        return [(name, getattr(self, name)) for name, _ in FIB_LEVEL_FIELDS
                if getattr(self, name) is not None]


@dataclass(frozen=True)
class NextCycleTargets:
    extension100: float
    extension127: float
    extension162: float
    extension262: float


@dataclass(frozen=True)
class CorrectionTargets:
    correction236: float
    correction382: float
    correction500: float
    correction618: float
    correction786: float


@dataclass(frozen=True)
class CompletionTargets:
    completion100: float
    completion127: float
    completion162: float


@dataclass(frozen=True)
class NextImpulseTargets:
    impulse_fib618: float
    impulse_fib1000: float
    impulse_fib1618: float
    impulse_fib2618: float


@dataclass(frozen=True)
class MotiveKeyLevels:
    wave1_end: float
    wave2_end: float
    wave3_end: float
    wave4_end: float
    wave5_end: float


@dataclass(frozen=True)
class CorrectiveKeyLevels:
    wave_a_start: float
    wave_a_end: float
    wave_b_end: float
    wave_c_end: float


@dataclass(frozen=True)
class TargetPriority:
    main_target: Optional[float]
    secondary_target: Optional[float]
    conservative_target: Optional[float] = None


@dataclass(frozen=True)
class MotiveTargets:
    wave5_based_on_w1: FibonacciLevels
    wave5_based_on_w3: FibonacciLevels
    wave5_based_on_total: FibonacciLevels
    next_cycle_targets: NextCycleTargets
    correction_targets: CorrectionTargets
    wave5_fib618: float
    wave5_fib1000: float
    wave5_fib1618: float
    wave5_w3_fib382: float
    wave5_w3_fib618: float
    final_target: float
    support: float
    resistance: float
    key_levels: MotiveKeyLevels
    priority: TargetPriority

    def scalar_levels(self) -> List[float]:
        """Headline price levels, used for the aggregated dynamic target list."""
        return [
            self.wave5_fib618,
            self.wave5_fib1000,
            self.wave5_fib1618,
            self.wave5_w3_fib382,
            self.wave5_w3_fib618,
            self.final_target,
            self.support,
            self.resistance,
        ]


@dataclass(frozen=True)
class CorrectiveTargets:
    wave_c_based_on_a: FibonacciLevels
    wave_c_based_on_b: FibonacciLevels
    completion_targets: CompletionTargets
    next_impulse_targets: NextImpulseTargets
    wave_c_fib618: float
    wave_c_fib1000: float
    wave_c_fib1272: float
    wave_c_fib1618: float
    final_target: float
    support: float
    resistance: float
    key_levels: CorrectiveKeyLevels
    priority: TargetPriority


@dataclass(frozen=True)
class MotivePattern:
    """Impulsive 1-2-3-4-5 structure over six zig-zag points."""
    direction: Direction
    points: Tuple[Pivot, ...]
    waves: MotiveWaves
    validation: MotiveValidation
    fibonacci_analysis: MotiveFibonacciAnalysis
    confidence: float
    targets: MotiveTargets
    pattern_type: PatternType = field(default=PatternType.MOTIVE, init=False)


@dataclass(frozen=True)
class CorrectivePattern:
    """
    A-B-C structure over four zig-zag points.

    `direction` is the opposite of the correction's own classification: a
    bullish correction (A on a high, C ending on a low) is labelled bearish.
    """
    direction: Direction
    points: Tuple[Pivot, ...]
    waves: CorrectiveWaves
    validation: CorrectiveValidation
    fibonacci_analysis: CorrectiveFibonacciAnalysis
    confidence: float
    targets: CorrectiveTargets
    pattern_type: PatternType = field(default=PatternType.CORRECTIVE, init=False)


Pattern = Union[MotivePattern, CorrectivePattern]


@dataclass(frozen=True)
class SubWave:
    start: Pivot
    end: Pivot
    length: float
    percentage: float
    direction: str  # 'up' | 'down'
    timeframe: int  # elapsed milliseconds


@dataclass(frozen=True)
class DynamicLevels:
    support: List[float] = field(default_factory=list)
    resistance: List[float] = field(default_factory=list)
    targets: List[float] = field(default_factory=list)


@dataclass(frozen=True)
class CurrentWaveAnalysis:
    current_wave: str
    expected_target: Optional[float]
    stop_loss: Optional[float]
    confidence: float
    timeframe: str
    risk_reward: Optional[float]


@dataclass(frozen=True)
class Recommendation:
    type: str  # buy | sell | wait | caution | neutral
    message: str
    confidence: float
    entry: Optional[float] = None
    targets: Optional[List[float]] = None
    stop_loss: Optional[float] = None
    expected_completion: Optional[float] = None


@dataclass
class AnalysisResult:
    """Everything produced by one `ElliottWaveAnalyzer.analyze()` call."""
    status: AnalysisStatus
    message: str = ''
    patterns: List[Pattern] = field(default_factory=list)
    zigzag: List[Pivot] = field(default_factory=list)
    pivots: List[Pivot] = field(default_factory=list)
    trend: str = 'neutral'
    current_price: Optional[float] = None
    dynamic_levels: Optional[DynamicLevels] = None
    nested_patterns: List[SubWave] = field(default_factory=list)
    current_wave_analysis: Optional[CurrentWaveAnalysis] = None
    recommendations: List[Recommendation] = field(default_factory=list)
    summary: str = ''
    error: Optional[str] = None
    timestamp: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        """Plain-dict form for JSON responses; enums become their string values."""
        return _jsonable(dataclasses.asdict(self))


def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    return value
