"""
Analyzer Configuration
Immutable settings for the Elliott Wave pipeline, loadable from config.yaml.
"""

import dataclasses
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config.yaml"

# Standard levels used to label a measured ratio with its nearest Fibonacci level.
STANDARD_FIB_LEVELS: Tuple[float, ...] = (0.236, 0.382, 0.500, 0.618, 0.764, 1.000, 1.272, 1.618, 2.618)


@dataclass(frozen=True)
class AnalyzerConfig:
    """
    Settings consumed by every stage of the analysis.

    `min_wave_length` and `max_wave_length` are accepted for compatibility with
    existing configuration files but are reserved: no validation rule reads them.
    """
    len1: int = 4  # pivot half-width, candles each side
    zigzag_min_change_percent: float = 0.5
    min_candles: int = 20
    min_pivots: int = 6
    min_zigzag_points: int = 4
    min_confidence: float = 70.0
    min_wave_length: float = 0.5
    max_wave_length: float = 5.0
    fib236: float = 0.236
    fib382: float = 0.382
    fib500: float = 0.500
    fib618: float = 0.618
    fib764: float = 0.764
    fib786: float = 0.786
    fib1000: float = 1.000
    fib1272: float = 1.272
    fib1618: float = 1.618
    fib2618: float = 2.618

    def __post_init__(self):
        if self.len1 < 1:
            raise ValueError(f"len1 must be at least 1, got {self.len1}")
        if self.zigzag_min_change_percent < 0:
            raise ValueError(f"zigzag_min_change_percent must be non-negative, got {self.zigzag_min_change_percent}")
        if not 0 <= self.min_confidence <= 100:
            raise ValueError(f"min_confidence must be within [0, 100], got {self.min_confidence}")

    @classmethod
    def from_dict(cls, values: Optional[Dict[str, Any]]) -> 'AnalyzerConfig':
        """Builds a config from a mapping, ignoring keys it does not know."""
        if not values:
            return cls()
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            logger.warning(f"Ignoring unknown analyzer settings: {unknown}")
        return cls(**{k: v for k, v in values.items() if k in known})


DEFAULT_SETTINGS: Dict[str, Any] = {
    "log_level": "INFO",
    "analyzer": {},
    "data_source": {
        "base_url": "https://api.binance.com",
        "proxy_url": None,
        "default_symbol": "BTCUSDT",
        "default_interval": "1h",
        "default_limit": 200,
        "poll_interval_seconds": 30,
        "request_interval_ms": 50,
        "requests_per_minute": 1200,
        "csv_path": "data/sample_klines.csv",
    },
    "api": {
        "symbol_rate_limit_seconds": 1,
    },
}


def load_settings(path: str = DEFAULT_CONFIG_PATH) -> Dict[str, Any]:
    """
    Loads the full settings mapping from a YAML file.

    Missing sections fall back to DEFAULT_SETTINGS; a missing or unreadable
    file yields the defaults.
    """
    settings = {key: (dict(value) if isinstance(value, dict) else value)
                for key, value in DEFAULT_SETTINGS.items()}
    try:
        with open(path, 'r') as f:
            loaded = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.error(f"{path} not found. Using default configuration values.")
        return settings
    except yaml.YAMLError as e:
        logger.error(f"Error loading {path}: {e}. Using default configuration values.")
        return settings

    if not isinstance(loaded, dict):
        logger.error(f"{path} must contain a mapping, got {type(loaded).__name__}. Using default configuration values.")
        return settings

    for key, value in loaded.items():
        if isinstance(value, dict) and isinstance(settings.get(key), dict):
            settings[key].update(value)
        else:
            settings[key] = value
    return settings


def load_config(path: str = DEFAULT_CONFIG_PATH) -> AnalyzerConfig:
    """Returns the AnalyzerConfig described by the `analyzer` section of `path`."""
    return AnalyzerConfig.from_dict(load_settings(path).get("analyzer"))
