"""
Candle normalization.
Converts raw exchange klines, dict rows or OHLCV DataFrames into Candle records.
"""

import logging
from typing import Any, Iterable, List, Mapping, Sequence, Union

import numpy as np
import pandas as pd

from .models import Candle

logger = logging.getLogger(__name__)

KLINE_COLUMNS = [
    'open_time', 'open', 'high', 'low', 'close', 'volume', 'close_time',
    'quote_asset_volume', 'number_of_trades', 'taker_buy_base_asset_volume',
    'taker_buy_quote_asset_volume', 'ignore'
]

CandleInput = Union[pd.DataFrame, Iterable[Union[Candle, Sequence[Any], Mapping[str, Any]]]]


def _row_to_candle(row: Union[Candle, Sequence[Any], Mapping[str, Any]], index: int) -> Candle:
    if isinstance(row, Candle):
        values = (row.time, row.open, row.high, row.low, row.close, row.volume)
    elif isinstance(row, Mapping):
        time_value = row.get('time', row.get('open_time', row.get('timestamp')))
        values = (time_value, row['open'], row['high'], row['low'], row['close'], row.get('volume', 0.0))
    else:
        if len(row) < 6:
            raise ValueError(f"Kline at position {index} has {len(row)} fields, expected at least 6")
        values = tuple(row[:6])

    time_value, open_, high, low, close, volume = values
    if time_value is None:
        raise ValueError(f"Kline at position {index} has no open time")
    if isinstance(time_value, (pd.Timestamp, np.datetime64)):
        time_value = pd.Timestamp(time_value).value // 1_000_000

    candle = Candle(
        time=int(time_value),
        open=float(open_),
        high=float(high),
        low=float(low),
        close=float(close),
        volume=float(volume),
        index=index,
    )
    if candle.high < max(candle.open, candle.close) or candle.low > min(candle.open, candle.close):
        raise ValueError(f"Kline at position {index} violates OHLC bounds: {candle}")
    return candle


def _frame_rows(df: pd.DataFrame) -> List[Mapping[str, Any]]:
    frame = df
    if not any(col in frame.columns for col in ('time', 'open_time', 'timestamp')):
        if isinstance(frame.index, pd.DatetimeIndex):
            frame = frame.rename_axis('timestamp').reset_index()
        else:
            raise ValueError("DataFrame needs a 'time', 'open_time' or 'timestamp' column or a DatetimeIndex")
    if 'timestamp' in frame.columns and pd.api.types.is_datetime64_any_dtype(frame['timestamp']):
        epoch = pd.Timestamp(0, tz='UTC')
        frame = frame.assign(timestamp=(pd.to_datetime(frame['timestamp'], utc=True) - epoch) // pd.Timedelta(milliseconds=1))
    return frame.to_dict('records')


def normalize_candles(data: CandleInput) -> List[Candle]:
    """
    Normalizes input into Candle records indexed by position.

    Accepts raw kline rows `[open_time, open, high, low, close, volume, ...]`
    with numeric strings or floats, dict rows, Candle records, or a DataFrame
    with open/high/low/close(/volume) columns.

    Raises:
        ValueError: when a row is malformed, breaks the OHLC bounds, or the
            open times are not strictly increasing.
    """
    rows = _frame_rows(data) if isinstance(data, pd.DataFrame) else list(data)
    candles = [_row_to_candle(row, i) for i, row in enumerate(rows)]

    for prev, cur in zip(candles, candles[1:]):
        if cur.time <= prev.time:
            raise ValueError(f"Candle open times must be strictly increasing (index {cur.index})")

    logger.debug(f"Normalized {len(candles)} candles")
    return candles


def klines_to_frame(klines: Sequence[Sequence[Any]]) -> pd.DataFrame:
    """Raw exchange klines as a typed DataFrame indexed by UTC open time."""
    if not klines:
        return pd.DataFrame(columns=['open', 'high', 'low', 'close', 'volume'],
                            index=pd.DatetimeIndex([], tz='UTC', name='timestamp'))
    width = len(klines[0])
    df = pd.DataFrame([list(k) for k in klines], columns=KLINE_COLUMNS[:width])
    for col in ('open', 'high', 'low', 'close', 'volume'):
        df[col] = pd.to_numeric(df[col])
    df['timestamp'] = pd.to_datetime(df['open_time'].astype('int64'), unit='ms', utc=True)
    df.set_index('timestamp', inplace=True)
    return df[['open', 'high', 'low', 'close', 'volume']]
