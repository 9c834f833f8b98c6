"""
Candle normalization and data loading utilities
"""
import logging
import numbers
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from .models import Candle

logger = logging.getLogger(__name__)

CANDLE_COLUMNS = ['timestamp', 'open', 'high', 'low', 'close']

# Provider rows use short keys (FCS: o/h/l/c/tm), CSV exports use long ones
_KEY_ALIASES = {
    'timestamp': ('tm', 'timestamp', 't'),
    'open': ('o', 'open'),
    'high': ('h', 'high'),
    'low': ('l', 'low'),
    'close': ('c', 'close'),
}


def empty_frame() -> pd.DataFrame:
    """Empty candle frame with the canonical columns"""
    df = pd.DataFrame({col: pd.Series(dtype='float64') for col in CANDLE_COLUMNS})
    df['timestamp'] = df['timestamp'].astype('int64')
    return df


def _pick(row: Mapping, column: str) -> Optional[Any]:
    for key in _KEY_ALIASES[column]:
        if key in row:
            value = row[key]
            # Only scalars can be coerced; anything else counts as missing
            if isinstance(value, bool) or not isinstance(value, (str, numbers.Real)):
                return None
            return value
    return None


def normalize_rows(rows: Any) -> pd.DataFrame:
    """
    Convert raw provider rows into a clean candle DataFrame.

    Rows without a parseable timestamp, with a non-positive close, with
    unparseable open/high/low or with an inconsistent OHLC range are dropped.
    Duplicate timestamps keep the last row seen. The result is sorted
    newest-first with a fresh RangeIndex. Never raises.

    Args:
        rows: List of row mappings (or the index-keyed mapping some
            provider responses use instead of a list)

    Returns:
        DataFrame with columns timestamp/open/high/low/close
    """
    if rows is None or isinstance(rows, (str, bytes)):
        return empty_frame()

    if isinstance(rows, Mapping):
        rows = list(rows.values())

    try:
        records = [
            {col: _pick(row, col) for col in CANDLE_COLUMNS}
            for row in rows
            if isinstance(row, Mapping)
        ]
    except TypeError:
        logger.debug(f"Unsupported candle payload: {type(rows).__name__}")
        return empty_frame()

    if not records:
        return empty_frame()

    df = pd.DataFrame.from_records(records, columns=CANDLE_COLUMNS)
    for col in CANDLE_COLUMNS:
        df[col] = pd.to_numeric(df[col], errors='coerce')

    total = len(df)
    finite = np.isfinite(df[CANDLE_COLUMNS].to_numpy(dtype='float64')).all(axis=1)
    df = df[finite]
    df = df[df['close'] > 0]

    # low <= min(open, close) <= max(open, close) <= high
    body_low = df[['open', 'close']].min(axis=1)
    body_high = df[['open', 'close']].max(axis=1)
    df = df[(df['low'] <= body_low) & (body_high <= df['high'])]

    df = df.astype({'timestamp': 'int64'})
    df = df.drop_duplicates(subset='timestamp', keep='last')
    df = df.sort_values('timestamp', ascending=False).reset_index(drop=True)

    dropped = total - len(df)
    if dropped:
        logger.debug(f"Dropped {dropped} of {total} malformed candle rows")

    return df


def normalize_candles(rows: Any) -> List[Candle]:
    """Normalize raw rows into Candle value objects, newest first"""
    df = normalize_rows(rows)
    return [
        Candle(
            timestamp=int(row.timestamp),
            open=float(row.open),
            high=float(row.high),
            low=float(row.low),
            close=float(row.close)
        )
        for row in df.itertuples(index=False)
    ]


def frame_from_candles(candles: List[Candle]) -> pd.DataFrame:
    """Build a newest-first candle DataFrame from Candle objects"""
    if not candles:
        return empty_frame()

    df = pd.DataFrame([
        {
            'timestamp': c.timestamp,
            'open': c.open,
            'high': c.high,
            'low': c.low,
            'close': c.close
        }
        for c in candles
    ], columns=CANDLE_COLUMNS)

    return df.sort_values('timestamp', ascending=False).reset_index(drop=True)


def load_csv_rows(path: str) -> List[Dict[str, Any]]:
    """
    Load a CSV export into raw candle rows

    Args:
        path: Path to CSV file with timestamp/open/high/low/close columns

    Returns:
        List of row dictionaries with epoch-second timestamps

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If required columns are missing
    """
    if not Path(path).exists():
        raise FileNotFoundError(f"CSV file not found: {path}")

    df = pd.read_csv(path)
    df.columns = [c.lower() for c in df.columns]

    missing_columns = set(CANDLE_COLUMNS) - set(df.columns)
    if missing_columns:
        raise ValueError(f'CSV must contain columns: {CANDLE_COLUMNS}. Missing: {missing_columns}')

    # Date strings are converted to epoch seconds; numeric timestamps pass through
    if not pd.api.types.is_numeric_dtype(df['timestamp']):
        parsed = pd.to_datetime(df['timestamp'], utc=True, errors='coerce')
        df['timestamp'] = (parsed - pd.Timestamp(0, tz='UTC')) // pd.Timedelta(seconds=1)

    return df[CANDLE_COLUMNS].to_dict('records')
