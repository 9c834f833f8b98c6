"""
Smart Money Concepts detection functions

All candle frames are newest-first: row 0 is the most recent candle.
"""
from typing import List, Optional, Union

import pandas as pd

from .models import (
    BEARISH, BULLISH, BUY, NEUTRAL, SELL,
    PatternCandidate, StructureBreak, SwingPoint
)

# Candles considered by the FVG/OB detectors
PATTERN_WINDOW = 15

FVG_MIN_GAP = 0.0005
FVG_HIGH_GAP = 0.001

OB_MIN_BODY_RATIO = 0.7
OB_MIN_STRENGTH = 0.002
OB_HIGH_STRENGTH = 0.004

# Stop distance beyond a broken swing level
STRUCTURE_STOP = 0.0015
STRUCTURE_HIGH_STRENGTH = 0.005

# Swing points considered when classifying structure
STRUCTURE_SWINGS = 4


def price_decimals(pair: str) -> int:
    """Pip precision: 3 decimals for JPY-quoted pairs, 5 otherwise"""
    return 3 if 'JPY' in pair else 5


def format_price(price: float, pair: str) -> str:
    """Format price with pair-specific precision"""
    return f"{price:.{price_decimals(pair)}f}"


def detect_swing_points(df: pd.DataFrame) -> List[SwingPoint]:
    """Detect 3-candle swing highs/lows, sorted newest-first"""
    swings: List[SwingPoint] = []

    for i in range(1, len(df) - 1):
        high = df['high'].iloc[i]
        low = df['low'].iloc[i]
        timestamp = int(df['timestamp'].iloc[i])

        # Check for swing high
        if high > df['high'].iloc[i - 1] and high > df['high'].iloc[i + 1]:
            swings.append(SwingPoint(i, float(high), 'high', timestamp))

        # Check for swing low
        if low < df['low'].iloc[i - 1] and low < df['low'].iloc[i + 1]:
            swings.append(SwingPoint(i, float(low), 'low', timestamp))

    return sorted(swings, key=lambda s: s.timestamp, reverse=True)


def classify_structure(df: pd.DataFrame) -> str:
    """
    Classify market structure from the four most recent swing points.

    Those four must hold two highs and two lows. Bullish needs a strictly
    higher high and a strictly higher low, bearish a strictly lower high and
    a strictly lower low. Anything else is neutral.
    """
    swings = detect_swing_points(df)

    if len(swings) < STRUCTURE_SWINGS:
        return NEUTRAL

    recent = swings[:STRUCTURE_SWINGS]
    highs = [s for s in recent if s.kind == 'high']
    lows = [s for s in recent if s.kind == 'low']

    if len(highs) < 2 or len(lows) < 2:
        return NEUTRAL

    higher_highs = highs[0].price > highs[1].price
    higher_lows = lows[0].price > lows[1].price
    lower_highs = highs[0].price < highs[1].price
    lower_lows = lows[0].price < lows[1].price

    if higher_highs and higher_lows:
        return BULLISH
    elif lower_highs and lower_lows:
        return BEARISH

    return NEUTRAL


def detect_choch_bos(df: pd.DataFrame, structure: str) -> List[StructureBreak]:
    """Detect Change of Character and Break of Structure against the latest swing levels"""
    events: List[StructureBreak] = []

    swings = detect_swing_points(df)
    if len(swings) < 3:
        return events

    current_price = float(df['close'].iloc[0])

    recent_highs = [s for s in swings if s.kind == 'high'][:2]
    recent_lows = [s for s in swings if s.kind == 'low'][:2]

    if not recent_highs or not recent_lows:
        return events

    last_high = recent_highs[0].price
    last_low = recent_lows[0].price

    # CHOCH: close beyond the level that contradicts the trend
    if structure == BULLISH and current_price < last_low:
        events.append(StructureBreak('CHOCH', last_low, SELL, abs(current_price - last_low) / last_low))
    elif structure == BEARISH and current_price > last_high:
        events.append(StructureBreak('CHOCH', last_high, BUY, abs(current_price - last_high) / last_high))

    # BOS: extension with the trend
    if structure == BULLISH and len(recent_highs) >= 2 and current_price > last_high:
        events.append(StructureBreak('BOS', last_high, BUY, abs(current_price - last_high) / last_high))
    elif structure == BEARISH and len(recent_lows) >= 2 and current_price < last_low:
        events.append(StructureBreak('BOS', last_low, SELL, abs(current_price - last_low) / last_low))

    return events


def _direction_allowed(direction: str, bias: Optional[str]) -> bool:
    # bias=None is the unbiased mode used by the chart scan
    if bias is None:
        return True
    if direction == BUY:
        return bias == BULLISH
    return bias == BEARISH


def detect_fvg(df: pd.DataFrame, pair: str, bias: Optional[str] = None) -> List[PatternCandidate]:
    """
    Detect Fair Value Gaps over the newest candles.

    Triples are taken newest-first (c1 newest). Bullish when c1.low > c3.high,
    bearish when c1.high < c3.low. Gaps under 0.05% of c2.close are noise.

    Args:
        df: Newest-first candle frame
        pair: Currency pair, used for price precision
        bias: Market structure filter; None detects both directions

    Returns:
        List of FVG pattern candidates
    """
    fvgs: List[PatternCandidate] = []
    window = df.iloc[:PATTERN_WINDOW]

    for i in range(len(window) - 2):
        c1 = window.iloc[i]
        c2 = window.iloc[i + 1]
        c3 = window.iloc[i + 2]

        # Bullish FVG: price left c3's range behind on the way up
        if _direction_allowed(BUY, bias) and c1['low'] > c3['high']:
            gap = c1['low'] - c3['high']
            gap_percent = gap / c2['close']

            if gap_percent >= FVG_MIN_GAP:
                fvgs.append(PatternCandidate(
                    type='FVG',
                    direction=BUY,
                    entry=format_price((c1['low'] + c3['high']) / 2, pair),
                    stop_loss=format_price(c3['high'] * 0.9995, pair),
                    take_profit=format_price(c1['low'] * 1.002, pair),
                    probability='high' if gap_percent > FVG_HIGH_GAP else 'medium',
                    strength=float(gap_percent)
                ))

        # Bearish FVG: gap down
        if _direction_allowed(SELL, bias) and c1['high'] < c3['low']:
            gap = c3['low'] - c1['high']
            gap_percent = gap / c2['close']

            if gap_percent >= FVG_MIN_GAP:
                fvgs.append(PatternCandidate(
                    type='FVG',
                    direction=SELL,
                    entry=format_price((c1['high'] + c3['low']) / 2, pair),
                    stop_loss=format_price(c3['low'] * 1.0005, pair),
                    take_profit=format_price(c1['high'] * 0.998, pair),
                    probability='high' if gap_percent > FVG_HIGH_GAP else 'medium',
                    strength=float(gap_percent)
                ))

    return fvgs


def detect_ob(df: pd.DataFrame, pair: str, bias: Optional[str] = None) -> List[PatternCandidate]:
    """Detect Order Blocks: strong directional bodies relative to their range"""
    obs: List[PatternCandidate] = []
    window = df.iloc[:PATTERN_WINDOW]

    for i in range(len(window) - 1):
        candle = window.iloc[i]
        body = abs(candle['close'] - candle['open'])
        total_range = candle['high'] - candle['low']
        body_ratio = body / total_range if total_range > 0 else 0.0
        strength = body / candle['close']

        if body_ratio <= OB_MIN_BODY_RATIO or strength <= OB_MIN_STRENGTH:
            continue

        probability = 'high' if strength > OB_HIGH_STRENGTH else 'medium'

        if candle['close'] > candle['open'] and _direction_allowed(BUY, bias):
            obs.append(PatternCandidate(
                type='OB',
                direction=BUY,
                entry=format_price(candle['open'], pair),
                stop_loss=format_price(candle['low'] * 0.999, pair),
                take_profit=format_price(candle['high'] * 1.003, pair),
                probability=probability,
                strength=float(strength)
            ))
        elif candle['close'] < candle['open'] and _direction_allowed(SELL, bias):
            obs.append(PatternCandidate(
                type='OB',
                direction=SELL,
                entry=format_price(candle['open'], pair),
                stop_loss=format_price(candle['high'] * 1.001, pair),
                take_profit=format_price(candle['low'] * 0.997, pair),
                probability=probability,
                strength=float(strength)
            ))

    return obs


def structure_candidates(df: pd.DataFrame, pair: str, structure: str) -> List[PatternCandidate]:
    """Turn CHOCH/BOS events into tradeable candidates entered at the broken level"""
    candidates: List[PatternCandidate] = []
    events = detect_choch_bos(df, structure)
    if not events:
        return candidates

    current_price = float(df['close'].iloc[0])

    for event in events:
        level = event.price
        if event.direction == BUY:
            stop_loss = level * (1 - STRUCTURE_STOP)
            take_profit = current_price * 1.001
        else:
            stop_loss = level * (1 + STRUCTURE_STOP)
            take_profit = current_price * 0.999

        candidates.append(PatternCandidate(
            type=event.type,
            direction=event.direction,
            entry=format_price(level, pair),
            stop_loss=format_price(stop_loss, pair),
            take_profit=format_price(take_profit, pair),
            probability='high' if event.strength > STRUCTURE_HIGH_STRENGTH else 'medium',
            strength=event.strength
        ))

    return candidates


def is_entry_zone_retested(df: pd.DataFrame, entry: Union[str, float], stop_loss: Union[str, float]) -> bool:
    """Check whether any candle's range overlaps the entry/stop zone"""
    if df.empty:
        return False

    entry, stop_loss = float(entry), float(stop_loss)
    zone_high = max(entry, stop_loss)
    zone_low = min(entry, stop_loss)

    touched = (df['low'] <= zone_high) & (df['high'] >= zone_low)
    return bool(touched.any())
