"""
Single-timeframe signal scan used by the live chart overlay.

Unlike the multi-timeframe analyzer this scan is not filtered by market
structure: FVGs, order blocks, breakouts and liquidity grabs are reported
in both directions.
"""
import logging
from typing import Any, List

import pandas as pd

from .data_loader import normalize_rows
from .models import BUY, SELL, TradeSignal
from .smc_detector import detect_fvg, format_price

logger = logging.getLogger(__name__)

MIN_CANDLES = 5
SCAN_WINDOW = 10


class _SignalBuilder:
    """Collects signals for one pair with sequential ids"""

    def __init__(self, pair: str, timeframe: str):
        self.pair = pair
        self.timeframe = timeframe
        self.signals: List[TradeSignal] = []

    def add(self, direction: str, pattern: str, entry: float, stop_loss: float, take_profit: float,
            probability: str, signal_type: str, analysis_timeframe: str, status: str, fib_level=None):
        self.signals.append(TradeSignal(
            id=len(self.signals) + 1,
            pair=self.pair,
            direction=direction,
            pattern=pattern,
            entry=format_price(entry, self.pair),
            stop_loss=format_price(stop_loss, self.pair),
            take_profit=format_price(take_profit, self.pair),
            probability=probability,
            timeframe=self.timeframe,
            signal_type=signal_type,
            analysis_timeframe=analysis_timeframe,
            confirmation_status=status,
            fib_level=fib_level
        ))


def _scan_breakouts(df: pd.DataFrame, out: _SignalBuilder):
    """Candles closing through the two previous highs/lows"""
    for i in range(len(df) - 3):
        current = df.iloc[i]
        prev1 = df.iloc[i + 1]
        prev2 = df.iloc[i + 2]
        volatility = abs(current['high'] - current['low']) / current['close']

        if volatility <= 0.001:
            continue

        probability = 'high' if volatility > 0.005 else 'medium'

        if (current['high'] > prev1['high'] and current['high'] > prev2['high']
                and current['close'] > current['open']):
            entry = (current['low'] + prev1['low']) / 2
            out.add(BUY, 'Bullish BOS (Break of Structure)', entry, entry * 0.9985,
                    current['high'] * 1.001, probability, 'bos', 'primary', 'confirmed')

        if (current['low'] < prev1['low'] and current['low'] < prev2['low']
                and current['close'] < current['open']):
            entry = (current['high'] + prev1['high']) / 2
            out.add(SELL, 'Bearish BOS (Break of Structure)', entry, entry * 1.0015,
                    current['low'] * 0.999, probability, 'bos', 'primary', 'confirmed')


def _scan_fvgs(df: pd.DataFrame, out: _SignalBuilder):
    for fvg in detect_fvg(df, out.pair, bias=None):
        label = 'Bullish' if fvg.direction == BUY else 'Bearish'
        out.add(fvg.direction, f"{label} FVG ({fvg.strength * 100:.3f}% gap)",
                float(fvg.entry), float(fvg.stop_loss), float(fvg.take_profit), fvg.probability,
                'discount' if fvg.direction == BUY else 'premium', 'primary', 'pending', '61.8%')


def _scan_order_blocks(df: pd.DataFrame, out: _SignalBuilder):
    """Strong-body candles followed by a meaningful move"""
    for i in range(len(df) - 1):
        candle = df.iloc[i]
        next_candle = df.iloc[i + 1]

        body = abs(candle['close'] - candle['open'])
        total_range = candle['high'] - candle['low']
        body_ratio = body / total_range if total_range > 0 else 0.0

        if body_ratio <= 0.6 or body / candle['close'] <= 0.002:
            continue
        if abs(next_candle['close'] - candle['close']) / candle['close'] <= 0.001:
            continue

        probability = 'high' if body_ratio > 0.8 else 'medium'

        if candle['close'] > candle['open']:
            out.add(BUY, f"Bullish Order Block ({body_ratio * 100:.1f}% body)", candle['open'],
                    candle['low'] * 0.9995, candle['high'] * 1.002, probability,
                    'discount', 'primary', 'watching')
        elif candle['close'] < candle['open']:
            out.add(SELL, f"Bearish Order Block ({body_ratio * 100:.1f}% body)", candle['open'],
                    candle['high'] * 1.0005, candle['low'] * 0.998, probability,
                    'premium', 'primary', 'watching')


def _scan_liquidity_grabs(df: pd.DataFrame, out: _SignalBuilder):
    """Wicks that sweep the previous two highs/lows and close back inside"""
    for i in range(len(df) - 2):
        current = df.iloc[i]
        prev1 = df.iloc[i + 1]
        prev2 = df.iloc[i + 2]

        if (current['high'] > prev1['high'] and current['high'] > prev2['high']
                and current['close'] < current['high'] * 0.998):
            wick = (current['high'] - max(current['open'], current['close'])) / current['close']
            if wick > 0.001:
                out.add(SELL, f"Liquidity Grab High ({wick * 100:.2f}% wick)", current['high'] * 0.9995,
                        current['high'], current['close'] * 0.998,
                        'high' if wick > 0.003 else 'medium', 'liquidity-grab', 'secondary', 'confirmed')

        if (current['low'] < prev1['low'] and current['low'] < prev2['low']
                and current['close'] > current['low'] * 1.002):
            wick = (min(current['open'], current['close']) - current['low']) / current['close']
            if wick > 0.001:
                out.add(BUY, f"Liquidity Grab Low ({wick * 100:.2f}% wick)", current['low'] * 1.0005,
                        current['low'], current['close'] * 1.002,
                        'high' if wick > 0.003 else 'medium', 'liquidity-grab', 'secondary', 'confirmed')


def generate_signals(data: Any, pair: str, timeframe: str = '1H') -> List[TradeSignal]:
    """
    Scan the newest candles of one timeframe for SMC signals

    Args:
        data: Raw provider rows, or an already normalized newest-first frame
        pair: Currency pair
        timeframe: Timeframe label attached to every signal

    Returns:
        Signals with ids numbered from 1
    """
    df = data if isinstance(data, pd.DataFrame) else normalize_rows(data)

    if len(df) < MIN_CANDLES:
        logger.info(f"Insufficient data for {pair}: {len(df)} candles")
        return []

    recent = df.iloc[:SCAN_WINDOW].reset_index(drop=True)
    out = _SignalBuilder(pair, timeframe)

    _scan_breakouts(recent, out)
    _scan_fvgs(recent, out)
    _scan_order_blocks(recent, out)
    _scan_liquidity_grabs(recent, out)

    logger.info(f"Generated {len(out.signals)} signals for {pair}")
    return out.signals
