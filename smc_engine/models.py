"""
Data models for the SMC setup scanner
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional

from . import scoring

# Market structure
BULLISH = 'bullish'
BEARISH = 'bearish'
NEUTRAL = 'neutral'

# Trade direction
BUY = 'buy'
SELL = 'sell'


@dataclass(frozen=True)
class Candle:
    """Normalized OHLC candle"""
    timestamp: int  # epoch seconds
    open: float
    high: float
    low: float
    close: float


@dataclass
class SwingPoint:
    """Local swing high/low relative to its immediate neighbours"""
    index: int
    price: float
    kind: str  # 'high' or 'low'
    timestamp: int


@dataclass
class StructureBreak:
    """CHOCH or BOS event against the most recent swing levels"""
    type: str  # 'CHOCH' or 'BOS'
    price: float
    direction: str  # 'buy' or 'sell'
    strength: float


@dataclass
class PatternCandidate:
    """Pattern detected on an analysis timeframe, before scoring"""
    type: str  # 'FVG', 'OB', 'BOS', 'CHOCH'
    direction: str
    entry: str
    stop_loss: str
    take_profit: str
    probability: str  # 'high', 'medium', 'low'
    strength: float


@dataclass
class SMCTradeSetup:
    """Scored multi-timeframe trade setup"""
    id: int
    pair: str
    strategy: str  # 'primary' or 'fallback'
    direction: str
    pattern: str
    higher_timeframe: str
    analysis_timeframe: str
    execution_timeframe: str
    entry: str
    stop_loss: str
    take_profit: str
    probability: str
    confirmation_status: str  # 'confirmed', 'pending', 'watching'
    pattern_type: str
    confluence_score: int

    @property
    def reward_to_risk(self) -> float:
        return scoring.reward_to_risk(self.entry, self.stop_loss, self.take_profit)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API responses"""
        return {
            'id': self.id,
            'pair': self.pair,
            'strategy': self.strategy,
            'direction': self.direction,
            'pattern': self.pattern,
            'higherTimeframe': self.higher_timeframe,
            'analysisTimeframe': self.analysis_timeframe,
            'executionTimeframe': self.execution_timeframe,
            'entry': self.entry,
            'stopLoss': self.stop_loss,
            'takeProfit': self.take_profit,
            'probability': self.probability,
            'confirmationStatus': self.confirmation_status,
            'patternType': self.pattern_type,
            'confluenceScore': self.confluence_score
        }


@dataclass
class TradeSignal:
    """Single-timeframe signal from the unbiased chart scan"""
    id: int
    pair: str
    direction: str
    pattern: str
    entry: str
    stop_loss: str
    take_profit: str
    probability: str
    timeframe: str
    signal_type: str  # 'premium', 'discount', 'liquidity-grab', 'choch', 'bos'
    analysis_timeframe: str  # 'primary' or 'secondary'
    confirmation_status: str
    fib_level: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API responses"""
        data = {
            'id': self.id,
            'pair': self.pair,
            'direction': self.direction,
            'pattern': self.pattern,
            'entry': self.entry,
            'stopLoss': self.stop_loss,
            'takeProfit': self.take_profit,
            'probability': self.probability,
            'timeframe': self.timeframe,
            'signalType': self.signal_type,
            'analysisTimeframe': self.analysis_timeframe,
            'confirmationStatus': self.confirmation_status
        }
        if self.fib_level:
            data['fibLevel'] = self.fib_level
        return data
