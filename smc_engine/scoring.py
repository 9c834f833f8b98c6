"""
Confluence scoring for SMC setups
"""
import math
from dataclasses import dataclass
from typing import Union

PATTERN_TYPE_POINTS = {
    'CHOCH': 25,  # trend change
    'BOS': 20,    # trend continuation
    'FVG': 15,
    'OB': 10,
}

PROBABILITY_POINTS = {
    'high': 15,
    'medium': 10,
    'low': 5,
}


@dataclass
class ScoringFactors:
    """Inputs to the confluence score"""
    pattern_strength: float
    market_alignment: bool
    pattern_type: str  # 'FVG', 'OB', 'CHOCH', 'BOS'
    probability: str  # 'high', 'medium', 'low'
    reward_to_risk: float
    execution_confirmed: bool
    swing_level: bool


def calculate_confluence(factors: ScoringFactors) -> int:
    """
    Combine pattern attributes into a 0-100 confluence score

    Args:
        factors: Scoring inputs for one setup

    Returns:
        Rounded score clamped to [0, 100]
    """
    score = 0.0

    # Raw strengths are fractional (e.g. 0.003), scaled to 0-30 points
    score += min(30.0, factors.pattern_strength * 1000)

    if factors.market_alignment:
        score += 20

    score += PATTERN_TYPE_POINTS.get(factors.pattern_type, 0)
    score += PROBABILITY_POINTS.get(factors.probability, 0)

    if factors.reward_to_risk >= 3:
        score += 15
    elif factors.reward_to_risk >= 2:
        score += 10
    elif factors.reward_to_risk >= 1.5:
        score += 5

    if factors.execution_confirmed:
        score += 10

    if factors.swing_level:
        score += 5

    # Half-up rounding
    return max(0, min(100, int(math.floor(score + 0.5))))


def reward_to_risk(entry: Union[str, float], stop_loss: Union[str, float],
                   take_profit: Union[str, float]) -> float:
    """Reward-to-risk ratio, 0.0 when risk is zero or prices don't parse"""
    try:
        entry, stop_loss, take_profit = float(entry), float(stop_loss), float(take_profit)
    except (TypeError, ValueError):
        return 0.0

    risk = abs(entry - stop_loss)
    if risk == 0:
        return 0.0
    return abs(take_profit - entry) / risk


def is_market_aligned(direction: str, structure: str) -> bool:
    """Whether a trade direction agrees with the market structure"""
    return ((direction == 'buy' and structure == 'bullish') or
            (direction == 'sell' and structure == 'bearish'))
