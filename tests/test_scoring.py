import sys
from itertools import product
from pathlib import Path

# Ensure project root on sys.path before importing from smc_engine
sys.path.append(str(Path(__file__).resolve().parents[1]))

import pytest
from smc_engine.scoring import (
    ScoringFactors, calculate_confluence, is_market_aligned, reward_to_risk
)


def factors(**overrides):
    base = dict(
        pattern_strength=0.0,
        market_alignment=False,
        pattern_type='OB',
        probability='low',
        reward_to_risk=0.0,
        execution_confirmed=False,
        swing_level=False,
    )
    base.update(overrides)
    return ScoringFactors(**base)


def test_all_maxima_clamp_to_100():
    score = calculate_confluence(factors(
        pattern_strength=0.03,
        market_alignment=True,
        pattern_type='CHOCH',
        probability='high',
        reward_to_risk=3.0,
        execution_confirmed=True,
        swing_level=True,
    ))
    assert score == 100


def test_minimal_score():
    assert calculate_confluence(factors()) == 15


def test_fvg_score_breakdown():
    score = calculate_confluence(factors(
        pattern_strength=0.0030 / 1.1055,
        market_alignment=True,
        pattern_type='FVG',
        probability='high',
    ))
    # 2.71 + 20 + 15 + 15
    assert score == 53


def test_strength_contribution_capped():
    low = calculate_confluence(factors(pattern_strength=0.03))
    high = calculate_confluence(factors(pattern_strength=5.0))
    assert low == high == 45


@pytest.mark.parametrize("rr,points", [(0.5, 0), (1.5, 5), (1.99, 5), (2.0, 10), (3.0, 15), (10.0, 15)])
def test_reward_to_risk_tiers(rr, points):
    assert calculate_confluence(factors(reward_to_risk=rr)) - calculate_confluence(factors()) == points


def test_pattern_type_ranking():
    scores = [calculate_confluence(factors(pattern_type=t)) for t in ('CHOCH', 'BOS', 'FVG', 'OB')]
    assert scores == sorted(scores, reverse=True)
    assert scores[0] - scores[-1] == 15


def test_score_always_bounded_integer():
    for strength, aligned, ptype, prob, rr, confirmed, swing in product(
            [0.0, 0.001, 0.02, 0.5], [True, False], ['CHOCH', 'BOS', 'FVG', 'OB'],
            ['high', 'medium', 'low'], [0.0, 1.5, 2.0, 3.0], [True, False], [True, False]):
        score = calculate_confluence(ScoringFactors(strength, aligned, ptype, prob, rr, confirmed, swing))
        assert isinstance(score, int)
        assert 0 <= score <= 100


def test_score_is_deterministic():
    f = factors(pattern_strength=0.0042, pattern_type='BOS', probability='medium', reward_to_risk=2.2)
    assert len({calculate_confluence(f) for _ in range(5)}) == 1


def test_reward_to_risk():
    assert reward_to_risk('1.10000', '1.09900', '1.10300') == pytest.approx(3.0)
    assert reward_to_risk(1.1, 1.1, 1.2) == 0.0
    assert reward_to_risk('n/a', '1.0', '1.2') == 0.0


def test_market_alignment():
    assert is_market_aligned('buy', 'bullish')
    assert is_market_aligned('sell', 'bearish')
    assert not is_market_aligned('sell', 'bullish')
    assert not is_market_aligned('buy', 'neutral')
