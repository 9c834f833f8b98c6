import sys
from pathlib import Path

# Ensure project root on sys.path before importing from smc_engine
sys.path.append(str(Path(__file__).resolve().parents[1]))

from smc_engine.dedup import are_setups_similar, deduplicate_setups, setup_hash
from smc_engine.models import SMCTradeSetup


def make_setup(id, entry, score, pair='EUR/USD', pattern_type='FVG', etf='5M'):
    return SMCTradeSetup(
        id=id,
        pair=pair,
        strategy='primary',
        direction='buy',
        pattern=f"{pattern_type} (15M → {etf})",
        higher_timeframe='4H/1H',
        analysis_timeframe='15M',
        execution_timeframe=etf,
        entry=entry,
        stop_loss='1.10000',
        take_profit='1.11000',
        probability='high',
        confirmation_status='pending',
        pattern_type=pattern_type,
        confluence_score=score,
    )


def test_hash_rounds_entry_to_four_decimals():
    assert setup_hash(make_setup(1, '1.10501', 50)) == 'EUR/USD_1.1050_FVG_5M'
    assert setup_hash(make_setup(1, '1.10501', 50)) == setup_hash(make_setup(2, '1.10503', 70))


def test_hash_rounds_half_up():
    # 1.03125 and 1.15625 are exact binary floats sitting on the half
    assert setup_hash(make_setup(1, '1.03125', 50)) == 'EUR/USD_1.0313_FVG_5M'
    assert setup_hash(make_setup(1, '1.15625', 50)) == 'EUR/USD_1.1563_FVG_5M'


def test_near_identical_setups_collapse_to_highest_score():
    low = make_setup(1, '1.10501', 55)
    high = make_setup(2, '1.10503', 72)
    result = deduplicate_setups([low, high])
    assert result == [high]


def test_different_execution_timeframe_or_type_kept():
    setups = [
        make_setup(1, '1.10501', 50),
        make_setup(2, '1.10501', 40, etf='3M'),
        make_setup(3, '1.10501', 30, pattern_type='OB'),
        make_setup(4, '1.10501', 20, pair='GBP/USD'),
    ]
    assert len(deduplicate_setups(setups)) == 4


def test_result_sorted_by_score():
    setups = [make_setup(i, f"1.1{i:02d}00", score) for i, score in enumerate([10, 80, 45, 60])]
    scores = [s.confluence_score for s in deduplicate_setups(setups)]
    assert scores == [80, 60, 45, 10]


def test_deduplication_is_idempotent():
    setups = [
        make_setup(1, '1.10501', 55),
        make_setup(2, '1.10503', 72),
        make_setup(3, '1.20000', 30),
        make_setup(4, '1.20004', 31),
        make_setup(5, '1.30000', 90, etf='1M'),
    ]
    once = deduplicate_setups(setups)
    twice = deduplicate_setups(once)
    assert once == twice


def test_survivor_has_maximum_score_in_bucket():
    setups = [
        make_setup(i, entry, score)
        for i, (entry, score) in enumerate([
            ('1.10501', 40), ('1.10502', 65), ('1.10503', 12),
            ('1.20001', 33), ('1.20002', 34),
        ])
    ]
    survivors = deduplicate_setups(setups)
    for survivor in survivors:
        bucket = [s for s in setups if setup_hash(s) == setup_hash(survivor)]
        assert survivor.confluence_score == max(s.confluence_score for s in bucket)
    assert len(survivors) == 2


def test_deduplicate_empty():
    assert deduplicate_setups([]) == []


def test_setups_similar_within_five_pips():
    assert are_setups_similar(make_setup(1, '1.10500', 50), make_setup(2, '1.10540', 50))
    assert not are_setups_similar(make_setup(1, '1.10500', 50), make_setup(2, '1.10600', 50))
    assert not are_setups_similar(make_setup(1, '1.10500', 50), make_setup(2, '1.10500', 50, pair='GBP/USD'))


def test_setups_similar_jpy_threshold():
    first = make_setup(1, '150.100', 50, pair='USD/JPY')
    assert are_setups_similar(first, make_setup(2, '150.140', 50, pair='USD/JPY'))
    assert not are_setups_similar(first, make_setup(2, '150.200', 50, pair='USD/JPY'))
