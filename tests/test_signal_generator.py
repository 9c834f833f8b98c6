import sys
from pathlib import Path

# Ensure project root on sys.path before importing from smc_engine
sys.path.append(str(Path(__file__).resolve().parents[1]))

from smc_engine.data_loader import normalize_rows
from smc_engine.signal_generator import generate_signals

# Chronological (open, high, low, close); the last candle gaps below the third-to-last
GAP_DOWN = [
    (1.1000, 1.1004, 1.0998, 1.1002),
    (1.1002, 1.1004, 1.0999, 1.1001),
    (1.1000, 1.1003, 1.0997, 1.0999),
    (1.0999, 1.0999, 1.0980, 1.0982),
    (1.0982, 1.0985, 1.0978, 1.0980),
]


def raw_rows(candles):
    return [
        {"o": str(o), "h": str(h), "l": str(l), "c": str(c), "tm": str(1_700_000_000 + i * 3600)}
        for i, (o, h, l, c) in enumerate(candles)
    ]


def test_insufficient_data_returns_empty():
    assert generate_signals(raw_rows(GAP_DOWN[:4]), 'EUR/USD') == []
    assert generate_signals([], 'EUR/USD') == []


def test_bearish_fvg_reported_without_structure_filter():
    signals = generate_signals(raw_rows(GAP_DOWN), 'EUR/USD', timeframe='4H')
    fvgs = [s for s in signals if 'FVG' in s.pattern]

    assert len(fvgs) == 1
    fvg = fvgs[0]
    assert fvg.direction == 'sell'
    assert fvg.entry == '1.09910'
    assert fvg.probability == 'high'
    assert fvg.signal_type == 'premium'
    assert fvg.confirmation_status == 'pending'
    assert fvg.fib_level == '61.8%'
    assert fvg.timeframe == '4H'


def test_breakout_detected():
    signals = generate_signals(raw_rows(GAP_DOWN), 'EUR/USD')
    bos = [s for s in signals if s.signal_type == 'bos']
    assert [s.direction for s in bos] == ['sell']
    assert bos[0].confirmation_status == 'confirmed'


def test_ids_sequential_and_frames_accepted():
    df = normalize_rows(raw_rows(GAP_DOWN))
    signals = generate_signals(df, 'EUR/USD')
    assert signals
    assert [s.id for s in signals] == list(range(1, len(signals) + 1))


def test_fvg_scan_is_unbiased(monkeypatch):
    calls = []

    def fake_detect_fvg(df, pair, bias='unset'):
        calls.append(bias)
        return []

    monkeypatch.setattr('smc_engine.signal_generator.detect_fvg', fake_detect_fvg)
    generate_signals(raw_rows(GAP_DOWN), 'EUR/USD')
    assert calls == [None]


def test_to_dict_includes_fib_level_only_when_set():
    signals = generate_signals(raw_rows(GAP_DOWN), 'EUR/USD')
    by_type = {s.signal_type: s.to_dict() for s in signals}

    assert by_type['premium']['fibLevel'] == '61.8%'
    assert by_type['premium']['stopLoss']
    assert 'fibLevel' not in by_type['bos']
