import asyncio
import sys
from pathlib import Path

# Ensure project root on sys.path before importing from smc_engine
sys.path.append(str(Path(__file__).resolve().parents[1]))

import pytest
from smc_engine.core.quote_gateway import (
    FCSQuoteGateway, QuoteUnavailableError, RateLimitExceededError, StaticQuoteGateway
)
from smc_engine.core.rate_limit import RateLimitTracker, is_rate_limit_response


class FakeResponse:
    status = 200

    def __init__(self, payload):
        self.payload = payload

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    def raise_for_status(self):
        pass

    async def json(self, content_type=None):
        return self.payload


class FakeSession:
    def __init__(self, payload):
        self.payload = payload
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, params))
        return FakeResponse(self.payload)

    async def close(self):
        pass


def gateway_with(payload, tracker=None):
    gateway = FCSQuoteGateway(api_key='test-key', rate_limit=tracker)
    gateway.session = FakeSession(payload)
    return gateway


def test_fetch_candles_parses_index_keyed_response():
    payload = {
        'status': True,
        'response': {
            '0': {'o': '1.1', 'h': '1.2', 'l': '1.0', 'c': '1.15', 'tm': '1700000000'},
            '1': {'o': '1.15', 'h': '1.25', 'l': '1.1', 'c': '1.2', 'tm': '1700003600'},
        },
    }
    gateway = gateway_with(payload)
    rows = asyncio.run(gateway.fetch_candles('EUR/USD', '1H', 10))

    assert len(rows) == 2
    url, params = gateway.session.calls[0]
    assert url.endswith('/forex/history')
    assert params == {'symbol': 'EUR/USD', 'period': '1H', 'limit': '10', 'access_key': 'test-key'}


def test_rate_limit_payload_marks_tracker():
    tracker = RateLimitTracker()
    gateway = gateway_with({'status': False, 'code': 213, 'msg': 'You have reached your limit'}, tracker)

    with pytest.raises(RateLimitExceededError):
        asyncio.run(gateway.fetch_candles('EUR/USD', '1H', 10))
    assert tracker.is_exhausted()

    # Further requests are refused without hitting the provider
    with pytest.raises(RateLimitExceededError):
        asyncio.run(gateway.fetch_candles('EUR/USD', '4H', 10))
    assert len(gateway.session.calls) == 1

    tracker.reset()
    assert not tracker.is_exhausted()


def test_error_payload_raises_unavailable():
    gateway = gateway_with({'status': False, 'msg': 'Invalid symbol'})
    with pytest.raises(QuoteUnavailableError) as exc_info:
        asyncio.run(gateway.fetch_candles('XXX/YYY', '1H', 10))
    assert not isinstance(exc_info.value, RateLimitExceededError)
    assert not gateway.rate_limit.is_exhausted()


def test_missing_api_key():
    gateway = FCSQuoteGateway(api_key=None)
    with pytest.raises(QuoteUnavailableError):
        asyncio.run(gateway.fetch_candles('EUR/USD', '1H', 10))


def test_retries_must_allow_one_request():
    with pytest.raises(ValueError):
        FCSQuoteGateway(api_key='test-key', retries=0)
    assert FCSQuoteGateway(api_key='test-key', retries=1).retries == 1


def test_is_rate_limit_response():
    assert is_rate_limit_response({'status': False, 'code': 213})
    assert is_rate_limit_response({'status': False, 'msg': 'Monthly LIMIT reached'})
    assert not is_rate_limit_response({'status': True, 'msg': 'limit'})
    assert not is_rate_limit_response({'status': False, 'msg': 'Invalid symbol'})
    assert not is_rate_limit_response(None)


def test_tracker_keeps_first_reason():
    tracker = RateLimitTracker()
    tracker.mark_exhausted('code 213')
    tracker.mark_exhausted('HTTP 429')
    assert tracker.reason == 'code 213'


def test_static_gateway_newest_first_and_limited():
    rows = [{'tm': str(1_700_000_000 + i * 60), 'o': '1', 'h': '1', 'l': '1', 'c': '1'} for i in range(5)]
    gateway = StaticQuoteGateway({'EUR/USD_1M': rows})
    fetched = asyncio.run(gateway.fetch_candles('EUR/USD', '1M', 3))
    assert [r['tm'] for r in fetched] == [str(1_700_000_000 + i * 60) for i in (4, 3, 2)]
    assert gateway.requests == [('EUR/USD', '1M', 3)]


def test_static_gateway_failures():
    gateway = StaticQuoteGateway({}, failures={'EUR/USD_1H': RateLimitExceededError('quota')})
    with pytest.raises(RateLimitExceededError):
        asyncio.run(gateway.fetch_candles('EUR/USD', '1H', 3))
    with pytest.raises(QuoteUnavailableError):
        asyncio.run(gateway.fetch_candles('EUR/USD', '4H', 3))
