"""
Quote gateway interfaces for live and offline candle data
"""
import asyncio
import logging
import aiohttp
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from aiolimiter import AsyncLimiter

from .rate_limit import RateLimitTracker, is_rate_limit_response

logger = logging.getLogger(__name__)


class QuoteUnavailableError(Exception):
    """No candle data could be obtained for a request"""


class RateLimitExceededError(QuoteUnavailableError):
    """The provider quota is exhausted"""


class QuoteGateway(ABC):
    """Abstract base class for candle providers"""

    @abstractmethod
    async def fetch_candles(self, pair: str, period: str, limit: int) -> List[Dict[str, Any]]:
        """
        Fetch raw candle rows

        Raises:
            QuoteUnavailableError: If the request fails for any reason
        """
        pass


class FCSQuoteGateway(QuoteGateway):
    """Live quote gateway using the FCS forex API"""

    def __init__(self, api_key: Optional[str], base_url: str = "https://fcsapi.com/api-v3",
                 requests_per_minute: int = 60, rate_limit: Optional[RateLimitTracker] = None,
                 retries: int = 3):
        if retries < 1:
            raise ValueError(f"retries must be at least 1: {retries}")

        self.api_key = api_key
        self.base_url = base_url.rstrip('/')
        self.retries = retries

        self.limiter = AsyncLimiter(max_rate=requests_per_minute, time_period=60)
        self.rate_limit = rate_limit or RateLimitTracker()

        self.session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        """Async context manager entry"""
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit"""
        await self.close()

    async def _ensure_session(self):
        """Ensure HTTP session is available"""
        if not self.session:
            self.session = aiohttp.ClientSession()

    async def close(self):
        if self.session:
            await self.session.close()
            self.session = None

    async def _make_request(self, endpoint: str, params: Dict[str, str]) -> Dict[str, Any]:
        """Make rate-limited HTTP request to the FCS API"""
        if self.rate_limit.is_exhausted():
            raise RateLimitExceededError(self.rate_limit.reason or "rate limit reached")

        if not self.api_key:
            raise QuoteUnavailableError("No FCS API key configured")

        await self._ensure_session()
        url = f"{self.base_url}/{endpoint}"
        query = dict(params, access_key=self.api_key)

        async with self.limiter:
            for attempt in range(self.retries):
                try:
                    async with self.session.get(url, params=query, timeout=aiohttp.ClientTimeout(total=10)) as response:
                        if response.status == 429:
                            logger.warning(f"HTTP 429 from provider, retrying in {2 ** attempt} seconds")
                            await asyncio.sleep(2 ** attempt)
                            continue
                        response.raise_for_status()
                        data = await response.json(content_type=None)
                        break
                except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
                    logger.warning(f"Request failed, attempt {attempt + 1}/{self.retries}: {e}")
                    if attempt == self.retries - 1:
                        raise QuoteUnavailableError(f"Request to {endpoint} failed: {e}") from e
                    await asyncio.sleep(1)
            else:
                self.rate_limit.mark_exhausted("HTTP 429")
                raise RateLimitExceededError("HTTP 429")

        if is_rate_limit_response(data):
            self.rate_limit.mark_exhausted(str(data.get('msg') or 'rate limit reached'))
            raise RateLimitExceededError(str(data.get('msg') or 'rate limit reached'))

        if not isinstance(data, dict) or not data.get('status'):
            msg = data.get('msg') if isinstance(data, dict) else None
            raise QuoteUnavailableError(msg or 'API request failed')

        return data

    async def fetch_candles(self, pair: str, period: str, limit: int) -> List[Dict[str, Any]]:
        """Fetch candle history rows for a pair"""
        data = await self._make_request('forex/history', {
            'symbol': pair,
            'period': period,
            'limit': str(limit)
        })

        response = data.get('response') or []
        # History responses may arrive index-keyed instead of as a list
        rows = list(response.values()) if isinstance(response, dict) else list(response)

        logger.debug(f"Fetched {len(rows)} rows for {pair} {period}")
        return rows


class StaticQuoteGateway(QuoteGateway):
    """Offline gateway serving preloaded rows keyed by pair and period"""

    def __init__(self, rows: Dict[str, List[Dict[str, Any]]], failures: Optional[Dict[str, Exception]] = None):
        self.rows = rows  # "{pair}_{period}" -> rows
        self.failures = failures or {}
        self.requests: List[tuple] = []

    @staticmethod
    def key(pair: str, period: str) -> str:
        return f"{pair}_{period}"

    async def fetch_candles(self, pair: str, period: str, limit: int) -> List[Dict[str, Any]]:
        key = self.key(pair, period)
        self.requests.append((pair, period, limit))

        if key in self.failures:
            raise self.failures[key]

        if key not in self.rows:
            raise QuoteUnavailableError(f"No data for {key}")

        # Provider order is newest first
        rows = sorted(self.rows[key], key=_row_time, reverse=True)
        return rows[:limit]


def _row_time(row: Dict[str, Any]) -> float:
    try:
        return float(row.get('tm', row.get('timestamp')))
    except (TypeError, ValueError):
        return float('-inf')
