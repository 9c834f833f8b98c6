"""
Core modules for the SMC setup scanner
"""

from .rate_limit import RateLimitTracker
from .quote_gateway import (
    QuoteGateway, FCSQuoteGateway, StaticQuoteGateway,
    QuoteUnavailableError, RateLimitExceededError
)
from .orchestrator import RequestPacer, SMCAnalyzer

__all__ = [
    'RateLimitTracker',
    'QuoteGateway', 'FCSQuoteGateway', 'StaticQuoteGateway',
    'QuoteUnavailableError', 'RateLimitExceededError',
    'RequestPacer', 'SMCAnalyzer'
]
