"""
Quota exhaustion tracking shared between gateways
"""
import logging
from datetime import datetime
from typing import Any, Optional

logger = logging.getLogger(__name__)

# FCS error code for an exhausted plan
FCS_LIMIT_CODE = 213


class RateLimitTracker:
    """Records that the upstream quota is exhausted until explicitly reset"""

    def __init__(self):
        self._exhausted = False
        self.reason: Optional[str] = None
        self.exhausted_at: Optional[datetime] = None

    def is_exhausted(self) -> bool:
        return self._exhausted

    def mark_exhausted(self, reason: str = "rate limit reached"):
        """Flag the quota as exhausted; only the first call is logged"""
        if not self._exhausted:
            self._exhausted = True
            self.reason = reason
            self.exhausted_at = datetime.now()
            logger.warning(f"Quote provider rate limit reached: {reason}")

    def reset(self):
        self._exhausted = False
        self.reason = None
        self.exhausted_at = None
        logger.info("Rate limit status has been reset")


def is_rate_limit_response(data: Any) -> bool:
    """Detect a quota error payload from the quote provider"""
    if not isinstance(data, dict) or data.get('status'):
        return False
    msg = data.get('msg') or ''
    return data.get('code') == FCS_LIMIT_CODE or 'limit' in str(msg).lower()
