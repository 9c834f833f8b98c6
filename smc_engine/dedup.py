"""
Setup deduplication utilities
"""
import logging
import math
from typing import List

from .models import SMCTradeSetup

logger = logging.getLogger(__name__)

# Five pips
SIMILARITY_THRESHOLD = 0.0005
SIMILARITY_THRESHOLD_JPY = 0.05


def setup_hash(setup: SMCTradeSetup) -> str:
    """Key identifying near-identical setups: pair, entry to 4 decimals, pattern, execution TF"""
    # Half-up on the scaled value, not round() on the binary float
    entry_rounded = math.floor(float(setup.entry) * 10000 + 0.5) / 10000
    return f"{setup.pair}_{entry_rounded:.4f}_{setup.pattern_type}_{setup.execution_timeframe}"


def deduplicate_setups(setups: List[SMCTradeSetup]) -> List[SMCTradeSetup]:
    """Keep the highest-scoring setup for each hash, ordered by score"""
    seen = set()
    unique: List[SMCTradeSetup] = []

    for setup in sorted(setups, key=lambda s: s.confluence_score, reverse=True):
        key = setup_hash(setup)
        if key not in seen:
            seen.add(key)
            unique.append(setup)

    logger.info(f"Deduplication: {len(setups)} -> {len(unique)} unique setups")
    return unique


def are_setups_similar(first: SMCTradeSetup, second: SMCTradeSetup) -> bool:
    """Same pair with entries within 5 pips of each other"""
    if first.pair != second.pair:
        return False

    threshold = SIMILARITY_THRESHOLD_JPY if 'JPY' in first.pair else SIMILARITY_THRESHOLD
    return abs(float(first.entry) - float(second.entry)) <= threshold
