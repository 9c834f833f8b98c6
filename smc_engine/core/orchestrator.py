"""
Multi-timeframe SMC analysis with primary/fallback strategy tiers
"""
import asyncio
import logging
import time
from typing import List, Optional

import pandas as pd

from config.models import AppConfig, StrategyConfig
from ..data_loader import normalize_rows
from ..dedup import deduplicate_setups
from ..models import NEUTRAL, PatternCandidate, SMCTradeSetup
from ..scoring import ScoringFactors, calculate_confluence, is_market_aligned, reward_to_risk
from ..smc_detector import (
    classify_structure, detect_fvg, detect_ob,
    is_entry_zone_retested, structure_candidates
)
from .quote_gateway import QuoteGateway, QuoteUnavailableError

logger = logging.getLogger(__name__)

# Minimum candles before a timeframe is analysed
MIN_STRUCTURE_CANDLES = 5
MIN_ANALYSIS_CANDLES = 5


class RequestPacer:
    """Spaces out upstream requests and pauses between pairs"""

    def __init__(self, request_delay: float = 0.0, pair_delay: float = 0.2):
        self.request_delay = request_delay
        self.pair_delay = pair_delay
        self._last_request: Optional[float] = None

    async def request(self):
        """Wait until the minimum gap since the previous request has passed"""
        if self.request_delay > 0 and self._last_request is not None:
            wait = self.request_delay - (time.monotonic() - self._last_request)
            if wait > 0:
                await asyncio.sleep(wait)
        self._last_request = time.monotonic()

    async def pair_done(self):
        if self.pair_delay > 0:
            await asyncio.sleep(self.pair_delay)


class SMCAnalyzer:
    """Runs the structure -> pattern -> confirmation pipeline per currency pair"""

    def __init__(self, gateway: QuoteGateway, config: Optional[AppConfig] = None,
                 pacer: Optional[RequestPacer] = None):
        self.gateway = gateway
        self.config = config or AppConfig()
        self.pacer = pacer or RequestPacer(self.config.request_delay, self.config.pair_delay)
        self._next_id = 1

    async def fetch(self, pair: str, timeframe: str, limit: int) -> Optional[pd.DataFrame]:
        """Fetch and normalize candles; None when the request failed"""
        await self.pacer.request()
        try:
            rows = await self.gateway.fetch_candles(pair, timeframe, limit)
        except QuoteUnavailableError as e:
            logger.error(f"Failed to fetch candles for {pair} {timeframe}: {e}")
            return None
        except Exception as e:
            logger.error(f"Unexpected error fetching {pair} {timeframe}: {e}")
            return None

        df = normalize_rows(rows)
        logger.debug(f"{pair} {timeframe}: {len(df)} valid candles")
        return df

    async def market_structure(self, pair: str, strategy: StrategyConfig) -> str:
        """First non-neutral structure across the higher timeframes wins"""
        for htf in strategy.higher_timeframes:
            df = await self.fetch(pair, htf, self.config.htf_limit)
            if df is None or len(df) < MIN_STRUCTURE_CANDLES:
                continue

            structure = classify_structure(df)
            logger.info(f"{pair} {htf} market structure: {structure}")

            if structure != NEUTRAL:
                return structure

        return NEUTRAL

    def detect_patterns(self, df: pd.DataFrame, pair: str, structure: str) -> List[PatternCandidate]:
        """Run all bias-filtered detectors on one analysis timeframe"""
        patterns = detect_fvg(df, pair, structure)
        patterns += detect_ob(df, pair, structure)
        patterns += structure_candidates(df, pair, structure)
        return patterns

    async def analyze_pair(self, pair: str, strategy: StrategyConfig) -> List[SMCTradeSetup]:
        """Analyze one pair with a single strategy tier"""
        logger.info(f"Analyzing {pair} using {strategy.name} strategy...")
        setups: List[SMCTradeSetup] = []

        structure = await self.market_structure(pair, strategy)
        if structure == NEUTRAL:
            logger.info(f"Neutral structure for {pair} ({strategy.name}), skipping")
            return setups

        for atf in strategy.analysis_timeframes:
            df = await self.fetch(pair, atf, self.config.atf_limit)
            if df is None or len(df) < MIN_ANALYSIS_CANDLES:
                logger.debug(f"Insufficient data for {pair} {atf}")
                continue

            patterns = self.detect_patterns(df, pair, structure)
            if not patterns:
                continue
            logger.info(f"{pair} {atf}: {len(patterns)} patterns under {structure} structure")

            # One fetch per execution timeframe, shared by every pattern
            etf_frames = {}
            for etf in strategy.execution_timeframes:
                etf_frames[etf] = await self.fetch(pair, etf, self.config.etf_limit)

            for pattern in patterns:
                for etf in strategy.execution_timeframes:
                    setups.append(self._build_setup(pair, strategy, structure, atf, etf, pattern,
                                                    etf_frames[etf]))

        return setups

    async def analyze_with_fallback(self, pair: str) -> List[SMCTradeSetup]:
        """Primary tier first; the fallback tier only when primary finds nothing"""
        setups = await self.analyze_pair(pair, self.config.primary)
        if setups:
            logger.info(f"Found {len(setups)} primary setups for {pair}")
            return setups

        logger.info(f"No primary setups for {pair}, trying fallback strategy...")
        setups = await self.analyze_pair(pair, self.config.fallback)
        if setups:
            logger.info(f"Found {len(setups)} fallback setups for {pair}")
        return setups

    async def run_analysis(self, pairs: Optional[List[str]] = None) -> List[SMCTradeSetup]:
        """
        Analyze every pair sequentially and rank the deduplicated setups

        Args:
            pairs: Pairs to analyze, defaults to the configured list

        Returns:
            Top setups by confluence score; empty when nothing was found
        """
        pairs = list(pairs) if pairs is not None else list(self.config.pairs)
        self._next_id = 1
        all_setups: List[SMCTradeSetup] = []

        logger.info(f"Starting multi-timeframe SMC analysis for {len(pairs)} pairs")

        for index, pair in enumerate(pairs):
            try:
                all_setups.extend(await self.analyze_with_fallback(pair))
            except Exception as e:
                logger.error(f"Error analyzing {pair}: {e}")

            if index < len(pairs) - 1:
                await self.pacer.pair_done()

        unique = deduplicate_setups(all_setups)
        unique.sort(key=lambda s: s.confluence_score, reverse=True)

        logger.info(f"Total SMC setups found: {len(unique)}")
        return unique[:self.config.max_setups]

    def _build_setup(self, pair: str, strategy: StrategyConfig, structure: str, atf: str, etf: str,
                     pattern: PatternCandidate, etf_df: Optional[pd.DataFrame]) -> SMCTradeSetup:
        if etf_df is None or etf_df.empty:
            status = 'watching'
        elif is_entry_zone_retested(etf_df, pattern.entry, pattern.stop_loss):
            status = 'confirmed'
        else:
            status = 'pending'

        score = calculate_confluence(ScoringFactors(
            pattern_strength=pattern.strength,
            market_alignment=is_market_aligned(pattern.direction, structure),
            pattern_type=pattern.type,
            probability=pattern.probability,
            reward_to_risk=reward_to_risk(pattern.entry, pattern.stop_loss, pattern.take_profit),
            execution_confirmed=status == 'confirmed',
            swing_level=pattern.type in ('CHOCH', 'BOS')
        ))

        setup = SMCTradeSetup(
            id=self._next_id,
            pair=pair,
            strategy=strategy.name,
            direction=pattern.direction,
            pattern=f"{pattern.type} ({atf} → {etf})",
            higher_timeframe=strategy.higher_label,
            analysis_timeframe=atf,
            execution_timeframe=etf,
            entry=pattern.entry,
            stop_loss=pattern.stop_loss,
            take_profit=pattern.take_profit,
            probability=pattern.probability,
            confirmation_status=status,
            pattern_type=pattern.type,
            confluence_score=score
        )
        self._next_id += 1
        return setup
