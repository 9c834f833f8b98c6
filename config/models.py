"""
Configuration models for the SMC setup scanner
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

DEFAULT_PAIRS = [
    'EUR/USD', 'USD/JPY', 'GBP/USD', 'AUD/USD', 'EUR/GBP', 'EUR/CHF', 'GBP/JPY'
]

# Periods understood by the quote provider
VALID_TIMEFRAMES = {'1M', '3M', '5M', '10M', '15M', '30M', '1H', '2H', '4H', '1D'}


@dataclass
class StrategyConfig:
    """Timeframe bundle for one strategy tier"""
    name: str
    higher_timeframes: List[str]
    analysis_timeframes: List[str]
    execution_timeframes: List[str]

    def __post_init__(self):
        self.higher_timeframes = [tf.upper() for tf in self.higher_timeframes]
        self.analysis_timeframes = [tf.upper() for tf in self.analysis_timeframes]
        self.execution_timeframes = [tf.upper() for tf in self.execution_timeframes]

    @property
    def higher_label(self) -> str:
        return '/'.join(self.higher_timeframes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'higher_timeframes': list(self.higher_timeframes),
            'analysis_timeframes': list(self.analysis_timeframes),
            'execution_timeframes': list(self.execution_timeframes)
        }


def primary_strategy() -> StrategyConfig:
    return StrategyConfig(
        name='primary',
        higher_timeframes=['4H', '1H'],
        analysis_timeframes=['30M', '15M'],
        execution_timeframes=['5M']
    )


def fallback_strategy() -> StrategyConfig:
    return StrategyConfig(
        name='fallback',
        higher_timeframes=['30M', '15M'],
        analysis_timeframes=['10M', '5M'],
        execution_timeframes=['3M', '1M']
    )


@dataclass
class AppConfig:
    """Main application configuration"""
    pairs: List[str] = field(default_factory=lambda: list(DEFAULT_PAIRS))
    primary: StrategyConfig = field(default_factory=primary_strategy)
    fallback: StrategyConfig = field(default_factory=fallback_strategy)

    # Quote provider
    api_key: Optional[str] = None
    base_url: str = "https://fcsapi.com/api-v3"
    requests_per_minute: int = 60

    # Pacing (seconds)
    request_delay: float = 0.0
    pair_delay: float = 0.2

    # Candles requested per stage
    htf_limit: int = 30
    atf_limit: int = 20
    etf_limit: int = 20

    max_setups: int = 15
    log_level: str = "INFO"

    def __post_init__(self):
        self.pairs = [pair.upper() for pair in self.pairs]

    def validate(self) -> List[str]:
        """Validate configuration and return list of errors"""
        errors = []

        if not self.pairs:
            errors.append("No currency pairs configured")

        if len(self.pairs) != len(set(self.pairs)):
            errors.append("Duplicate pairs found in configuration")

        for pair in self.pairs:
            parts = pair.split('/')
            if len(parts) != 2 or not all(len(p) == 3 and p.isalpha() for p in parts):
                errors.append(f"Invalid pair: {pair}")

        for strategy in (self.primary, self.fallback):
            for tf in (strategy.higher_timeframes + strategy.analysis_timeframes
                       + strategy.execution_timeframes):
                if tf not in VALID_TIMEFRAMES:
                    errors.append(f"Invalid timeframe for {strategy.name}: {tf}")
            if not strategy.execution_timeframes:
                errors.append(f"No execution timeframes for {strategy.name}")

        if self.requests_per_minute <= 0:
            errors.append(f"requests_per_minute must be positive: {self.requests_per_minute}")

        if self.request_delay < 0 or self.pair_delay < 0:
            errors.append("Delays must not be negative")

        if min(self.htf_limit, self.atf_limit, self.etf_limit) < 5:
            errors.append("Candle limits must be at least 5")

        if self.max_setups < 1:
            errors.append(f"max_setups must be at least 1: {self.max_setups}")

        return errors
