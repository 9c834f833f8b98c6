"""
Configuration package for the SMC setup scanner
"""

from .models import (
    AppConfig, StrategyConfig, DEFAULT_PAIRS,
    primary_strategy, fallback_strategy
)
from .loader import ConfigLoader, load_config, save_config

__all__ = [
    'AppConfig', 'StrategyConfig', 'DEFAULT_PAIRS',
    'primary_strategy', 'fallback_strategy',
    'ConfigLoader', 'load_config', 'save_config'
]
