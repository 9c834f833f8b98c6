"""
Configuration loader for YAML files
"""
import os
import yaml
import logging
from pathlib import Path

from .models import AppConfig, StrategyConfig, primary_strategy, fallback_strategy

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config/settings.yaml"


class ConfigLoader:
    """Loads and saves configuration from YAML files"""

    def __init__(self, config_path: str = DEFAULT_CONFIG_PATH):
        self.config_path = Path(config_path)

    def load(self) -> AppConfig:
        """Load configuration from YAML file"""
        if not self.config_path.exists():
            logger.info(f"Config file not found at {self.config_path}, creating default")
            return self._create_default_config()

        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)

            if not data:
                logger.warning("Empty config file, using defaults")
                return self._apply_env(AppConfig())

            defaults = AppConfig()
            config = AppConfig(
                pairs=data.get('pairs', defaults.pairs),
                primary=self._parse_strategy(data.get('primary'), primary_strategy()),
                fallback=self._parse_strategy(data.get('fallback'), fallback_strategy()),
                api_key=data.get('api_key'),
                base_url=data.get('base_url', defaults.base_url),
                requests_per_minute=data.get('requests_per_minute', defaults.requests_per_minute),
                request_delay=data.get('request_delay', defaults.request_delay),
                pair_delay=data.get('pair_delay', defaults.pair_delay),
                htf_limit=data.get('htf_limit', defaults.htf_limit),
                atf_limit=data.get('atf_limit', defaults.atf_limit),
                etf_limit=data.get('etf_limit', defaults.etf_limit),
                max_setups=data.get('max_setups', defaults.max_setups),
                log_level=data.get('log_level', defaults.log_level)
            )

            # Validate configuration
            errors = config.validate()
            if errors:
                logger.error(f"Configuration validation errors: {errors}")
                raise ValueError(f"Configuration validation failed: {errors}")

            logger.info(f"Loaded configuration with {len(config.pairs)} pairs")
            return self._apply_env(config)

        except Exception as e:
            logger.error(f"Failed to load config from {self.config_path}: {e}")
            logger.info("Using default configuration")
            return self._apply_env(AppConfig())

    def save(self, config: AppConfig) -> bool:
        """Save configuration to YAML file"""
        try:
            errors = config.validate()
            if errors:
                logger.error(f"Cannot save invalid configuration: {errors}")
                return False

            data = {
                'pairs': list(config.pairs),
                'primary': config.primary.to_dict(),
                'fallback': config.fallback.to_dict(),
                'api_key': config.api_key,
                'base_url': config.base_url,
                'requests_per_minute': config.requests_per_minute,
                'request_delay': config.request_delay,
                'pair_delay': config.pair_delay,
                'htf_limit': config.htf_limit,
                'atf_limit': config.atf_limit,
                'etf_limit': config.etf_limit,
                'max_setups': config.max_setups,
                'log_level': config.log_level
            }

            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_path, 'w', encoding='utf-8') as f:
                yaml.dump(data, f, default_flow_style=False, sort_keys=False, indent=2)

            logger.info(f"Configuration saved to {self.config_path}")
            return True

        except Exception as e:
            logger.error(f"Failed to save config to {self.config_path}: {e}")
            return False

    @staticmethod
    def _parse_strategy(data, default: StrategyConfig) -> StrategyConfig:
        if not data:
            return default
        return StrategyConfig(
            name=data.get('name', default.name),
            higher_timeframes=data.get('higher_timeframes', default.higher_timeframes),
            analysis_timeframes=data.get('analysis_timeframes', default.analysis_timeframes),
            execution_timeframes=data.get('execution_timeframes', default.execution_timeframes)
        )

    @staticmethod
    def _apply_env(config: AppConfig) -> AppConfig:
        """Let FCS_API_KEY override a missing key"""
        if not config.api_key:
            config.api_key = os.getenv('FCS_API_KEY')
        return config

    def _create_default_config(self) -> AppConfig:
        """Create and save default configuration"""
        config = AppConfig()
        self.save(config)
        return self._apply_env(config)


def load_config(config_path: str = DEFAULT_CONFIG_PATH) -> AppConfig:
    """Convenience function to load configuration"""
    loader = ConfigLoader(config_path)
    return loader.load()


def save_config(config: AppConfig, config_path: str = DEFAULT_CONFIG_PATH) -> bool:
    """Convenience function to save configuration"""
    loader = ConfigLoader(config_path)
    return loader.save(config)
