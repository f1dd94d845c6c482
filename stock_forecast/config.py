"""Configuration management for the stock forecast engine."""

import os
import yaml
from pathlib import Path
from typing import Any, Optional
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

CONFIG_ENV_VAR = "STOCK_FORECAST_CONFIG"


class Config:
    """Centralized configuration manager."""

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize configuration from YAML file.

        Args:
            config_path: Path to the YAML file. Relative paths resolve against
                the project root. Defaults to $STOCK_FORECAST_CONFIG or
                config/config.yaml.
        """
        config_path = config_path or os.getenv(CONFIG_ENV_VAR, "config/config.yaml")
        config_file = Path(config_path)
        if not config_file.is_absolute():
            config_file = Path(__file__).parent.parent / config_path

        if not config_file.exists():
            raise FileNotFoundError(f"Config file not found: {config_file}")

        with open(config_file, 'r') as f:
            self.config = yaml.safe_load(f) or {}

        # Replace environment variable placeholders
        self._substitute_env_vars(self.config)

    def _substitute_env_vars(self, obj: Any) -> None:
        """Recursively substitute environment variables in config."""
        if isinstance(obj, dict):
            for key, value in obj.items():
                if isinstance(value, str) and value.startswith("${") and value.endswith("}"):
                    env_var = value[2:-1]
                    obj[key] = os.getenv(env_var, value)
                else:
                    self._substitute_env_vars(value)
        elif isinstance(obj, list):
            for item in obj:
                self._substitute_env_vars(item)

    def get(self, path: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation.

        Example: config.get('data_sources.market_data.provider')
        """
        keys = path.split('.')
        value = self.config

        for key in keys:
            if isinstance(value, dict):
                value = value.get(key)
                if value is None:
                    return default
            else:
                return default

        return value

    @property
    def market_data_provider(self) -> str:
        """Get market data provider name."""
        return self.get('data_sources.market_data.provider', 'mock')

    @property
    def db_path(self) -> str:
        """Get database path."""
        return self.get('database.path', 'data/stock_forecast.db')

    @property
    def history_limit(self) -> int:
        """Maximum number of historical closes fed to the engine."""
        return int(self.get('forecast.history_limit', 365))

    @property
    def default_days(self) -> int:
        """Forecast horizon used when a request does not give one."""
        return int(self.get('forecast.default_days', 30))

    @property
    def lstm_seed(self) -> Optional[int]:
        """Fixed seed for recurrent weight initialization, or None for fresh entropy."""
        seed = self.get('models.lstm.seed')
        return int(seed) if seed is not None else None

    @property
    def persist_predictions(self) -> bool:
        """Whether forecasts are written to the prediction store."""
        return bool(self.get('database.persist_predictions', True))


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create global config instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config
