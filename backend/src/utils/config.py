"""
Theme Park Wait Time Reconciler - Configuration Management
Settings come from AWS SSM Parameter Store in production and from the
environment (plus a local .env loaded by python-dotenv) everywhere else.
"""

import logging
import os
from typing import Callable, Optional, TypeVar
from dotenv import load_dotenv

T = TypeVar('T')

# Load .env file for local development
load_dotenv()

TRUE_STRINGS = ('true', '1', 'yes', 'on')


class ConfigurationError(Exception):
    """Raised when a required setting cannot be loaded."""
    pass


class Config:
    """
    Key/value settings with typed getters.

    ENVIRONMENT=production reads "{AWS_SSM_PREFIX}/{key}" from SSM
    (decrypted); any other environment reads process environment variables,
    treating blank values as unset.
    """

    def __init__(self):
        self.environment = os.getenv('ENVIRONMENT', 'local')
        self._ssm_client = None

    @property
    def is_production(self) -> bool:
        return self.environment == 'production'

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """
        Fetch a raw setting.

        Args:
            key: Setting name
            default: Returned when the setting is unset

        Returns:
            Setting value or default

        Raises:
            ConfigurationError: In production, when SSM lookup fails and no
                                default was given
        """
        if self.is_production:
            return self._get_from_ssm(key, default)

        value = os.getenv(key)
        if value is None or not value.strip():
            return default
        return value.strip()

    def _ssm(self):
        if self._ssm_client is None:
            import boto3
            self._ssm_client = boto3.client('ssm', region_name=os.getenv('AWS_REGION', 'us-east-1'))
        return self._ssm_client

    def _get_from_ssm(self, key: str, default: Optional[str]) -> Optional[str]:
        parameter_name = f"{os.getenv('AWS_SSM_PREFIX', '/waittimes')}/{key}"

        try:
            response = self._ssm().get_parameter(Name=parameter_name, WithDecryption=True)
            return response['Parameter']['Value']
        except Exception as e:
            if default is None:
                raise ConfigurationError(
                    f"Failed to fetch parameter '{key}' from SSM at path '{parameter_name}': "
                    f"{type(e).__name__}: {e}"
                ) from e
            logging.warning(f"SSM parameter '{parameter_name}' unavailable ({type(e).__name__}: {e}); using default")
            return default

    def _convert(self, key: str, default: T, cast: Callable[[str], T]) -> T:
        value = self.get(key, str(default))
        try:
            return cast(value)
        except (ValueError, TypeError) as e:
            logging.warning(
                f"Invalid {cast.__name__} for config key '{key}': '{value}'. "
                f"Using default={default}. Error: {e}"
            )
            return default

    def get_int(
        self,
        key: str,
        default: int,
        min_value: Optional[int] = None,
        max_value: Optional[int] = None
    ) -> int:
        """
        Get a setting as an integer clamped to [min_value, max_value].

        Unparseable values fall back to default (with a warning); parsed
        values outside the bounds are clamped, not rejected.
        """
        parsed = self._convert(key, default, int)
        if min_value is not None:
            parsed = max(parsed, min_value)
        if max_value is not None:
            parsed = min(parsed, max_value)
        return parsed

    def get_bool(self, key: str, default: bool) -> bool:
        """True for true/1/yes/on (any case), False for anything else set."""
        value = self.get(key)
        if value is None:
            return default
        return value.lower() in TRUE_STRINGS


# Global configuration instance
config = Config()


# Database configuration (DATABASE_URL, when set, overrides the DB_* settings)
DATABASE_URL = config.get('DATABASE_URL', '')
DB_HOST = config.get('DB_HOST', 'localhost')
DB_PORT = config.get_int('DB_PORT', 3306)
DB_NAME = config.get('DB_NAME', 'waittimes_dev')
DB_USER = config.get('DB_USER', 'root')
DB_PASSWORD = config.get('DB_PASSWORD', '')

# Provider API configuration
QUEUE_TIMES_API_BASE_URL = config.get('QUEUE_TIMES_API_BASE_URL', 'https://queue-times.com')
THEMEPARKS_WIKI_API_BASE_URL = config.get('THEMEPARKS_WIKI_API_BASE_URL', 'https://api.themeparks.wiki/v1')
THEMEPARKS_WIKI_CACHE_SECONDS = config.get_int('THEMEPARKS_WIKI_CACHE_SECONDS', 300, 0, 3600)
OPEN_METEO_API_BASE_URL = config.get('OPEN_METEO_API_BASE_URL', 'https://api.open-meteo.com/v1')

# Logging configuration
LOG_LEVEL = config.get('LOG_LEVEL', 'INFO')

# Data collection settings
COLLECTION_INTERVAL_MINUTES = config.get_int('COLLECTION_INTERVAL_MINUTES', 5, 1, 60)
MAX_RETRY_ATTEMPTS = config.get_int('MAX_RETRY_ATTEMPTS', 3, 1, 10)
RETRY_BACKOFF_MULTIPLIER = config.get_int('RETRY_BACKOFF_MULTIPLIER', 2, 1, 30)
COLLECT_WEATHER = config.get_bool('COLLECT_WEATHER', True)

# Hot table retention
RETENTION_HOURS = config.get_int('RETENTION_HOURS', 48, 1, 24 * 30)
PRUNE_BATCH_SIZE = config.get_int('PRUNE_BATCH_SIZE', 5000, 100, 10000)
PRUNE_MAX_BATCHES = config.get_int('PRUNE_MAX_BATCHES', 250, 1, 2000)

# Collection health monitoring
MONITOR_LOOKBACK_MINUTES = config.get_int('MONITOR_LOOKBACK_MINUTES', 30, 5, 240)
MAX_FRESHNESS_MINUTES = config.get_int('MAX_FRESHNESS_MINUTES', 15, 5, 240)
REPORT_DIR = config.get('REPORT_DIR', '.')

# Database connection pool settings (MySQL only)
DB_POOL_SIZE = config.get_int('DB_POOL_SIZE', 10, 1, 100)
DB_POOL_MAX_OVERFLOW = config.get_int('DB_POOL_MAX_OVERFLOW', 20, 0, 100)
DB_POOL_RECYCLE = 3600  # seconds
DB_POOL_PRE_PING = config.get_bool('DB_POOL_PRE_PING', True)
