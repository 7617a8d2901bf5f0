"""Configuration management for the chunkvault CLI."""

import json
import os
import shutil
from pathlib import Path
from typing import Optional

from common.constants import (
    CHUNK_SIZE_BYTES,
    DEFAULT_BLOBS_LOCATION,
    DEFAULT_DIGEST_ALGORITHM,
    DEFAULT_POOL_CAPACITY,
)
from common.logging_config import get_logger
from engine.content_addresser import SUPPORTED_ALGORITHMS
from engine.manifest import MANIFEST_FORMATS
from engine.restorer import MismatchPolicy, parse_policy

logger = get_logger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / '.chunkvault' / 'config.json'

STORE_TYPES = ("local", "http")


class ConfigError(ValueError):
    """Raised when a configuration value is unusable."""

    pass


class Config:
    """Manages CLI configuration stored in JSON file."""

    DEFAULT_CONFIG = {
        "store_type": os.environ.get("CHUNKVAULT_STORE_TYPE", "local"),
        "store_path": os.environ.get("CHUNKVAULT_STORE_PATH", str(Path.home() / '.chunkvault' / 'blobs')),
        "store_url": os.environ.get("CHUNKVAULT_STORE_URL", "http://localhost:8080/blobs"),
        "chunk_size": os.environ.get("CHUNKVAULT_CHUNK_SIZE", CHUNK_SIZE_BYTES),
        "pool_capacity": os.environ.get("CHUNKVAULT_POOL_CAPACITY", DEFAULT_POOL_CAPACITY),
        "digest_algorithm": DEFAULT_DIGEST_ALGORITHM,
        "mismatch_policy": MismatchPolicy.VERIFY_ONLY.value,
        "manifest_format": "json",
        "blobs_location": DEFAULT_BLOBS_LOCATION,
        "zero_fill": False,
        "timeout": 30,
        "max_retries": 0,
        "retry_backoff_multiplier": 2,
    }

    def __init__(self, config_path: Path = DEFAULT_CONFIG_PATH):
        """
        Initialize configuration manager.

        Args:
            config_path: Path to config JSON file (typically ~/.chunkvault/config.json)
        """
        self.config_path = Path(config_path)
        self.data = self._load()

    def _load(self) -> dict:
        """
        Load configuration from file, creating defaults if necessary.

        Returns:
            Configuration dictionary
        """
        config = self.DEFAULT_CONFIG.copy()
        token = os.environ.get("CHUNKVAULT_API_TOKEN")
        if token:
            config["api_token"] = token

        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning(f"Cannot create config directory {self.config_path.parent}: {e}")
            return config

        if self.config_path.exists():
            try:
                with open(self.config_path, 'r') as f:
                    data = json.load(f)
                if not isinstance(data, dict):
                    raise ValueError("config root must be an object")
                config.update(data)
                return config
            except (ValueError, OSError) as e:
                backup_path = self.config_path.with_suffix('.json.bak')
                logger.warning(f"Config file {self.config_path} is unreadable ({e}), using defaults")
                try:
                    shutil.copy(self.config_path, backup_path)
                except OSError as copy_error:
                    logger.warning(f"Could not back up config to {backup_path}: {copy_error}")
                return config

        try:
            with open(self.config_path, 'w') as f:
                json.dump(self.DEFAULT_CONFIG, f, indent=2)
        except OSError as e:
            logger.warning(f"Could not write default config to {self.config_path}: {e}")
        return config

    def _positive_int(self, key: str) -> int:
        value = self.data.get(key, self.DEFAULT_CONFIG[key])
        # environment overrides arrive as strings
        if isinstance(value, str):
            try:
                value = int(value)
            except ValueError:
                raise ConfigError(f"{key} must be a positive integer, got {value!r}") from None
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise ConfigError(f"{key} must be a positive integer, got {value!r}")
        return value

    def get_store_type(self) -> str:
        store_type = self.data.get('store_type', 'local')
        if store_type not in STORE_TYPES:
            raise ConfigError(f"store_type must be one of {', '.join(STORE_TYPES)}, got {store_type!r}")
        return store_type

    def get_store_path(self) -> Path:
        return Path(self.data.get('store_path', self.DEFAULT_CONFIG['store_path'])).expanduser()

    def get_store_url(self) -> str:
        return self.data.get('store_url', self.DEFAULT_CONFIG['store_url'])

    def get_api_token(self) -> Optional[str]:
        """
        Get stored API token.

        Returns:
            Token string or None if not set
        """
        return self.data.get('api_token')

    def get_chunk_size(self) -> int:
        return self._positive_int('chunk_size')

    def get_pool_capacity(self) -> int:
        return self._positive_int('pool_capacity')

    def get_digest_algorithm(self) -> str:
        algorithm = self.data.get('digest_algorithm', DEFAULT_DIGEST_ALGORITHM)
        if algorithm not in SUPPORTED_ALGORITHMS:
            raise ConfigError(f"Unsupported digest_algorithm {algorithm!r}")
        return algorithm

    def get_mismatch_policy(self) -> MismatchPolicy:
        try:
            return parse_policy(self.data.get('mismatch_policy'))
        except ValueError as e:
            raise ConfigError(str(e)) from None

    def get_manifest_format(self) -> str:
        fmt = self.data.get('manifest_format', 'json')
        if fmt not in MANIFEST_FORMATS:
            raise ConfigError(f"manifest_format must be one of {', '.join(MANIFEST_FORMATS)}, got {fmt!r}")
        return fmt

    def get_blobs_location(self) -> str:
        return self.data.get('blobs_location', DEFAULT_BLOBS_LOCATION)

    def get_zero_fill(self) -> bool:
        value = self.data.get('zero_fill', False)
        if not isinstance(value, bool):
            raise ConfigError(f"zero_fill must be true or false, got {value!r}")
        return value

    def get_timeout(self) -> int:
        """
        Get request timeout in seconds.

        Returns:
            Timeout value in seconds
        """
        return self.data.get('timeout', 30)

    def get_retry_config(self) -> dict:
        """
        Get retry configuration.

        Returns:
            Dictionary with 'max_retries' and 'retry_backoff_multiplier'
        """
        return {
            'max_retries': self.data.get('max_retries', 0),
            'retry_backoff_multiplier': self.data.get('retry_backoff_multiplier', 2),
        }
