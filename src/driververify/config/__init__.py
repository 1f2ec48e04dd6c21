"""Application configuration helpers."""

from __future__ import annotations

from .api import PrimaryApiConfig, get_primary_api_config
from .blob_storage import BlobStorageConfig, get_blob_storage_config
from .discovery import DiscoveryConfig, get_discovery_config
from .env import optional_env_var, require_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "BlobStorageConfig",
    "CacheConfig",
    "ConfigurationError",
    "DatabaseConfig",
    "DiscoveryConfig",
    "MissingConfigurationError",
    "PrimaryApiConfig",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "configure_logging",
    "get_blob_storage_config",
    "get_database_config",
    "get_discovery_config",
    "get_primary_api_config",
    "get_storage_config",
    "optional_env_var",
    "require_env_var",
    "require_env_vars",
]
