"""Application configuration helpers."""

from __future__ import annotations

from .catalog import CatalogConfig, catalog_resilience, get_catalog_config
from .env import env_bool, env_int, optional_env_var
from .errors import ConfigurationError, ProfilesFileError
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging, parse_log_level
from .profiles import load_profile
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config
from .sync import SyncConfig, get_sync_config

__all__ = [
    "CacheConfig",
    "CatalogConfig",
    "ConfigurationError",
    "DatabaseConfig",
    "ProfilesFileError",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "SyncConfig",
    "catalog_resilience",
    "configure_logging",
    "env_bool",
    "env_int",
    "get_catalog_config",
    "get_database_config",
    "get_storage_config",
    "get_sync_config",
    "load_profile",
    "optional_env_var",
    "parse_log_level",
]
