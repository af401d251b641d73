"""Catalog API configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_int, optional_env_var
from .errors import ConfigurationError
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy
from .storage import get_storage_config

DEFAULT_CATALOG_BASE_URL = "https://catalog.redhat.com/api/containers/v1"
DEFAULT_CATALOG_PAGE_SIZE = 500
CATALOG_TIMEOUT_SECONDS = 60.0

# The catalog answers throttling with 429 and maintenance windows with 5xx.
CATALOG_RETRY = RetryPolicy(
    total=5,
    backoff_factor=0.5,
    retry_statuses=frozenset({429, 500, 502, 503, 504}),
)
CATALOG_RATELIMIT = RateLimit(max_calls=10, per_seconds=1.0)
CATALOG_HEADERS = {"Accept": "application/json"}


@dataclass(frozen=True, slots=True)
class CatalogConfig:
    """Holds catalog API configuration values."""

    resilience: ResilienceConfig
    page_size: int = DEFAULT_CATALOG_PAGE_SIZE


def catalog_resilience(
    base_url: str,
    *,
    ratelimit: RateLimit | None = CATALOG_RATELIMIT,
    cache: CacheConfig | None = None,
) -> ResilienceConfig:
    return ResilienceConfig(
        name="catalog",
        base_url=base_url.rstrip("/") + "/",
        retry=CATALOG_RETRY,
        timeout_seconds=CATALOG_TIMEOUT_SECONDS,
        ratelimit=ratelimit,
        cache=cache,
        headers=CATALOG_HEADERS,
    )


def _cache_config(mode: str | None) -> CacheConfig | None:
    match (mode or "off").lower():
        case "off":
            return None
        case "memory":
            return CacheConfig()
        case "sqlite":
            return CacheConfig(sqlite_path=get_storage_config().http_cache_path())
        case _:
            raise ConfigurationError(
                f"CATALOG_HTTP_CACHE must be one of off, memory, sqlite; got {mode!r}"
            )


def get_catalog_config() -> CatalogConfig:
    base_url = optional_env_var("CATALOG_BASE_URL") or DEFAULT_CATALOG_BASE_URL
    return CatalogConfig(
        resilience=catalog_resilience(
            base_url, cache=_cache_config(optional_env_var("CATALOG_HTTP_CACHE"))
        ),
        page_size=env_int("CATALOG_PAGE_SIZE", DEFAULT_CATALOG_PAGE_SIZE),
    )
