"""Async HTTP client for the catalog API: retries, throttling and an optional cache."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx
from aiolimiter import AsyncLimiter
from hishel import AsyncSqliteStorage
from hishel.httpx import AsyncCacheClient
from httpx_retries import Retry, RetryTransport

if TYPE_CHECKING:
    from types import TracebackType

    from httpx._types import QueryParamTypes

    from catalogsync.config.http_resilience import CacheConfig, ResilienceConfig, RetryPolicy

log = logging.getLogger(__name__)


def build_retry(policy: RetryPolicy) -> Retry:
    return Retry(
        total=policy.total,
        backoff_factor=policy.backoff_factor,
        max_backoff_wait=policy.max_backoff_wait,
        status_forcelist=sorted(policy.retry_statuses),
    )


def build_cache_storage(config: CacheConfig) -> AsyncSqliteStorage:
    database_path = config.sqlite_path if config.sqlite_path is not None else ":memory:"
    return AsyncSqliteStorage(database_path=database_path, default_ttl=config.ttl_seconds)


class ResilientClient:
    """GET-only client that retries, rate limits and caches according to ``config``.

    ``transport`` replaces the network transport underneath the retry layer.
    """

    def __init__(
        self,
        config: ResilienceConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self._limiter = (
            AsyncLimiter(config.ratelimit.max_calls, config.ratelimit.per_seconds)
            if config.ratelimit is not None
            else None
        )
        retry_transport = RetryTransport(transport=transport, retry=build_retry(config.retry))
        if config.cache is None:
            self._client = httpx.AsyncClient(
                base_url=config.base_url,
                timeout=config.timeout_seconds,
                headers=dict(config.headers),
                transport=retry_transport,
            )
        else:
            location = config.cache.sqlite_path or "memory"
            log.debug("Caching %s responses in %s", config.name, location)
            self._client = AsyncCacheClient(
                base_url=config.base_url,
                timeout=config.timeout_seconds,
                headers=dict(config.headers),
                transport=retry_transport,
                storage=build_cache_storage(config.cache),
            )

    @property
    def caching(self) -> bool:
        return isinstance(self._client, AsyncCacheClient)

    async def __aenter__(self) -> ResilientClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get(self, url: str, *, params: QueryParamTypes | None = None) -> httpx.Response:
        if self._limiter is None:
            return await self._client.get(url, params=params)
        async with self._limiter:
            return await self._client.get(url, params=params)
