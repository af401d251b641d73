"""Settings for the resilient HTTP client that talks to the catalog API.

The values live with the caller (see ``config.catalog``); this module only
describes their shape.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping
    from pathlib import Path


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    """How often a GET is repeated and which response statuses trigger it."""

    total: int
    backoff_factor: float
    retry_statuses: frozenset[int]
    max_backoff_wait: float = 60.0


@dataclass(slots=True, frozen=True)
class RateLimit:
    max_calls: int
    per_seconds: float


@dataclass(slots=True, frozen=True)
class CacheConfig:
    """Response cache; without ``sqlite_path`` it only lives as long as the process."""

    sqlite_path: Path | None = None
    ttl_seconds: float | None = None


@dataclass(slots=True, frozen=True)
class ResilienceConfig:
    name: str
    base_url: str
    retry: RetryPolicy
    timeout_seconds: float = 30.0
    ratelimit: RateLimit | None = None
    cache: CacheConfig | None = None
    headers: Mapping[str, str] = field(default_factory=dict[str, str])
