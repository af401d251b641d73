"""HTTP client for the software catalog API."""

from __future__ import annotations

import asyncio
from logging import getLogger
from typing import TYPE_CHECKING
from urllib.parse import quote

from pydantic import ValidationError

from catalogsync.adapters.http_resilience import ResilientClient

from .schema import (
    ErrorResponse,
    ImagePage,
    ImagePayload,
    PagePayload,
    RepositoryPage,
    RepositoryPayload,
    VulnerabilityPage,
    VulnerabilityPayload,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from catalogsync.config.catalog import CatalogConfig
    from catalogsync.config.http_resilience import ResilienceConfig

log = getLogger(__name__)

REPOSITORY_FIELDS = ("_id", "registry", "repository", "last_update_date")
IMAGE_FIELDS = ("_id", "image_id", "last_update_date")
VULNERABILITY_FIELDS = ("cve_id",)


class CatalogAPIError(RuntimeError):
    """Raised when the catalog API returns an unexpected response."""


def _include_param(fields: tuple[str, ...]) -> str:
    return ",".join([*(f"data.{name}" for name in fields), "total", "page", "page_size"])


def images_path(registry: str, repository: str) -> str:
    # Repository names contain slashes (``ubi8/ubi``) which the API expects verbatim.
    return (
        f"repositories/registry/{quote(registry, safe='')}"
        f"/repository/{quote(repository, safe='/')}/images"
    )


def vulnerabilities_path(image_id: str) -> str:
    return f"images/id/{quote(image_id, safe='')}/vulnerabilities"


class CatalogClient:
    """Low-level paginated client for the catalog API.

    Pages are requested until the reported ``total`` has been collected or an
    empty page comes back.
    """

    def __init__(
        self,
        *,
        config: CatalogConfig,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self._config = config
        self._resilience = config.resilience
        self._client_factory = client_factory or ResilientClient

    def fetch_repositories(self) -> list[RepositoryPayload]:
        return asyncio.run(self._fetch_all("repositories", RepositoryPage, REPOSITORY_FIELDS))

    def fetch_images(self, *, registry: str, repository: str) -> list[ImagePayload]:
        path = images_path(registry, repository)
        return asyncio.run(self._fetch_all(path, ImagePage, IMAGE_FIELDS))

    def fetch_vulnerabilities(self, *, image_id: str) -> list[VulnerabilityPayload]:
        path = vulnerabilities_path(image_id)
        return asyncio.run(self._fetch_all(path, VulnerabilityPage, VULNERABILITY_FIELDS))

    async def _fetch_all[TItem](
        self,
        path: str,
        page_model: type[PagePayload[TItem]],
        fields: tuple[str, ...],
    ) -> list[TItem]:
        items: list[TItem] = []
        page_number = 0

        async with self._client_factory(self._resilience) as client:
            while True:
                params = {
                    "page": str(page_number),
                    "page_size": str(self._config.page_size),
                    "include": _include_param(fields),
                }
                page = await self._perform_request(
                    client=client,
                    path=path,
                    params=params,
                    page_model=page_model,
                )
                items.extend(page.data)
                log.debug(
                    "Fetched %s page %d: %d items (total=%d)",
                    path,
                    page_number,
                    len(page.data),
                    page.total,
                )
                if not page.data or len(items) >= page.total:
                    break
                page_number += 1

        return items

    async def _perform_request[TItem](
        self,
        *,
        client: ResilientClient,
        path: str,
        params: dict[str, str],
        page_model: type[PagePayload[TItem]],
    ) -> PagePayload[TItem]:
        response = await client.get(path, params=params)
        if response.is_error:
            log.error(
                "Catalog API error %s on %s: %s",
                response.status_code,
                path,
                _error_detail(response.content),
            )
        response.raise_for_status()

        payload = response.json()
        if not isinstance(payload, dict):
            raise CatalogAPIError(f"Unexpected catalog response payload for {path}")

        try:
            return page_model.model_validate(payload)
        except ValidationError as exc:
            raise CatalogAPIError(f"Invalid catalog response payload for {path}") from exc


def _error_detail(content: bytes) -> str:
    try:
        error = ErrorResponse.model_validate_json(content)
    except ValidationError:
        return content[:200].decode("utf-8", errors="replace")
    return error.detail or error.title or "no detail"
