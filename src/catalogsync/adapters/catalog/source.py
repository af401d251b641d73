"""Catalog source backed by the HTTP catalog API."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from catalogsync.config.catalog import get_catalog_config

from .client import CatalogClient
from .translator import parse_cve_names, parse_images, parse_repositories

if TYPE_CHECKING:
    from catalogsync.config.catalog import CatalogConfig
    from catalogsync.domain.ports.fetching import CatalogImage, CatalogRepository, CatalogSource

log = getLogger(__name__)


@dataclass(slots=True)
class HttpCatalogSource:
    client: CatalogClient

    def list_repositories(self) -> list[CatalogRepository]:
        repositories = parse_repositories(self.client.fetch_repositories())
        log.debug("Catalog repositories listed: %d", len(repositories))
        return repositories

    def list_images(self, registry: str, repository: str) -> list[CatalogImage]:
        images = parse_images(self.client.fetch_images(registry=registry, repository=repository))
        log.debug("Catalog images listed for %s/%s: %d", registry, repository, len(images))
        return images

    def list_cve_names(self, image_external_id: str) -> frozenset[str]:
        return parse_cve_names(self.client.fetch_vulnerabilities(image_id=image_external_id))


def build_http_catalog_source(config: CatalogConfig | None = None) -> HttpCatalogSource:
    return HttpCatalogSource(client=CatalogClient(config=config or get_catalog_config()))


if TYPE_CHECKING:
    _source_check: CatalogSource = build_http_catalog_source()
