"""Public interface for the catalog API adapter."""

from __future__ import annotations

from .client import CatalogAPIError, CatalogClient
from .schema import ImagePayload, RepositoryPayload, VulnerabilityPayload
from .source import HttpCatalogSource, build_http_catalog_source
from .translator import parse_cve_names, parse_images, parse_repositories

__all__ = [
    "CatalogAPIError",
    "CatalogClient",
    "HttpCatalogSource",
    "ImagePayload",
    "RepositoryPayload",
    "VulnerabilityPayload",
    "build_http_catalog_source",
    "parse_cve_names",
    "parse_images",
    "parse_repositories",
]
