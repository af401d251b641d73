"""Ports for reading the external software catalog."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(frozen=True, slots=True)
class CatalogRepository:
    """Repository as listed by the catalog."""

    external_id: str
    registry: str
    name: str
    modified_at: datetime

    @property
    def display_name(self) -> str:
        return f"{self.registry}/{self.name}"


@dataclass(frozen=True, slots=True)
class CatalogImage:
    """Image as listed by the catalog for one repository."""

    external_id: str
    digest: str
    modified_at: datetime


@runtime_checkable
class CatalogSource(Protocol):
    """Read-only view of the external catalog.

    Every call may raise; the caller decides whether the failure is fatal to
    the run or scoped to a single repository.
    """

    def list_repositories(self) -> list[CatalogRepository]: ...

    def list_images(self, registry: str, repository: str) -> list[CatalogImage]: ...

    def list_cve_names(self, image_external_id: str) -> frozenset[str]: ...


__all__ = ["CatalogImage", "CatalogRepository", "CatalogSource"]
