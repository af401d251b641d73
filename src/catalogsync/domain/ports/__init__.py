"""Domain port definitions for adapters."""

from __future__ import annotations

from .fetching import CatalogImage, CatalogRepository, CatalogSource
from .persistence import (
    CveRepository,
    ImageCveRepository,
    ImageRepository,
    RepositoryImageRepository,
    RepositoryRepository,
)
from .unit_of_work import (
    CatalogRepositories,
    CatalogUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "CatalogImage",
    "CatalogRepositories",
    "CatalogRepository",
    "CatalogSource",
    "CatalogUnitOfWork",
    "CveRepository",
    "ImageCveRepository",
    "ImageRepository",
    "RepositoryCollection",
    "RepositoryImageRepository",
    "RepositoryRepository",
    "UnitOfWork",
]
