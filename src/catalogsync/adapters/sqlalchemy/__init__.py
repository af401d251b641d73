"""SQLAlchemy adapter package for catalogsync."""

from __future__ import annotations

from .mappings import metadata
from .repositories import (
    SqlAlchemyCveRepository,
    SqlAlchemyImageCveRepository,
    SqlAlchemyImageRepository,
    SqlAlchemyRepositoryImageRepository,
    SqlAlchemyRepositoryRepository,
)
from .unit_of_work import SqlAlchemyCatalogUnitOfWork, shutdown, startup

__all__ = [
    "SqlAlchemyCatalogUnitOfWork",
    "SqlAlchemyCveRepository",
    "SqlAlchemyImageCveRepository",
    "SqlAlchemyImageRepository",
    "SqlAlchemyRepositoryImageRepository",
    "SqlAlchemyRepositoryRepository",
    "metadata",
    "shutdown",
    "startup",
]
