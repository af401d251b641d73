"""Application orchestration entry points."""

from __future__ import annotations

from collections.abc import Callable
from logging import getLogger
from typing import TYPE_CHECKING

from catalogsync.adapters.catalog import build_http_catalog_source
from catalogsync.adapters.sqlalchemy.migrations import upgrade_head
from catalogsync.adapters.sqlalchemy.unit_of_work import SqlAlchemyCatalogUnitOfWork, startup
from catalogsync.domain.ports.unit_of_work import CatalogUnitOfWork
from catalogsync.domain.profiles import ProfileFilter
from catalogsync.domain.reconciliation import SyncCatalogResult, run_sync

if TYPE_CHECKING:
    from catalogsync.domain.ports.fetching import CatalogSource

UnitOfWorkFactory = Callable[[], CatalogUnitOfWork]


log = getLogger(__name__)


def sync_catalog(
    *,
    source: CatalogSource | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    profile: ProfileFilter | None = None,
    only_modified: bool = False,
    should_stop: Callable[[], bool] | None = None,
) -> SyncCatalogResult:
    """Reconcile the catalog into the configured store."""

    startup()
    effective_source = source or build_http_catalog_source()
    effective_uow = unit_of_work_factory or SqlAlchemyCatalogUnitOfWork
    effective_profile = profile or ProfileFilter.unrestricted()
    log.info(
        "Starting catalog sync: profile=%s, only_modified=%s",
        effective_profile.name or "all",
        only_modified,
    )

    return run_sync(
        source=effective_source,
        unit_of_work_factory=effective_uow,
        profile=effective_profile,
        only_modified=only_modified,
        should_stop=should_stop,
    )


def migrate_database(*, database_uri: str | None = None) -> None:
    """Bring the configured database schema to the latest revision."""

    upgrade_head(database_uri=database_uri)
    log.info("Database schema is up to date")
