"""Top-level driver for one catalog sync run."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from .context import ReconciliationContext
from .delta import WriteCounts
from .engine import ReconciliationEngine

if TYPE_CHECKING:
    from collections.abc import Callable

    from catalogsync.domain.ports.fetching import CatalogRepository, CatalogSource
    from catalogsync.domain.ports.unit_of_work import CatalogUnitOfWork
    from catalogsync.domain.profiles import ProfileFilter

log = getLogger(__name__)


@dataclass(slots=True)
class SyncCatalogResult:
    """Outcome of a sync run.

    ``untracked`` counts stored repositories the catalog no longer lists or
    the active profile excludes.
    """

    listed: int = 0
    selected: int = 0
    synced: int = 0
    failed: int = 0
    untracked: int = 0
    cancelled: bool = False
    writes: WriteCounts = field(default_factory=WriteCounts)


def run_sync(
    *,
    source: CatalogSource,
    unit_of_work_factory: Callable[[], CatalogUnitOfWork],
    profile: ProfileFilter,
    only_modified: bool = False,
    should_stop: Callable[[], bool] | None = None,
) -> SyncCatalogResult:
    """Reconcile every in-scope catalog repository into the store.

    Failing to load the replica or to list the catalog repositories aborts
    the run. Failures of single repositories are logged and skipped.
    """

    with unit_of_work_factory() as uow:
        context = ReconciliationContext.load(uow.repositories)

    catalog_repositories = source.list_repositories()
    log.info("Repositories in catalog: %d", len(catalog_repositories))

    result = SyncCatalogResult(listed=len(catalog_repositories))
    to_sync = _select_repositories(context, catalog_repositories, profile, only_modified)
    result.selected = len(to_sync)
    result.untracked = _count_untracked(context, catalog_repositories, profile)

    if profile.is_restricted:
        log.info("Repositories to sync (profile=%s): %d", profile.name, result.selected)
        log.info(
            "Repositories in DB not known to catalog or not in current profile (profile=%s): %d",
            profile.name,
            result.untracked,
        )
    else:
        log.info("Repositories to sync: %d", result.selected)
        log.info("Repositories in DB not known to catalog: %d", result.untracked)

    engine = ReconciliationEngine(source=source, unit_of_work_factory=unit_of_work_factory)
    for index, catalog_repository in enumerate(to_sync, start=1):
        if should_stop is not None and should_stop():
            log.info("Stop requested, %d repositories left", result.selected - index + 1)
            result.cancelled = True
            break

        log.info(
            "Syncing repo: repo=%s [%d/%d]",
            catalog_repository.display_name,
            index,
            result.selected,
        )
        try:
            report = engine.sync_repository(context, catalog_repository)
        except Exception:
            log.exception(
                "Syncing repo failed, skipping: repo=%s", catalog_repository.display_name
            )
            context.discard_pending()
            result.failed += 1
            continue

        context.flush_pending()
        result.synced += 1
        result.writes.add(report.writes)

    log.info(
        "Finished catalog sync: synced=%d, failed=%d, writes=%d, cancelled=%s",
        result.synced,
        result.failed,
        result.writes.total,
        result.cancelled,
    )
    return result


def _select_repositories(
    context: ReconciliationContext,
    catalog_repositories: list[CatalogRepository],
    profile: ProfileFilter,
    only_modified: bool,
) -> list[CatalogRepository]:
    selected: list[CatalogRepository] = []
    for catalog_repository in catalog_repositories:
        if not profile.includes(catalog_repository.registry, catalog_repository.name):
            continue
        if only_modified:
            cached, found = context.cache.repositories.resolve(catalog_repository.external_id)
            unchanged = (
                found
                and cached is not None
                and catalog_repository.modified_at <= cached.modified_at
            )
            if unchanged:
                continue
        selected.append(catalog_repository)
    return sorted(selected, key=lambda repo: (repo.registry, repo.name, repo.external_id))


def _count_untracked(
    context: ReconciliationContext,
    catalog_repositories: list[CatalogRepository],
    profile: ProfileFilter,
) -> int:
    in_scope = {
        repo.external_id
        for repo in catalog_repositories
        if profile.includes(repo.registry, repo.name)
    }
    stored = context.cache.repositories.committed
    return sum(1 for external_id in stored if external_id not in in_scope)
