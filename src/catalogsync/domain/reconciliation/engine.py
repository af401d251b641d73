"""Three-level diff between the catalog and the replica.

One repository is one transaction: its row, the rows of its new or modified
images, the CVEs those images reference, and both association sets either
all land or none do. Within a repository the write order is fixed:
repository, images, CVEs, image-CVE pairs, repository-image pairs.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from logging import getLogger
from typing import TYPE_CHECKING

from catalogsync.domain.errors import DataConsistencyError
from catalogsync.domain.model import Cve, Image, ImageCve, Repository, RepositoryImage

from .delta import RepositorySyncReport, compute_delta

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from catalogsync.domain.ports.fetching import CatalogImage, CatalogRepository, CatalogSource
    from catalogsync.domain.ports.unit_of_work import CatalogRepositories, CatalogUnitOfWork

    from .context import ReconciliationContext, ReplicaCache

log = getLogger(__name__)


def _require_id(entity: Repository | Image | Cve) -> int:
    if entity.id is None:
        raise DataConsistencyError(f"{type(entity).__name__} has no identifier: {entity!r}")
    return entity.id


@dataclass(slots=True)
class ReconciliationEngine:
    """Synchronise single repositories against the catalog."""

    source: CatalogSource
    unit_of_work_factory: Callable[[], CatalogUnitOfWork]

    def sync_repository(
        self,
        context: ReconciliationContext,
        catalog_repository: CatalogRepository,
    ) -> RepositorySyncReport:
        """Reconcile one repository inside its own transaction.

        Raises whatever the catalog or the store raised; the transaction is
        rolled back by then. The caller owns the pending-buffer policy.
        """

        report = RepositorySyncReport(repository=catalog_repository.display_name)
        cache = context.cache

        with self.unit_of_work_factory() as uow:
            repositories = uow.repositories
            repository = self._upsert_repository(repositories, cache, catalog_repository, report)

            catalog_images = self._fetch_images(catalog_repository)
            report.images_fetched = len(catalog_images)

            staged = self._stage_images(cache, catalog_images)
            log.debug("Images to sync: %d", len(staged))
            for image in staged:
                self.sync_image(uow, context, image, report)
            report.images_synced = len(staged)

            self._sync_repository_images(repositories, cache, repository, catalog_images, report)
            uow.commit()

        return report

    def sync_image(
        self,
        uow: CatalogUnitOfWork,
        context: ReconciliationContext,
        image: Image,
        report: RepositorySyncReport,
    ) -> Image:
        """Write one image row and reconcile its CVE associations.

        Runs inside the repository's transaction.
        """

        repositories = uow.repositories
        cache = context.cache

        if image.id is None:
            image = repositories.images.add(image)
            report.writes.images_inserted += 1
        else:
            repositories.images.update(image)
            report.writes.images_updated += 1
        cache.images.stage(image.digest, image)
        image_id = _require_id(image)

        cve_names = self.source.list_cve_names(image.external_id)
        self._register_missing_cves(repositories, cache, cve_names, report)

        desired = {self._resolve_cve_id(cache, name) for name in cve_names}
        delta = compute_delta(desired, repositories.image_cves.cve_ids(image_id))

        log.debug("Image-CVE pairs to insert: %d", len(delta.to_insert))
        log.debug("Image-CVE pairs to delete: %d", len(delta.to_delete))

        if delta.to_insert:
            repositories.image_cves.add_all(
                [ImageCve(image_id, cve_id) for cve_id in delta.to_insert]
            )
        if delta.to_delete:
            repositories.image_cves.remove_all(
                [ImageCve(image_id, cve_id) for cve_id in delta.to_delete]
            )
        report.writes.image_cves_inserted += len(delta.to_insert)
        report.writes.image_cves_deleted += len(delta.to_delete)
        return image

    def _upsert_repository(
        self,
        repositories: CatalogRepositories,
        cache: ReplicaCache,
        catalog_repository: CatalogRepository,
        report: RepositorySyncReport,
    ) -> Repository:
        cached, found = cache.repositories.resolve(catalog_repository.external_id)
        if not found or cached is None:
            repository = repositories.repositories.add(
                Repository(
                    external_id=catalog_repository.external_id,
                    registry=catalog_repository.registry,
                    name=catalog_repository.name,
                    modified_at=catalog_repository.modified_at,
                )
            )
            report.writes.repositories_inserted += 1
        elif catalog_repository.modified_at > cached.modified_at:
            repository = replace(
                cached,
                registry=catalog_repository.registry,
                name=catalog_repository.name,
                modified_at=catalog_repository.modified_at,
            )
            repositories.repositories.update(repository)
            report.writes.repositories_updated += 1
        else:
            return cached

        cache.repositories.stage(repository.external_id, repository)
        return repository

    def _fetch_images(self, catalog_repository: CatalogRepository) -> dict[str, CatalogImage]:
        images: dict[str, CatalogImage] = {}
        for image in self.source.list_images(catalog_repository.registry, catalog_repository.name):
            current = images.get(image.digest)
            if current is None or image.modified_at > current.modified_at:
                images[image.digest] = image
        return images

    @staticmethod
    def _stage_images(cache: ReplicaCache, catalog_images: dict[str, CatalogImage]) -> list[Image]:
        staged: list[Image] = []
        for digest in sorted(catalog_images):
            catalog_image = catalog_images[digest]
            cached, found = cache.images.resolve(digest)
            if not found or cached is None:
                staged.append(
                    Image(
                        digest=digest,
                        external_id=catalog_image.external_id,
                        modified_at=catalog_image.modified_at,
                    )
                )
            elif catalog_image.modified_at > cached.modified_at:
                staged.append(
                    replace(
                        cached,
                        external_id=catalog_image.external_id,
                        modified_at=catalog_image.modified_at,
                    )
                )
        return staged

    @staticmethod
    def _register_missing_cves(
        repositories: CatalogRepositories,
        cache: ReplicaCache,
        cve_names: Iterable[str],
        report: RepositorySyncReport,
    ) -> None:
        missing = sorted(name for name in cve_names if not cache.cves.resolve(name)[1])
        log.debug("CVEs to insert: %d", len(missing))
        if not missing:
            return

        # Other writers own CVE rows too; existing names are left untouched.
        inserted = repositories.cves.create_if_absent([Cve(name=name) for name in missing])
        if len(inserted) < len(missing):
            log.debug("CVEs already created by another writer: %d", len(missing) - len(inserted))
        for cve in repositories.cves.get_by_names(missing):
            cache.cves.stage(cve.name, cve)
        report.writes.cves_registered += len(inserted)

    @staticmethod
    def _resolve_cve_id(cache: ReplicaCache, name: str) -> int:
        cve, found = cache.cves.resolve(name)
        if not found or cve is None:
            raise DataConsistencyError(f"CVE not in cache: {name}")
        return _require_id(cve)

    @staticmethod
    def _sync_repository_images(
        repositories: CatalogRepositories,
        cache: ReplicaCache,
        repository: Repository,
        catalog_images: dict[str, CatalogImage],
        report: RepositorySyncReport,
    ) -> None:
        repository_id = _require_id(repository)

        desired: set[int] = set()
        for digest in catalog_images:
            image, found = cache.images.resolve(digest)
            if not found or image is None:
                raise DataConsistencyError(f"Image not in cache: {digest}")
            desired.add(_require_id(image))

        delta = compute_delta(desired, repositories.repository_images.image_ids(repository_id))

        log.debug("Repository-Image pairs to insert: %d", len(delta.to_insert))
        log.debug("Repository-Image pairs to delete: %d", len(delta.to_delete))

        if delta.to_insert:
            repositories.repository_images.add_all(
                [RepositoryImage(repository_id, image_id) for image_id in delta.to_insert]
            )
        if delta.to_delete:
            repositories.repository_images.remove_all(
                [RepositoryImage(repository_id, image_id) for image_id in delta.to_delete]
            )
        report.writes.repository_images_inserted += len(delta.to_insert)
        report.writes.repository_images_deleted += len(delta.to_delete)
