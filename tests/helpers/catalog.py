"""Reusable fakes and builders for catalog reconciliation tests."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Literal

from catalogsync.domain.model import Cve, Image, ImageCve, Repository, RepositoryImage, Severity
from catalogsync.domain.ports.fetching import CatalogImage, CatalogRepository
from catalogsync.domain.ports.unit_of_work import CatalogRepositories

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence
    from types import TracebackType

BASE_TIME = datetime(2024, 1, 1, tzinfo=UTC)


def at(days: int = 0) -> datetime:
    """Timestamp ``days`` after a fixed base time."""

    return BASE_TIME + timedelta(days=days)


def make_catalog_repository(
    name: str = "repoA",
    *,
    registry: str = "reg1",
    external_id: str | None = None,
    modified_at: datetime | None = None,
) -> CatalogRepository:
    return CatalogRepository(
        external_id=external_id or f"{registry}/{name}",
        registry=registry,
        name=name,
        modified_at=modified_at or at(0),
    )


def make_catalog_image(
    digest: str,
    *,
    external_id: str | None = None,
    modified_at: datetime | None = None,
) -> CatalogImage:
    return CatalogImage(
        external_id=external_id or f"img-{digest}",
        digest=digest,
        modified_at=modified_at or at(0),
    )


class FakeCatalogSource:
    """In-memory implementation of the catalog source port for testing."""

    def __init__(self) -> None:
        self.repositories: list[CatalogRepository] = []
        self.images: dict[tuple[str, str], list[CatalogImage]] = {}
        self.cves: dict[str, frozenset[str]] = {}
        self.failing_repositories: set[tuple[str, str]] = set()
        self.failing_images: set[str] = set()
        self.fail_listing = False
        self.calls: list[tuple[str, ...]] = []

    def publish(
        self,
        repository: CatalogRepository,
        images: Mapping[CatalogImage, Iterable[str]] | None = None,
    ) -> None:
        """Add or replace a repository along with its images and their CVE names."""

        self.repositories = [
            existing
            for existing in self.repositories
            if existing.external_id != repository.external_id
        ]
        self.repositories.append(repository)
        key = (repository.registry, repository.name)
        self.images[key] = []
        for image, cve_names in (images or {}).items():
            self.images[key].append(image)
            self.cves[image.external_id] = frozenset(cve_names)

    def list_repositories(self) -> list[CatalogRepository]:
        self.calls.append(("list_repositories",))
        if self.fail_listing:
            raise RuntimeError("catalog unavailable")
        return list(self.repositories)

    def list_images(self, registry: str, repository: str) -> list[CatalogImage]:
        self.calls.append(("list_images", registry, repository))
        if (registry, repository) in self.failing_repositories:
            raise RuntimeError(f"images unavailable for {registry}/{repository}")
        return list(self.images.get((registry, repository), []))

    def list_cve_names(self, image_external_id: str) -> frozenset[str]:
        self.calls.append(("list_cve_names", image_external_id))
        if image_external_id in self.failing_images:
            raise RuntimeError(f"vulnerabilities unavailable for {image_external_id}")
        return self.cves.get(image_external_id, frozenset())


@dataclass(slots=True)
class StoreState:
    repositories: dict[int, Repository] = field(default_factory=dict)
    images: dict[int, Image] = field(default_factory=dict)
    cves: dict[int, Cve] = field(default_factory=dict)
    repository_images: set[tuple[int, int]] = field(default_factory=set)
    image_cves: set[tuple[int, int]] = field(default_factory=set)
    next_id: int = 1

    def copy(self) -> StoreState:
        return StoreState(
            repositories=dict(self.repositories),
            images=dict(self.images),
            cves=dict(self.cves),
            repository_images=set(self.repository_images),
            image_cves=set(self.image_cves),
            next_id=self.next_id,
        )

    def allocate_id(self) -> int:
        new_id = self.next_id
        self.next_id += 1
        return new_id


class InMemoryCatalogStore:
    """Committed state shared by every fake unit of work."""

    def __init__(self) -> None:
        self.state = StoreState()
        self.commits = 0
        self.rollbacks = 0
        self.cve_batches: list[list[str]] = []
        # Names another writer commits while a batch containing them is inserted.
        self.concurrent_cves: set[str] = set()

    def seed_cve(
        self,
        name: str,
        *,
        description: str = "seeded",
        severity: str = "critical",
    ) -> Cve:
        cve = Cve(
            id=self.state.allocate_id(),
            name=name,
            description=description,
            severity=Severity(severity),
        )
        self.state.cves[cve.id or 0] = cve
        return cve

    def repository_by_external_id(self, external_id: str) -> Repository | None:
        for repository in self.state.repositories.values():
            if repository.external_id == external_id:
                return repository
        return None

    def image_digests_of(self, external_id: str) -> set[str]:
        repository = self.repository_by_external_id(external_id)
        if repository is None:
            return set()
        return {
            self.state.images[image_id].digest
            for repository_id, image_id in self.state.repository_images
            if repository_id == repository.id
        }

    def cve_names_of(self, digest: str) -> set[str]:
        image_ids = [image.id for image in self.state.images.values() if image.digest == digest]
        return {
            self.state.cves[cve_id].name
            for image_id, cve_id in self.state.image_cves
            if image_id in image_ids
        }


class _StateBound:
    def __init__(self, uow: FakeCatalogUnitOfWork) -> None:
        self._uow = uow

    @property
    def state(self) -> StoreState:
        return self._uow.working_state


class FakeRepositoryRepository(_StateBound):
    def list_all(self) -> list[Repository]:
        return list(self.state.repositories.values())

    def add(self, entity: Repository) -> Repository:
        if any(r.external_id == entity.external_id for r in self.state.repositories.values()):
            raise ValueError(f"duplicate repository {entity.external_id}")
        stored = replace(entity, id=self.state.allocate_id())
        self.state.repositories[stored.id or 0] = stored
        return stored

    def update(self, entity: Repository) -> None:
        assert entity.id in self.state.repositories
        self.state.repositories[entity.id] = entity


class FakeImageRepository(_StateBound):
    def list_all(self) -> list[Image]:
        return list(self.state.images.values())

    def add(self, entity: Image) -> Image:
        if any(image.digest == entity.digest for image in self.state.images.values()):
            raise ValueError(f"duplicate image {entity.digest}")
        stored = replace(entity, id=self.state.allocate_id())
        self.state.images[stored.id or 0] = stored
        return stored

    def update(self, entity: Image) -> None:
        assert entity.id in self.state.images
        self.state.images[entity.id] = entity


class FakeCveRepository(_StateBound):
    def list_all(self) -> list[Cve]:
        return list(self.state.cves.values())

    def create_if_absent(self, entities: Sequence[Cve]) -> list[str]:
        names = [cve.name for cve in entities]
        self._uow.store.cve_batches.append(names)
        self._commit_concurrent_writes(names)
        existing = {cve.name for cve in self.state.cves.values()}
        inserted: list[str] = []
        for cve in entities:
            if cve.name in existing:
                continue
            stored = replace(cve, id=self.state.allocate_id())
            self.state.cves[stored.id or 0] = stored
            existing.add(cve.name)
            inserted.append(cve.name)
        return inserted

    def _commit_concurrent_writes(self, names: Iterable[str]) -> None:
        store = self._uow.store
        for name in sorted(store.concurrent_cves.intersection(names)):
            cve = Cve(
                id=self.state.allocate_id(),
                name=name,
                description="from another writer",
                severity=Severity.LOW,
            )
            self.state.cves[cve.id or 0] = cve
            store.state.cves[cve.id or 0] = cve
            store.concurrent_cves.discard(name)
        store.state.next_id = max(store.state.next_id, self.state.next_id)

    def get_by_names(self, names: Iterable[str]) -> list[Cve]:
        wanted = set(names)
        return sorted(
            (cve for cve in self.state.cves.values() if cve.name in wanted),
            key=lambda cve: cve.name,
        )


class FakeRepositoryImageRepository(_StateBound):
    def image_ids(self, repository_id: int) -> set[int]:
        return {image for repo, image in self.state.repository_images if repo == repository_id}

    def add_all(self, pairs: Sequence[RepositoryImage]) -> None:
        for pair in pairs:
            key = (pair.repository_id, pair.image_id)
            assert key not in self.state.repository_images, f"duplicate pair {key}"
            self.state.repository_images.add(key)

    def remove_all(self, pairs: Sequence[RepositoryImage]) -> None:
        for pair in pairs:
            self.state.repository_images.discard((pair.repository_id, pair.image_id))


class FakeImageCveRepository(_StateBound):
    def cve_ids(self, image_id: int) -> set[int]:
        return {cve for image, cve in self.state.image_cves if image == image_id}

    def add_all(self, pairs: Sequence[ImageCve]) -> None:
        for pair in pairs:
            key = (pair.image_id, pair.cve_id)
            assert key not in self.state.image_cves, f"duplicate pair {key}"
            self.state.image_cves.add(key)

    def remove_all(self, pairs: Sequence[ImageCve]) -> None:
        for pair in pairs:
            self.state.image_cves.discard((pair.image_id, pair.cve_id))


class FakeCatalogUnitOfWork:
    """Unit of work over a private copy of the store, published on commit."""

    def __init__(self, store: InMemoryCatalogStore) -> None:
        self.store = store
        self.working_state = store.state.copy()
        self._repositories = CatalogRepositories(
            repositories=FakeRepositoryRepository(self),
            images=FakeImageRepository(self),
            cves=FakeCveRepository(self),
            repository_images=FakeRepositoryImageRepository(self),
            image_cves=FakeImageCveRepository(self),
        )

    @property
    def repositories(self) -> CatalogRepositories:
        return self._repositories

    def __enter__(self) -> FakeCatalogUnitOfWork:
        self.working_state = self.store.state.copy()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        if exc_type is not None:
            self.rollback()
        return False

    def commit(self) -> None:
        self.store.state = self.working_state
        self.working_state = self.store.state.copy()
        self.store.commits += 1

    def rollback(self) -> None:
        self.working_state = self.store.state.copy()
        self.store.rollbacks += 1
