"""Run-scoped replica cache with a pending buffer for the open transaction."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Any, Protocol

from catalogsync.domain.errors import ReconciliationError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from catalogsync.domain.model import Cve, Image, Repository
    from catalogsync.domain.ports.unit_of_work import CatalogRepositories

log = getLogger(__name__)


class HasId(Protocol):
    @property
    def id(self) -> int | None: ...


@dataclass(slots=True)
class EntityCache[K, E: HasId]:
    """Committed snapshot of one table plus entities written in the open transaction.

    Lookups see committed entries first and fall back to pending ones, so an
    entity inserted earlier in the current transaction is visible before
    commit. ``flush`` folds pending into committed; ``discard`` drops it.
    """

    kind: str
    committed: dict[K, E] = field(default_factory=dict)
    pending: dict[K, E] = field(default_factory=dict)

    @classmethod
    def from_entities(
        cls, kind: str, entities: Iterable[E], key: Callable[[E], K]
    ) -> EntityCache[K, E]:
        return cls(kind=kind, committed={key(entity): entity for entity in entities})

    def resolve(self, key: K) -> tuple[E | None, bool]:
        if key in self.committed:
            return self.committed[key], True
        if key in self.pending:
            return self.pending[key], True
        return None, False

    def stage(self, key: K, entity: E) -> None:
        if entity.id is None:
            raise ReconciliationError(f"Cannot stage {self.kind} {key!r} without an identifier")
        self.pending[key] = entity

    def flush(self) -> None:
        self.committed.update(self.pending)
        self.pending.clear()

    def discard(self) -> None:
        self.pending.clear()

    def __len__(self) -> int:
        return len(self.committed)


@dataclass(slots=True)
class ReplicaCache:
    """Replica of the store keyed by natural identifiers."""

    repositories: EntityCache[str, Repository] = field(
        default_factory=lambda: EntityCache("repository")
    )
    images: EntityCache[str, Image] = field(default_factory=lambda: EntityCache("image"))
    cves: EntityCache[str, Cve] = field(default_factory=lambda: EntityCache("cve"))

    @classmethod
    def load(cls, repositories: CatalogRepositories) -> ReplicaCache:
        """Bulk-read every repository, image and CVE row."""

        return cls(
            repositories=EntityCache.from_entities(
                "repository",
                repositories.repositories.list_all(),
                lambda repo: repo.external_id,
            ),
            images=EntityCache.from_entities(
                "image", repositories.images.list_all(), lambda image: image.digest
            ),
            cves=EntityCache.from_entities(
                "cve", repositories.cves.list_all(), lambda cve: cve.name
            ),
        )

    def _caches(self) -> tuple[EntityCache[str, Any], ...]:
        return self.repositories, self.images, self.cves

    def flush(self) -> None:
        for cache in self._caches():
            cache.flush()

    def discard(self) -> None:
        for cache in self._caches():
            cache.discard()

    @property
    def has_pending(self) -> bool:
        return any(cache.pending for cache in self._caches())


@dataclass(slots=True)
class ReconciliationContext:
    """State owned by one sync run and passed through every operation."""

    cache: ReplicaCache = field(default_factory=ReplicaCache)

    @classmethod
    def load(cls, repositories: CatalogRepositories) -> ReconciliationContext:
        cache = ReplicaCache.load(repositories)
        log.info("Repositories in DB: %d", len(cache.repositories))
        log.info("Images in DB: %d", len(cache.images))
        log.info("CVEs in DB: %d", len(cache.cves))
        return cls(cache=cache)

    def flush_pending(self) -> None:
        """Publish entities of a committed transaction to the cache."""

        self.cache.flush()

    def discard_pending(self) -> None:
        """Forget entities of a rolled back transaction."""

        self.cache.discard()
