"""Membership deltas between the catalog and the stored association rows."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable


@dataclass(frozen=True, slots=True)
class AssociationDelta:
    """Member ids to link and unlink, both in ascending order."""

    to_insert: tuple[int, ...] = ()
    to_delete: tuple[int, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.to_insert and not self.to_delete


def compute_delta(desired: Iterable[int], stored: Iterable[int]) -> AssociationDelta:
    """Return the changes that turn ``stored`` into ``desired``."""

    desired_ids = set(desired)
    stored_ids = set(stored)
    return AssociationDelta(
        to_insert=tuple(sorted(desired_ids - stored_ids)),
        to_delete=tuple(sorted(stored_ids - desired_ids)),
    )


@dataclass(slots=True)
class WriteCounts:
    """Rows written against the store, per kind."""

    repositories_inserted: int = 0
    repositories_updated: int = 0
    images_inserted: int = 0
    images_updated: int = 0
    cves_registered: int = 0
    repository_images_inserted: int = 0
    repository_images_deleted: int = 0
    image_cves_inserted: int = 0
    image_cves_deleted: int = 0

    @property
    def total(self) -> int:
        return (
            self.repositories_inserted
            + self.repositories_updated
            + self.images_inserted
            + self.images_updated
            + self.cves_registered
            + self.repository_images_inserted
            + self.repository_images_deleted
            + self.image_cves_inserted
            + self.image_cves_deleted
        )

    def add(self, other: WriteCounts) -> None:
        self.repositories_inserted += other.repositories_inserted
        self.repositories_updated += other.repositories_updated
        self.images_inserted += other.images_inserted
        self.images_updated += other.images_updated
        self.cves_registered += other.cves_registered
        self.repository_images_inserted += other.repository_images_inserted
        self.repository_images_deleted += other.repository_images_deleted
        self.image_cves_inserted += other.image_cves_inserted
        self.image_cves_deleted += other.image_cves_deleted


@dataclass(slots=True)
class RepositorySyncReport:
    """Outcome of one committed repository transaction."""

    repository: str
    images_fetched: int = 0
    images_synced: int = 0
    writes: WriteCounts = field(default_factory=WriteCounts)
