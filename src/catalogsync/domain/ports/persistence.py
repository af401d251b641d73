"""Ports for persisting the catalog replica."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from catalogsync.domain.model import Cve, Image, ImageCve, Repository, RepositoryImage


@runtime_checkable
class RepositoryRepository(Protocol):
    """Persistence contract for catalog repositories."""

    def list_all(self) -> list[Repository]: ...

    def add(self, entity: Repository) -> Repository:
        """Insert ``entity`` and return it with its assigned identifier."""
        ...

    def update(self, entity: Repository) -> None: ...


@runtime_checkable
class ImageRepository(Protocol):
    """Persistence contract for images."""

    def list_all(self) -> list[Image]: ...

    def add(self, entity: Image) -> Image: ...

    def update(self, entity: Image) -> None: ...


@runtime_checkable
class CveRepository(Protocol):
    """Persistence contract for CVEs.

    CVE rows are shared with other writers, so creation never fails on an
    existing name and never touches the existing row. ``create_if_absent``
    returns the names whose rows it actually inserted.
    """

    def list_all(self) -> list[Cve]: ...

    def create_if_absent(self, entities: Sequence[Cve]) -> list[str]: ...

    def get_by_names(self, names: Iterable[str]) -> list[Cve]: ...


@runtime_checkable
class RepositoryImageRepository(Protocol):
    """Repository to image membership."""

    def image_ids(self, repository_id: int) -> set[int]: ...

    def add_all(self, pairs: Sequence[RepositoryImage]) -> None: ...

    def remove_all(self, pairs: Sequence[RepositoryImage]) -> None: ...


@runtime_checkable
class ImageCveRepository(Protocol):
    """Image to CVE membership."""

    def cve_ids(self, image_id: int) -> set[int]: ...

    def add_all(self, pairs: Sequence[ImageCve]) -> None: ...

    def remove_all(self, pairs: Sequence[ImageCve]) -> None: ...
