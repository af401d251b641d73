"""Translate catalog payloads into the catalog port's value objects."""

from __future__ import annotations

from typing import TYPE_CHECKING

from catalogsync.domain.ports.fetching import CatalogImage, CatalogRepository

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .schema import ImagePayload, RepositoryPayload, VulnerabilityPayload


def parse_repository(payload: RepositoryPayload) -> CatalogRepository:
    return CatalogRepository(
        external_id=payload.id,
        registry=payload.registry,
        name=payload.repository,
        modified_at=payload.last_update_date,
    )


def parse_image(payload: ImagePayload) -> CatalogImage:
    return CatalogImage(
        external_id=payload.id,
        digest=payload.digest,
        modified_at=payload.last_update_date,
    )


def parse_repositories(payloads: Iterable[RepositoryPayload]) -> list[CatalogRepository]:
    """Parse repositories, keeping the most recently modified entry per external id."""

    by_id: dict[str, CatalogRepository] = {}
    for payload in payloads:
        repository = parse_repository(payload)
        current = by_id.get(repository.external_id)
        if current is None or repository.modified_at > current.modified_at:
            by_id[repository.external_id] = repository
    return list(by_id.values())


def parse_images(payloads: Iterable[ImagePayload]) -> list[CatalogImage]:
    """Parse images, keeping the most recently modified entry per digest."""

    by_digest: dict[str, CatalogImage] = {}
    for payload in payloads:
        image = parse_image(payload)
        current = by_digest.get(image.digest)
        if current is None or image.modified_at > current.modified_at:
            by_digest[image.digest] = image
    return list(by_digest.values())


def parse_cve_names(payloads: Iterable[VulnerabilityPayload]) -> frozenset[str]:
    return frozenset(payload.cve_id for payload in payloads)
