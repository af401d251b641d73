"""Persisted catalog entities.

Identifiers are assigned by the store. An entity with ``id is None`` has not
been inserted yet.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .enums import Severity

if TYPE_CHECKING:
    from datetime import datetime

UNKNOWN_DESCRIPTION = "unknown"


@dataclass(frozen=True, slots=True, kw_only=True)
class Repository:
    """Catalog repository, identified by its external catalog id."""

    external_id: str
    registry: str
    name: str
    modified_at: datetime
    id: int | None = None

    @property
    def display_name(self) -> str:
        return f"{self.registry}/{self.name}"


@dataclass(frozen=True, slots=True, kw_only=True)
class Image:
    """Container image, identified by its content digest."""

    digest: str
    external_id: str
    modified_at: datetime
    id: int | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class Cve:
    name: str
    description: str = UNKNOWN_DESCRIPTION
    severity: Severity = Severity.NOT_SET
    id: int | None = None


@dataclass(frozen=True, slots=True)
class RepositoryImage:
    repository_id: int
    image_id: int


@dataclass(frozen=True, slots=True)
class ImageCve:
    image_id: int
    cve_id: int
