"""Pydantic models describing the catalog API payloads."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

TItem = TypeVar("TItem")


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _strip_required(value: str) -> str:
    stripped = value.strip()
    if not stripped:
        raise ValueError("must not be blank")
    return stripped


class CatalogBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class RepositoryPayload(CatalogBaseModel):
    id: str = Field(alias="_id")
    registry: str
    repository: str
    last_update_date: datetime

    _normalize_strings = field_validator("id", "registry", "repository")(_strip_required)
    _normalize_date = field_validator("last_update_date")(_as_utc)


class ImagePayload(CatalogBaseModel):
    id: str = Field(alias="_id")
    digest: str = Field(alias="image_id")
    last_update_date: datetime

    _normalize_strings = field_validator("id", "digest")(_strip_required)
    _normalize_date = field_validator("last_update_date")(_as_utc)


class VulnerabilityPayload(CatalogBaseModel):
    cve_id: str

    _normalize_cve = field_validator("cve_id")(_strip_required)


class PagePayload(CatalogBaseModel, Generic[TItem]):
    """Envelope shared by every list endpoint."""

    data: list[TItem] = Field(default_factory=list)
    page: int = 0
    page_size: int = 0
    total: int = 0


RepositoryPage = PagePayload[RepositoryPayload]
ImagePage = PagePayload[ImagePayload]
VulnerabilityPage = PagePayload[VulnerabilityPayload]


class ErrorResponse(CatalogBaseModel):
    status: int | None = None
    title: str | None = None
    detail: str | None = None
