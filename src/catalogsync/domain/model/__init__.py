"""Domain model for the catalog replica."""

from __future__ import annotations

from .entities import (
    UNKNOWN_DESCRIPTION,
    Cve,
    Image,
    ImageCve,
    Repository,
    RepositoryImage,
)
from .enums import Severity

__all__ = [
    "UNKNOWN_DESCRIPTION",
    "Cve",
    "Image",
    "ImageCve",
    "Repository",
    "RepositoryImage",
    "Severity",
]
