"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class Severity(StrEnum):
    """Vulnerability severity as tracked in the ``cve`` table.

    Rows created by the catalog sync start as ``NOT_SET``; the vulnerability
    feed owns enrichment.
    """

    NOT_SET = "not set"
    NONE = "none"
    LOW = "low"
    MODERATE = "moderate"
    IMPORTANT = "important"
    CRITICAL = "critical"
