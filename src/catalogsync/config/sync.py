"""Defaults for catalog sync runs."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .env import env_bool, optional_env_var


@dataclass(frozen=True, slots=True)
class SyncConfig:
    profile: str | None = None
    profiles_file: Path | None = None
    only_modified: bool = False


def get_sync_config() -> SyncConfig:
    profiles_file = optional_env_var("CATALOG_PROFILES_FILE")
    return SyncConfig(
        profile=optional_env_var("CATALOG_PROFILE"),
        profiles_file=Path(profiles_file) if profiles_file else None,
        only_modified=env_bool("CATALOG_SYNC_ONLY_MODIFIED"),
    )
