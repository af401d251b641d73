"""Loading repository profiles from a static YAML file.

The file maps profile names to the repositories they cover::

    profiles:
      ubi:
        - registry: registry.access.redhat.com
          repository: ubi8/ubi
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError

from catalogsync.domain.profiles import ProfileFilter

from .errors import ConfigurationError, ProfilesFileError

if TYPE_CHECKING:
    from pathlib import Path


class ProfileEntry(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    registry: str
    repository: str


class ProfilesDocument(BaseModel):
    model_config = ConfigDict(extra="ignore")

    profiles: dict[str, list[ProfileEntry]]


def read_profiles(path: Path) -> ProfilesDocument:
    try:
        with path.open(encoding="utf-8") as handle:
            raw = yaml.safe_load(handle)
    except FileNotFoundError as exc:
        raise ProfilesFileError(f"Profiles file not found: {path}") from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Profiles file is not valid YAML: {path}") from exc

    try:
        return ProfilesDocument.model_validate(raw)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid profiles file {path}: {exc}") from exc


def load_profile(name: str | None, path: Path | None) -> ProfileFilter:
    """Return the named profile, or the unrestricted one when ``name`` is unset."""

    if name is None:
        return ProfileFilter.unrestricted()
    if path is None:
        raise ProfilesFileError(f"Profile {name!r} requested without a profiles file")

    document = read_profiles(path)
    entries = document.profiles.get(name)
    if entries is None:
        known = ", ".join(sorted(document.profiles)) or "none"
        raise ConfigurationError(f"Unknown profile {name!r} (known: {known})")
    return ProfileFilter.from_pairs(name, ((entry.registry, entry.repository) for entry in entries))
