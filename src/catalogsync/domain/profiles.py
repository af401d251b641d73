"""Static allow-lists selecting which repositories a run synchronises."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable


@dataclass(frozen=True, slots=True)
class ProfileFilter:
    """Allow-list of ``(registry, repository)`` pairs.

    ``repositories=None`` is the unrestricted profile: every repository the
    catalog lists is in scope.
    """

    name: str | None = None
    repositories: frozenset[tuple[str, str]] | None = None

    @classmethod
    def unrestricted(cls) -> ProfileFilter:
        return cls()

    @classmethod
    def from_pairs(cls, name: str, pairs: Iterable[tuple[str, str]]) -> ProfileFilter:
        return cls(name=name, repositories=frozenset(pairs))

    @property
    def is_restricted(self) -> bool:
        return self.repositories is not None

    def includes(self, registry: str, repository: str) -> bool:
        if self.repositories is None:
            return True
        return (registry, repository) in self.repositories
