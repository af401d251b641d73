from __future__ import annotations

from catalogsync.domain.profiles import ProfileFilter


def test_unrestricted_profile_includes_everything() -> None:
    profile = ProfileFilter.unrestricted()

    assert not profile.is_restricted
    assert profile.includes("any.registry", "any/repo")


def test_profile_matches_registry_and_repository_together() -> None:
    profile = ProfileFilter.from_pairs("ubi", [("reg1", "ubi8/ubi"), ("reg2", "other")])

    assert profile.is_restricted
    assert profile.name == "ubi"
    assert profile.includes("reg1", "ubi8/ubi")
    assert not profile.includes("reg2", "ubi8/ubi")
    assert not profile.includes("reg1", "other")


def test_empty_profile_selects_nothing() -> None:
    profile = ProfileFilter.from_pairs("empty", [])

    assert profile.is_restricted
    assert not profile.includes("reg1", "repoA")
