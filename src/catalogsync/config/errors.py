"""Errors raised while reading catalogsync settings."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """An environment variable or profiles file holds a value catalogsync cannot use."""


class ProfilesFileError(ConfigurationError):
    """A sync profile was requested but no profiles file could be opened."""
