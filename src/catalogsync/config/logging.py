"""Shared logging helpers for catalogsync."""

from __future__ import annotations

import logging

from .env import optional_env_var
from .errors import ConfigurationError

DEFAULT_LOG_LEVEL = "INFO"


def parse_log_level(value: str | None) -> int:
    """Translate a level name such as ``debug`` into a ``logging`` constant."""

    name = (value or DEFAULT_LOG_LEVEL).strip().upper()
    level = logging.getLevelNamesMapping().get(name)
    if level is None:
        raise ConfigurationError(f"Unknown logging level: {value}")
    return level


def configure_logging(*, level: int | None = None, force: bool = False) -> None:
    """Initialise the root logger once with sensible defaults.

    Without an explicit ``level`` the ``LOGGING_LEVEL`` environment variable
    decides, falling back to INFO. Pass ``force=True`` to reconfigure during
    tests or specialised entry points.
    """

    resolved = level if level is not None else parse_log_level(optional_env_var("LOGGING_LEVEL"))
    logging.basicConfig(
        level=resolved,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
