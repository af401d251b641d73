from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path
from signal import SIGINT, getsignal, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from catalogsync.app import migrate_database, sync_catalog
from catalogsync.config import (
    ConfigurationError,
    configure_logging,
    get_sync_config,
    load_profile,
    parse_log_level,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from catalogsync.config import SyncConfig
    from catalogsync.domain.profiles import ProfileFilter
    from catalogsync.domain.reconciliation import SyncCatalogResult

log = logging.getLogger(__name__)


class StopRequest:
    """Cooperative stop flag flipped by the first Ctrl+C."""

    def __init__(self) -> None:
        self.requested = False

    def __call__(self) -> bool:
        return self.requested


_STOP = StopRequest()


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--log-level",
        type=str,
        help="Logging level name (defaults to LOGGING_LEVEL or INFO)",
    )

    parser = argparse.ArgumentParser(description="Reconcile the software catalog into the store")
    subparsers = parser.add_subparsers(dest="command", required=True)

    sync = subparsers.add_parser("sync", parents=[common], help="Run one catalog sync")
    sync.add_argument(
        "--profile",
        type=str,
        help="Restrict the run to the repositories of this profile",
    )
    sync.add_argument(
        "--profiles-file",
        type=Path,
        help="YAML file defining the profiles (defaults to CATALOG_PROFILES_FILE)",
    )
    sync.add_argument(
        "--only-modified",
        action="store_true",
        default=None,
        help="Skip repositories whose catalog timestamp is not newer than the stored one",
    )

    subparsers.add_parser("migrate", parents=[common], help="Upgrade the database schema")

    return parser.parse_args(list(argv))


def _resolve_sync_config(args: argparse.Namespace) -> SyncConfig:
    config = get_sync_config()
    if args.profile is not None:
        config = replace(config, profile=args.profile)
    if args.profiles_file is not None:
        config = replace(config, profiles_file=args.profiles_file)
    if args.only_modified is not None:
        config = replace(config, only_modified=args.only_modified)
    return config


def _log_result(result: SyncCatalogResult) -> None:
    writes = result.writes
    log.info(
        "Catalog sync finished: listed=%d, selected=%d, synced=%d, failed=%d, untracked=%d",
        result.listed,
        result.selected,
        result.synced,
        result.failed,
        result.untracked,
    )
    log.info(
        "Writes: repositories=+%d/~%d, images=+%d/~%d, cves=+%d, "
        "repository_images=+%d/-%d, image_cves=+%d/-%d",
        writes.repositories_inserted,
        writes.repositories_updated,
        writes.images_inserted,
        writes.images_updated,
        writes.cves_registered,
        writes.repository_images_inserted,
        writes.repository_images_deleted,
        writes.image_cves_inserted,
        writes.image_cves_deleted,
    )
    if result.cancelled:
        log.warning("Sync stopped early on user request")


def _run_sync(profile: ProfileFilter, *, only_modified: bool) -> SyncCatalogResult:
    _STOP.requested = False
    previous = getsignal(SIGINT)
    signal(SIGINT, sigint_handler)
    try:
        return sync_catalog(profile=profile, only_modified=only_modified, should_stop=_STOP)
    finally:
        signal(SIGINT, previous)


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)

    profile: ProfileFilter | None = None
    only_modified = False
    try:
        level = parse_log_level(parsed_args.log_level) if parsed_args.log_level else None
        configure_logging(level=level)
        if parsed_args.command == "sync":
            sync_config = _resolve_sync_config(parsed_args)
            profile = load_profile(sync_config.profile, sync_config.profiles_file)
            only_modified = sync_config.only_modified
    except ConfigurationError:
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        if parsed_args.command == "sync" and profile is not None:
            _log_result(_run_sync(profile, only_modified=only_modified))
        elif parsed_args.command == "migrate":
            migrate_database()
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except Exception:
        log.exception("Fatal error during sync")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Request a stop after the current repository; exit on the second Ctrl+C."""
    if _STOP.requested:
        log.info("Closed by user (Ctrl+C)")
        sys.exit(0)
    _STOP.requested = True
    log.info("Stop requested, finishing the current repository (Ctrl+C again to exit)")


def run() -> None:
    load_dotenv()
    main()


if __name__ == "__main__":
    run()
