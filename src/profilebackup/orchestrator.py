from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable

from profilebackup.errors import CopyAborted
from profilebackup.models import BackupSummary, CopyOptions
from profilebackup.tree_copier import copy_tree, validate_paths


# Fixed names shared with earlier backups; downstream tooling expects them.
USERS_SOURCE_NAME = "Users"
USERS_DESTINATION_NAME = "7Profiles"
ROOT_DESTINATION_NAME = "Root"

MODE_PROFILE = "profile"
MODE_BASIC = "basic"


def is_profile_volume(source_root: Path) -> bool:
    """True when the volume looks like a Windows primary partition.

    Only the contents of the source are inspected, never the host OS.
    """
    return (Path(source_root) / USERS_SOURCE_NAME).is_dir()


def _run_pass(
    summary: BackupSummary,
    pass_name: str,
    source_root: Path,
    destination_root: Path,
    ignore: Iterable[str],
    options: CopyOptions | None,
    logger: logging.Logger | None,
) -> None:
    try:
        summary.passes[pass_name] = copy_tree(
            source_root, destination_root, ignore=ignore, options=options, logger=logger
        )
    except CopyAborted as exc:
        summary.passes[pass_name] = exc.stats
        exc.summary = summary
        raise


def profile_backup(
    source_root: Path,
    destination_root: Path,
    options: CopyOptions | None = None,
    logger: logging.Logger | None = None,
) -> BackupSummary:
    users_source = source_root / USERS_SOURCE_NAME
    users_destination = destination_root / USERS_DESTINATION_NAME
    root_destination = destination_root / ROOT_DESTINATION_NAME

    users_destination.mkdir(parents=True, exist_ok=True)
    root_destination.mkdir(parents=True, exist_ok=True)

    summary = BackupSummary(mode=MODE_PROFILE)
    # Profiles go first, they matter most to the customer.
    _run_pass(summary, USERS_DESTINATION_NAME, users_source, users_destination, (), options, logger)
    _run_pass(summary, ROOT_DESTINATION_NAME, source_root, root_destination, [USERS_SOURCE_NAME], options, logger)
    return summary


def basic_backup(
    source_root: Path,
    destination_root: Path,
    options: CopyOptions | None = None,
    logger: logging.Logger | None = None,
) -> BackupSummary:
    summary = BackupSummary(mode=MODE_BASIC)
    _run_pass(summary, ".", source_root, destination_root, (), options, logger)
    return summary


def backup(
    source_root: Path,
    destination_root: Path,
    options: CopyOptions | None = None,
    logger: logging.Logger | None = None,
) -> BackupSummary:
    log = logger or logging.getLogger("profilebackup.orchestrator")
    source_root = Path(os.path.abspath(source_root))
    destination_root = Path(os.path.abspath(destination_root))

    validate_paths(source_root, destination_root)

    if is_profile_volume(source_root):
        log.info("Windows primary partition detected, performing profile backup...")
        return profile_backup(source_root, destination_root, options=options, logger=logger)

    log.info("Windows primary partition not detected, performing basic backup...")
    return basic_backup(source_root, destination_root, options=options, logger=logger)
