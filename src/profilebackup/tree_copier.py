from __future__ import annotations

import errno
import logging
import os
from pathlib import Path, PurePath
import shutil
import tempfile
from typing import Iterable

from profilebackup.errors import CopyAborted, SourceRootError
from profilebackup.ignore_engine import build_ignore_engine
from profilebackup.models import CopyOptions, CopyOutcome, CopyStats, FileCopyResult


WINDOWS_ERROR_FILENAME_EXCED_RANGE = 206


def _is_name_too_long(exc: OSError) -> bool:
    if exc.errno == errno.ENAMETOOLONG:
        return True
    return getattr(exc, "winerror", None) == WINDOWS_ERROR_FILENAME_EXCED_RANGE


def _safe_copy(source_file: Path, destination_file: Path) -> OSError | None:
    """Copy contents into place; returns the error if metadata could not follow."""
    with tempfile.NamedTemporaryFile(delete=False, dir=str(destination_file.parent)) as tmp:
        tmp_path = Path(tmp.name)
    metadata_error = None
    try:
        shutil.copyfile(source_file, tmp_path)
        try:
            shutil.copystat(source_file, tmp_path)
        except OSError as exc:
            metadata_error = exc
        tmp_path.replace(destination_file)
        return metadata_error
    finally:
        if tmp_path.exists():
            tmp_path.unlink(missing_ok=True)


def validate_paths(source_root: Path, destination_root: Path) -> None:
    if not source_root.exists() or not source_root.is_dir():
        raise SourceRootError(f"Source directory does not exist or is not a directory: {source_root}")

    source_resolved = source_root.resolve()
    destination_resolved = destination_root.resolve()

    if source_resolved == destination_resolved:
        raise ValueError(f"Invalid mapping: source and destination are equal: {source_root}")

    if destination_resolved.is_relative_to(source_resolved):
        raise ValueError(
            f"Invalid mapping: destination is inside source, which can recurse: {destination_root}"
        )


def copy_file(
    source_file: Path,
    destination_file: Path,
    logger: logging.Logger | None = None,
) -> FileCopyResult:
    """Copy one file into place and report how the attempt ended.

    The destination parent chain is created on demand. OSErrors are never
    raised from here; they are classified into the returned outcome.
    """
    log = logger or logging.getLogger("profilebackup.copy")

    size = 0
    try:
        destination_file.parent.mkdir(parents=True, exist_ok=True)
        size = source_file.stat().st_size
        log.info("%s to %s, size %s", source_file, destination_file, size)
        metadata_error = _safe_copy(source_file, destination_file)
    except OSError as exc:
        outcome = CopyOutcome.NAME_TOO_LONG if _is_name_too_long(exc) else CopyOutcome.FAILED
        return FileCopyResult(source_file, destination_file, size, outcome, exc)

    if metadata_error is not None:
        log.warning("Copied %s without its timestamps/attributes: %s", destination_file, metadata_error)

    return FileCopyResult(source_file, destination_file, size, CopyOutcome.COPIED)


def copy_tree(
    source_root: Path,
    destination_root: Path,
    ignore: Iterable[str | PurePath] = (),
    options: CopyOptions | None = None,
    logger: logging.Logger | None = None,
) -> CopyStats:
    """Mirror every regular file under ``source_root`` into ``destination_root``.

    ``ignore`` holds paths relative to ``source_root``; a matching directory is
    pruned before it is walked. Destination directories only appear as parents
    of copied files, and nothing already in the destination is removed.
    """
    log = logger or logging.getLogger("profilebackup.copy")
    options = options or CopyOptions()
    source_root = Path(os.path.abspath(source_root))
    destination_root = Path(os.path.abspath(destination_root))

    validate_paths(source_root, destination_root)
    destination_root.mkdir(parents=True, exist_ok=True)

    ignore_engine = build_ignore_engine(ignore, options.exclude_patterns)
    stats = CopyStats()

    for root_str, dirs, files in os.walk(source_root, topdown=True, followlinks=options.follow_symlinks):
        root = Path(root_str)
        root_rel = root.relative_to(source_root)

        for file_name in files:
            rel_path = root_rel / file_name
            if ignore_engine.is_ignored(rel_path):
                stats.skipped += 1
                continue

            source_file = root / file_name
            if not source_file.is_file():
                log.debug("Skipping non-regular file %s", source_file)
                continue

            result = copy_file(source_file, destination_root / rel_path, logger=log)
            stats.absorb(result)

            if result.outcome is CopyOutcome.NAME_TOO_LONG:
                log.info("Error: filename %s too long, skipping...", result.destination)
            elif result.outcome is CopyOutcome.FAILED:
                log.error("Failed to copy %s to %s: %s", result.source, result.destination, result.error)
                if not options.continue_on_error:
                    raise CopyAborted(result, stats)

        kept_dirs: list[str] = []
        for dir_name in dirs:
            if ignore_engine.is_ignored(root_rel / dir_name, is_dir=True):
                log.debug("Pruning %s", root / dir_name)
                continue
            kept_dirs.append(dir_name)
        dirs[:] = kept_dirs

    return stats
