from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import logging
import os

from profilebackup.config import BackupConfig, platform_name
from profilebackup.errors import BackupError, CopyAborted
from profilebackup.finalize import fix_attributes, sync_filesystems
from profilebackup.logging_setup import close_session_logging, configure_session_logging
from profilebackup.models import BackupSummary
from profilebackup.orchestrator import backup, is_profile_volume


EXIT_SUCCESS = 0
EXIT_RUNTIME_ERROR = 1
EXIT_PARTIAL_FAILURES = 2
EXIT_INVALID_CONFIG = 3
EXIT_CANCELLED = 4

B_IN_KB = 1024


@dataclass(slots=True)
class SessionRequest:
    source_root: Path
    destination_root: Path
    ticket: str
    name: str
    verbose: bool = False

    @property
    def backup_dir(self) -> Path:
        return backup_dir_for(self.destination_root, self.ticket, self.name)


def backup_dir_for(destination_root: Path, ticket: str, name: str) -> Path:
    return destination_root / f"{ticket.strip()}_{name.strip()}"


def session_log_path(request: SessionRequest, config: BackupConfig) -> Path:
    """Pick a log file inside the backup directory that no copied file lands on.

    A basic backup mirrors the source root into the backup directory, so a
    source file named like the log would be renamed over the open log.
    """
    backup_dir = request.backup_dir
    name = config.log_file_name
    if is_profile_volume(request.source_root) or not os.path.lexists(request.source_root / name):
        return backup_dir / name

    stem, suffix = Path(name).stem, Path(name).suffix
    candidate = f"{stem}-{request.ticket.strip()}{suffix}"
    counter = 1
    while os.path.lexists(request.source_root / candidate):
        candidate = f"{stem}-{request.ticket.strip()}-{counter}{suffix}"
        counter += 1
    return backup_dir / candidate


def megabytes(byte_count: int) -> int:
    return byte_count // B_IN_KB // B_IN_KB


def _finish(config: BackupConfig, backup_dir: Path, log: logging.Logger) -> None:
    if config.fix_attributes:
        log.info("Fixing file attributes...")
        failures = fix_attributes(backup_dir, logger=log)
        if failures:
            log.warning("Attributes could not be fixed on %s entries", failures)

    if config.sync_after_backup and platform_name() != "windows":
        log.info("Syncing unwritten data...")
        sync_filesystems(logger=log)


def run_backup_session(
    request: SessionRequest,
    config: BackupConfig,
    logger: logging.Logger | None = None,
) -> tuple[int, BackupSummary | None]:
    """Run one complete backup into ``<destination>/<ticket>_<name>``.

    Unless a logger is injected, a session log is written inside the backup
    directory alongside console output. Handlers created here are closed
    before returning.
    """
    backup_dir = request.backup_dir
    try:
        backup_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        logging.getLogger("profilebackup.run").error("Cannot create backup directory %s: %s", backup_dir, exc)
        return EXIT_RUNTIME_ERROR, None

    owns_logger = logger is None
    log_path = session_log_path(request, config)
    log = logger or configure_session_logging(log_path, verbose=request.verbose)

    try:
        if log_path.name != config.log_file_name:
            log.info("Source already has a %s, session log written to %s", config.log_file_name, log_path)
        log.info("Backing up %s to %s", request.source_root, backup_dir)
        try:
            summary = backup(request.source_root, backup_dir, options=config.copy_options(), logger=log)
        except CopyAborted as exc:
            log.error("Backup aborted: %s", exc)
            partial = exc.summary.bytes_transferred if exc.summary is not None else exc.stats.bytes_transferred
            log.info("Transferred %sMB(s) before aborting", megabytes(partial))
            return EXIT_RUNTIME_ERROR, exc.summary
        except (BackupError, ValueError, OSError) as exc:
            log.error("Fatal error: %s", exc)
            return EXIT_RUNTIME_ERROR, None

        log.info("Transferred %sMB(s)", megabytes(summary.bytes_transferred))
        if summary.name_too_long:
            log.info("%s file(s) skipped because their names were too long", summary.name_too_long)
        if summary.failed:
            log.warning("%s file(s) failed to copy", summary.failed)

        try:
            _finish(config, backup_dir, log)
        except OSError as exc:
            log.error("Post-copy step failed: %s", exc)
            return EXIT_RUNTIME_ERROR, summary

        log.info("Backup complete, verify size!")
        exit_code = EXIT_PARTIAL_FAILURES if summary.failed else EXIT_SUCCESS
        return exit_code, summary
    finally:
        if owns_logger:
            close_session_logging(log)
