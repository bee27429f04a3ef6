from __future__ import annotations

import logging
import os
from pathlib import Path
import stat
import subprocess

from profilebackup.config import platform_name


OWNER_READ_WRITE = stat.S_IRUSR | stat.S_IWUSR


def _add_owner_read_write(path: Path, log: logging.Logger) -> bool:
    try:
        mode = path.lstat().st_mode
        if stat.S_ISLNK(mode):
            return True
        if mode & OWNER_READ_WRITE != OWNER_READ_WRITE:
            os.chmod(path, stat.S_IMODE(mode) | OWNER_READ_WRITE)
    except OSError as exc:
        log.warning("Could not fix attributes of %s: %s", path, exc)
        return False
    return True


def fix_attributes(backup_dir: Path, logger: logging.Logger | None = None) -> int:
    """Unhide copied files and give the owner read/write access.

    Returns the number of entries that could not be updated.
    """
    log = logger or logging.getLogger("profilebackup.finalize")

    if platform_name() == "windows":
        result = subprocess.run(
            ["attrib", "-R", "-S", "-H", str(backup_dir / "*"), "/S", "/D"],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            text=True,
        )
        if result.returncode != 0:
            log.warning("attrib exited with %s: %s", result.returncode, result.stderr.strip())
            return 1
        return 0

    failures = 0
    if not _add_owner_read_write(backup_dir, log):
        failures += 1
    for root_str, dirs, files in os.walk(backup_dir):
        root = Path(root_str)
        for name in dirs + files:
            if not _add_owner_read_write(root / name, log):
                failures += 1
    return failures


def sync_filesystems(logger: logging.Logger | None = None) -> bool:
    log = logger or logging.getLogger("profilebackup.finalize")
    if not hasattr(os, "sync"):
        log.debug("os.sync is not available on this platform")
        return False
    os.sync()
    return True
