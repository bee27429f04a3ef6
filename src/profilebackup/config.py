from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
import sys
from typing import Any

import json
import yaml

from profilebackup.models import CopyOptions


DEFAULT_LOG_FILE_NAME = "backup.log"


def platform_name() -> str:
    if sys.platform.startswith(("win32", "cygwin", "msys")):
        return "windows"
    if sys.platform == "darwin":
        return "mac"
    if sys.platform.startswith("linux"):
        return "linux"
    return "unix"


def default_destination_root() -> Path | None:
    name = platform_name()
    if name == "windows":
        return Path("X:\\")
    if name == "linux":
        return Path("/zfspool/")
    return None


@dataclass(slots=True)
class BackupConfig:
    destination_root: Path | None = field(default_factory=default_destination_root)
    log_file_name: str = DEFAULT_LOG_FILE_NAME
    continue_on_error: bool = True
    follow_symlinks: bool = False
    excludes: list[str] = field(default_factory=list)
    fix_attributes: bool = True
    sync_after_backup: bool = True

    def copy_options(self) -> CopyOptions:
        return CopyOptions(
            continue_on_error=self.continue_on_error,
            follow_symlinks=self.follow_symlinks,
            exclude_patterns=list(self.excludes),
        )


_PARSERS = {
    ".yml": yaml.safe_load,
    ".yaml": yaml.safe_load,
    ".json": json.loads,
}


def _path_setting(raw: dict[str, Any], key: str, default: Path | None) -> Path | None:
    value = raw.get(key)
    if value is None:
        return default
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{key} must be a non-empty string path")
    return Path(value).expanduser()


def _bool_setting(raw: dict[str, Any], key: str, default: bool) -> bool:
    value = raw.get(key)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ValueError(f"{key} must be a boolean")
    return value


def _patterns_setting(raw: dict[str, Any], key: str) -> list[str]:
    value = raw.get(key) or []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ValueError(f"{key} must be a list of strings")
    return [item for item in value if item.strip()]


def _file_name_setting(raw: dict[str, Any], key: str, default: str) -> str:
    value = raw.get(key)
    if value is None:
        return default
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{key} must be a non-empty string")
    if Path(value).name != value:
        raise ValueError(f"{key} must be a bare file name, got: {value}")
    return value


def _read_settings(config_path: Path) -> dict[str, Any]:
    parse = _PARSERS.get(config_path.suffix.lower())
    if parse is None:
        raise ValueError("Config file must be .yaml/.yml or .json")
    if not config_path.is_file():
        raise ValueError(f"Config file does not exist: {config_path}")

    # An empty YAML document means "all defaults".
    loaded = parse(config_path.read_text(encoding="utf-8")) or {}
    if not isinstance(loaded, dict):
        raise ValueError("Config root must be an object")
    return loaded


def load_config(config_path: Path | None) -> BackupConfig:
    if config_path is None:
        return BackupConfig()

    raw = _read_settings(config_path)

    return BackupConfig(
        destination_root=_path_setting(raw, "destinationRoot", default=default_destination_root()),
        log_file_name=_file_name_setting(raw, "logFileName", default=DEFAULT_LOG_FILE_NAME),
        continue_on_error=_bool_setting(raw, "continueOnError", default=True),
        follow_symlinks=_bool_setting(raw, "followSymlinks", default=False),
        excludes=_patterns_setting(raw, "excludes"),
        fix_attributes=_bool_setting(raw, "fixAttributes", default=True),
        sync_after_backup=_bool_setting(raw, "syncAfterBackup", default=True),
    )
