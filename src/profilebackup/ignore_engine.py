from __future__ import annotations

from pathlib import Path, PurePath
from typing import Iterable

import pathspec


def _normalize(relative_path: str | PurePath) -> str:
    unix_path = PurePath(relative_path).as_posix()
    return unix_path.rstrip("/") or "."


class IgnoreEngine:
    """Decides which entries below a source root are left out of a copy pass.

    ``ignore_paths`` are exact paths relative to the source root; a match on a
    directory removes its whole subtree. ``patterns`` are optional
    gitignore-style excludes applied on top.
    """

    def __init__(self, ignore_paths: Iterable[str | PurePath] = (), patterns: Iterable[str] = ()) -> None:
        self._ignored = {_normalize(path) for path in ignore_paths}
        self._patterns = [pattern for pattern in patterns if pattern.strip()]
        self._spec = pathspec.PathSpec.from_lines("gitignore", self._patterns)

    def is_ignored(self, relative_path: Path, is_dir: bool = False) -> bool:
        unix_path = _normalize(relative_path)
        if unix_path in self._ignored:
            return True
        if not self._patterns:
            return False
        candidate = f"{unix_path}/" if is_dir else unix_path
        return self._spec.match_file(candidate)


def build_ignore_engine(ignore: Iterable[str | PurePath], patterns: Iterable[str] = ()) -> IgnoreEngine:
    return IgnoreEngine(ignore_paths=ignore, patterns=patterns)
