from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class CopyOutcome(Enum):
    COPIED = "copied"
    NAME_TOO_LONG = "name_too_long"
    FAILED = "failed"


@dataclass(slots=True)
class CopyOptions:
    continue_on_error: bool = True
    follow_symlinks: bool = False
    exclude_patterns: list[str] = field(default_factory=list)


@dataclass(slots=True)
class FileCopyResult:
    source: Path
    destination: Path
    size: int
    outcome: CopyOutcome
    error: OSError | None = None


@dataclass(slots=True)
class CopyStats:
    bytes_transferred: int = 0
    copied: int = 0
    skipped: int = 0
    name_too_long: int = 0
    failed: int = 0

    def absorb(self, result: FileCopyResult) -> None:
        if result.outcome is CopyOutcome.COPIED:
            self.copied += 1
            self.bytes_transferred += result.size
        elif result.outcome is CopyOutcome.NAME_TOO_LONG:
            self.name_too_long += 1
        else:
            self.failed += 1

    def merge(self, other: CopyStats) -> None:
        self.bytes_transferred += other.bytes_transferred
        self.copied += other.copied
        self.skipped += other.skipped
        self.name_too_long += other.name_too_long
        self.failed += other.failed


@dataclass(slots=True)
class BackupSummary:
    """Aggregate of one or two copy passes.

    ``passes`` maps the destination subtree name (``7Profiles``/``Root``, or
    ``"."`` for a basic backup) to the stats of that pass.
    """

    mode: str
    passes: dict[str, CopyStats] = field(default_factory=dict)

    def _total(self) -> CopyStats:
        total = CopyStats()
        for stats in self.passes.values():
            total.merge(stats)
        return total

    @property
    def bytes_transferred(self) -> int:
        return self._total().bytes_transferred

    @property
    def copied(self) -> int:
        return self._total().copied

    @property
    def name_too_long(self) -> int:
        return self._total().name_too_long

    @property
    def failed(self) -> int:
        return self._total().failed
