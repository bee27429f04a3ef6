from __future__ import annotations

from profilebackup.models import BackupSummary, CopyStats, FileCopyResult


class BackupError(Exception):
    pass


class SourceRootError(BackupError, ValueError):
    pass


class CopyAborted(BackupError):
    """Raised when a failed file stops the walk.

    ``stats`` covers the pass that stopped; ``summary`` is filled in by the
    orchestrator with every pass run so far, the stopped one included.
    """

    def __init__(self, result: FileCopyResult, stats: CopyStats) -> None:
        super().__init__(f"Copy aborted at {result.source}: {result.error}")
        self.result = result
        self.stats = stats
        self.summary: BackupSummary | None = None
