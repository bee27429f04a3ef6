import errno
import logging
from pathlib import Path

from profilebackup import tree_copier
from profilebackup.config import BackupConfig
from profilebackup.logging_setup import SESSION_LOGGER_NAME
from profilebackup.run_service import (
    EXIT_PARTIAL_FAILURES,
    EXIT_RUNTIME_ERROR,
    EXIT_SUCCESS,
    SessionRequest,
    megabytes,
    run_backup_session,
)


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def _config() -> BackupConfig:
    return BackupConfig(destination_root=None, fix_attributes=False, sync_after_backup=False)


def test_session_writes_backup_into_ticket_directory(tmp_path: Path) -> None:
    source = tmp_path / "volume"
    _write(source / "Users" / "alice" / "a.txt", "abc")
    _write(source / "boot.ini", "x")
    request = SessionRequest(
        source_root=source,
        destination_root=tmp_path / "dest",
        ticket="4711",
        name="Doe, Jane",
    )

    exit_code, summary = run_backup_session(request, _config())

    backup_dir = tmp_path / "dest" / "4711_Doe, Jane"
    assert exit_code == EXIT_SUCCESS
    assert summary is not None
    assert summary.bytes_transferred == 4
    assert (backup_dir / "7Profiles" / "alice" / "a.txt").exists()
    assert (backup_dir / "Root" / "boot.ini").exists()

    log_text = (backup_dir / "backup.log").read_text(encoding="utf-8")
    assert "Windows primary partition detected" in log_text
    assert "Transferred 0MB(s)" in log_text
    assert "Backup complete, verify size!" in log_text
    assert logging.getLogger(SESSION_LOGGER_NAME).handlers == []


def test_session_reports_partial_failures(tmp_path: Path) -> None:
    source = tmp_path / "volume"
    _write(source / "sub" / "inner.txt", "inner")
    _write(source / "top.txt", "top")
    request = SessionRequest(source_root=source, destination_root=tmp_path / "dest", ticket="1", name="x")
    _write(request.backup_dir / "sub", "blocks the directory")

    exit_code, summary = run_backup_session(request, _config())

    assert exit_code == EXIT_PARTIAL_FAILURES
    assert summary is not None
    assert summary.failed == 1


def test_session_with_missing_source_is_runtime_error(tmp_path: Path) -> None:
    request = SessionRequest(
        source_root=tmp_path / "missing",
        destination_root=tmp_path / "dest",
        ticket="1",
        name="x",
    )

    exit_code, summary = run_backup_session(request, _config())

    assert exit_code == EXIT_RUNTIME_ERROR
    assert summary is None
    assert "Fatal error" in (request.backup_dir / "backup.log").read_text(encoding="utf-8")


def test_session_uses_injected_logger(tmp_path: Path, caplog) -> None:
    source = tmp_path / "volume"
    _write(source / "a.txt", "a")
    request = SessionRequest(source_root=source, destination_root=tmp_path / "dest", ticket="2", name="y")
    caplog.set_level(logging.INFO, logger="tests.session")

    exit_code, _ = run_backup_session(request, _config(), logger=logging.getLogger("tests.session"))

    assert exit_code == EXIT_SUCCESS
    assert not (request.backup_dir / "backup.log").exists()
    assert "Backup complete, verify size!" in caplog.messages


def test_megabytes_truncates() -> None:
    assert megabytes(0) == 0
    assert megabytes(1024 * 1024 - 1) == 0
    assert megabytes(5 * 1024 * 1024 + 10) == 5


def test_session_log_does_not_collide_with_copied_file(tmp_path: Path) -> None:
    source = tmp_path / "volume"
    _write(source / "backup.log", "customer's own log\n")
    _write(source / "z.txt", "z")
    request = SessionRequest(source_root=source, destination_root=tmp_path / "dest", ticket="77", name="x")

    exit_code, summary = run_backup_session(request, _config())

    assert exit_code == EXIT_SUCCESS
    assert summary is not None
    assert summary.copied == 2
    assert (request.backup_dir / "backup.log").read_text(encoding="utf-8") == "customer's own log\n"
    session_log = (request.backup_dir / "backup-77.log").read_text(encoding="utf-8")
    assert "z.txt" in session_log
    assert "Transferred 0MB(s)" in session_log
    assert "Backup complete, verify size!" in session_log


def test_aborted_session_reports_every_finished_pass(tmp_path: Path, monkeypatch) -> None:
    source = tmp_path / "volume"
    _write(source / "Users" / "alice" / "a.txt", "abcde")
    _write(source / "Windows" / "broken.sys", "xx")
    request = SessionRequest(source_root=source, destination_root=tmp_path / "dest", ticket="3", name="z")
    original = tree_copier._safe_copy

    def fake_safe_copy(source_file: Path, destination_file: Path):
        if source_file.name == "broken.sys":
            raise OSError(errno.EIO, "Input/output error")
        return original(source_file, destination_file)

    monkeypatch.setattr(tree_copier, "_safe_copy", fake_safe_copy)
    config = _config()
    config.continue_on_error = False

    exit_code, summary = run_backup_session(request, config)

    assert exit_code == EXIT_RUNTIME_ERROR
    assert summary is not None
    assert summary.bytes_transferred == 5
    assert "before aborting" in (request.backup_dir / "backup.log").read_text(encoding="utf-8")
