from __future__ import annotations

import argparse
from pathlib import Path
import sys
from typing import Callable

from profilebackup.config import BackupConfig, load_config
from profilebackup.orchestrator import MODE_BASIC, MODE_PROFILE, is_profile_volume
from profilebackup.run_service import (
    EXIT_CANCELLED,
    EXIT_INVALID_CONFIG,
    EXIT_RUNTIME_ERROR,
    EXIT_SUCCESS,
    SessionRequest,
    backup_dir_for,
    run_backup_session,
)


Prompt = Callable[[str], str]


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="profilebackup", description="Best-effort file tree backup")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Back up a volume, prompting for missing values")
    run_parser.add_argument("source", nargs="?", type=Path, help="Source mountpoint")
    run_parser.add_argument("--destination-root", type=Path)
    run_parser.add_argument("--ticket")
    run_parser.add_argument("--name", help="Customer name (last, first)")
    run_parser.add_argument("--config", type=Path)
    run_parser.add_argument("--yes", action="store_true", help="Reuse an existing backup directory")
    run_parser.add_argument("--stop-on-error", action="store_true")
    run_parser.add_argument("--no-fix-attributes", action="store_true")
    run_parser.add_argument("--no-sync", action="store_true")
    run_parser.add_argument("--verbose", action="store_true")

    detect_parser = subparsers.add_parser("detect", help="Print which backup mode a source gets")
    detect_parser.add_argument("source", type=Path)

    validate_parser = subparsers.add_parser("validate-config", help="Validate config")
    validate_parser.add_argument("--config", required=True, type=Path)

    return parser


def _ask_directory(label: str, default: Path | None, prompt: Prompt) -> Path:
    shown = default if default is not None else ""
    while True:
        answer = prompt(f"{label} ({shown}): ").strip()
        candidate = Path(answer) if answer else default
        if candidate is not None and candidate.is_dir():
            return candidate
        print(f"{label} {candidate or ''} does not exist", file=sys.stderr)


def _ask_text(label: str, prompt: Prompt) -> str:
    while True:
        answer = prompt(f"{label}: ").strip()
        if answer:
            return answer
        print("Input must not be blank", file=sys.stderr)


def _resolve_request(args: argparse.Namespace, config: BackupConfig, prompt: Prompt) -> SessionRequest:
    source = args.source
    if source is None or not source.is_dir():
        if source is not None:
            print(f"Source {source} does not exist", file=sys.stderr)
        source = _ask_directory("Source mountpoint", args.source, prompt)

    destination_root = args.destination_root
    if destination_root is None or not destination_root.is_dir():
        if destination_root is not None:
            print(f"Destination {destination_root} does not exist", file=sys.stderr)
        destination_root = _ask_directory("Location", destination_root or config.destination_root, prompt)

    ticket = args.ticket.strip() if args.ticket and args.ticket.strip() else _ask_text("Ticket number", prompt)
    name = args.name.strip() if args.name and args.name.strip() else _ask_text("Customer name (last, first)", prompt)

    return SessionRequest(
        source_root=source,
        destination_root=destination_root,
        ticket=ticket,
        name=name,
        verbose=args.verbose,
    )


def cmd_run(args: argparse.Namespace, prompt: Prompt) -> int:
    try:
        config = load_config(args.config)
    except Exception as exc:
        print(f"Invalid config: {exc}", file=sys.stderr)
        return EXIT_INVALID_CONFIG

    if args.stop_on_error:
        config.continue_on_error = False
    if args.no_fix_attributes:
        config.fix_attributes = False
    if args.no_sync:
        config.sync_after_backup = False

    try:
        request = _resolve_request(args, config, prompt)
    except (EOFError, KeyboardInterrupt):
        print("Terminating...", file=sys.stderr)
        return EXIT_CANCELLED

    backup_dir = backup_dir_for(request.destination_root, request.ticket, request.name)
    if backup_dir.is_dir() and not args.yes:
        try:
            answer = prompt(f"Destination directory {backup_dir} already exists, continue? (y/N) ")
        except (EOFError, KeyboardInterrupt):
            answer = ""
        if answer.strip().lower() != "y":
            print("Terminating...", file=sys.stderr)
            return EXIT_CANCELLED

    exit_code, _ = run_backup_session(request, config)
    return exit_code


def cmd_detect(source: Path) -> int:
    if not source.is_dir():
        print(f"Source {source} does not exist", file=sys.stderr)
        return EXIT_RUNTIME_ERROR
    print(MODE_PROFILE if is_profile_volume(source) else MODE_BASIC)
    return EXIT_SUCCESS


def cmd_validate(config_path: Path) -> int:
    try:
        config = load_config(config_path)
    except Exception as exc:
        print(f"Invalid config: {exc}", file=sys.stderr)
        return EXIT_INVALID_CONFIG

    print(f"Valid config: {config_path}")
    print(f"  destinationRoot={config.destination_root or '(none)'}")
    print(f"  logFileName={config.log_file_name}")
    print(f"  continueOnError={str(config.continue_on_error).lower()}")
    print(f"  followSymlinks={str(config.follow_symlinks).lower()}")
    print(f"  excludes=[{', '.join(config.excludes)}]")
    print(f"  fixAttributes={str(config.fix_attributes).lower()}")
    print(f"  syncAfterBackup={str(config.sync_after_backup).lower()}")
    return EXIT_SUCCESS


def main(argv: list[str] | None = None, prompt: Prompt = input) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command == "run":
        return cmd_run(args, prompt)
    if args.command == "detect":
        return cmd_detect(args.source)
    if args.command == "validate-config":
        return cmd_validate(args.config)

    parser.print_help()
    return EXIT_RUNTIME_ERROR


if __name__ == "__main__":
    raise SystemExit(main())
