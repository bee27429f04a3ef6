from __future__ import annotations

import logging
from pathlib import Path
import sys


SESSION_LOGGER_NAME = "profilebackup.session"


def configure_session_logging(log_file: Path, verbose: bool = False) -> logging.Logger:
    """Log to ``log_file`` and to stderr for the duration of one backup run.

    Handlers stay attached until :func:`close_session_logging` is called.
    """
    logger = logging.getLogger(SESSION_LOGGER_NAME)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    logger.propagate = False
    close_session_logging(logger)

    log_file.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
    file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
    logger.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(console_handler)

    return logger


def close_session_logging(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
