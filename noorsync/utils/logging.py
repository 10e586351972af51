"""Shared logging setup for the CLI and embedding applications."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Chatty third-party loggers pulled in by the Supabase client
NOISY_LOGGERS = ("httpx", "httpcore", "hpack", "postgrest")


def setup_logging(
    level: int | str = logging.INFO,
    *,
    log_dir: Path | str | None = None,
    log_name: str = "noorsync",
    mode: str = "a",
) -> logging.Logger:
    """Configure logging with a stdout handler and an optional file handler.

    Args:
        level: Logging level, as an int or a name such as "DEBUG".
        log_dir: Directory for the log file. No file is written when None.
        log_name: Base name of the log file and of the returned logger.
        mode: File open mode ("w" to overwrite, "a" to append).

    Returns:
        The ``noorsync`` package logger.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    log_file: Path | None = None
    if log_dir is not None:
        log_dir = Path(log_dir)
        log_file = log_dir / f"{log_name}.log"
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(log_file, mode=mode))
        except OSError as exc:
            print(f"Warning: could not open log file {log_file}: {exc}", flush=True)
            log_file = None

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger = logging.getLogger(log_name)
    if log_file is not None:
        logger.info("Logging to %s", log_file)
    return logger
