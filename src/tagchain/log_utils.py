"""Logging setup shared by the CLI entry points.

Everything goes to ~/.tagchain/debug.log at DEBUG; the console gets INFO and
above unless the caller owns the terminal (the TUI).
"""

import logging
from collections import deque
from pathlib import Path
from typing import Optional

LOG_DIR = Path.home() / ".tagchain"
LOG_FILE = LOG_DIR / "debug.log"

FILE_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s'


def configure_logging(
    log_file: Optional[Path] = None,
    console: bool = True,
    level: int = logging.INFO,
) -> Path:
    """Configure the root logger.

    Args:
        log_file: Debug log path. Defaults to ~/.tagchain/debug.log
        console: Also log to stderr.
        level: Console log level.

    Returns:
        Path of the debug log.
    """
    log_file = log_file or LOG_FILE
    log_file.parent.mkdir(parents=True, exist_ok=True)

    # Set up file handler with detailed format
    file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))

    # Configure root logger directly (basicConfig is a no-op if already configured)
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    for h in root_logger.handlers[:]:
        root_logger.removeHandler(h)
    root_logger.addHandler(file_handler)

    if console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(logging.Formatter('%(message)s'))
        root_logger.addHandler(console_handler)

    # urllib3 logs every connection at DEBUG
    logging.getLogger("urllib3").setLevel(logging.INFO)
    return log_file


def tail(log_file: Optional[Path] = None, lines: int = 20) -> list[str]:
    """Last lines of the debug log, empty if it doesn't exist."""
    log_file = log_file or LOG_FILE
    if not log_file.exists():
        return []
    with open(log_file, "r", encoding="utf-8", errors="ignore") as f:
        return [line.rstrip("\n") for line in deque(f, maxlen=lines)]
