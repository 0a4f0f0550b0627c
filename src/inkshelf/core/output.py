"""
Unified output system using Loguru.
User-facing messages go to the console and the log file; diagnostics go to
the log file only.
"""

import sys
import threading
from pathlib import Path
from typing import Optional

from loguru import logger

from .config import LoggingConfig, get_data_dir

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{line} | {message}"

_print_lock = threading.Lock()


def get_log_file_path() -> Path:
    """Get the path to the log file."""
    return get_data_dir() / "inkshelf.log"


def setup_loguru(
    log_file: Optional[Path] = None,
    level: str = "INFO",
    console_output: bool = False,
) -> None:
    """
    Configure loguru for file logging, optionally mirrored to stderr.

    Args:
        log_file: Path to log file (default: ~/.local/share/inkshelf/inkshelf.log)
        level: Minimum level for file logging (DEBUG, INFO, WARNING, ERROR)
        console_output: Also send diagnostics to stderr
    """
    log_file = log_file if log_file else get_log_file_path()
    log_file.parent.mkdir(parents=True, exist_ok=True)

    # Remove default handler
    logger.remove()

    logger.add(
        log_file,
        rotation="10 MB",
        retention=5,  # Keep 5 backup files
        level=level,
        format=LOG_FORMAT,
        enqueue=False,  # Synchronous writes (thread-safe but blocking)
    )

    if console_output:
        logger.add(sys.stderr, level=level, format="{level}: {message}")

    logger.info(f"Loguru initialized: {log_file} (level={level})")


def setup_from_config(config: LoggingConfig) -> None:
    """Configure logging from the [logging] configuration section."""
    log_file = Path(config.log_file) if config.log_file else None
    setup_loguru(log_file, level=config.level, console_output=config.console_output)


def log(message: str, level: str = "info") -> None:
    """
    Unified logging: writes to the log file AND prints for the user.

    Use this instead of print() for user-facing messages that should also be
    logged. Worker threads share the console, so printing is serialized.

    Args:
        message: User-facing message
        level: Log level (debug, info, warning, error)
    """
    log_func = getattr(logger, level)
    log_func(message)

    if level == "debug":
        return

    with _print_lock:
        stream = sys.stderr if level in ("warning", "error") else sys.stdout
        print(message, file=stream)
