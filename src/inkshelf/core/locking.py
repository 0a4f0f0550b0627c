"""Advisory per-library lock.

Only one pipeline invocation may mutate a library root at a time; the lock
file lives in the root itself so it travels with the library.
"""

import contextlib
import logging
from pathlib import Path
from typing import Iterator

from filelock import FileLock, Timeout
from loguru import logger

from .config import LOCK_FILENAME
from .errors import LibraryLockedError, LibraryUnavailableError

logging.getLogger("filelock").setLevel(logging.WARNING)


@contextlib.contextmanager
def library_lock(root: Path, timeout: float = 0.0) -> Iterator[Path]:
    """Hold the library lock for the duration of the block.

    Args:
        root: Library root directory
        timeout: Seconds to wait for a concurrent run to finish

    Raises:
        LibraryUnavailableError: If `root` is not a directory
        LibraryLockedError: If the lock is still held after `timeout`
    """
    if not root.is_dir():
        raise LibraryUnavailableError(f"Library root does not exist: {root}")

    lock_path = root / LOCK_FILENAME
    lock = FileLock(str(lock_path), timeout=timeout)
    try:
        lock.acquire()
    except Timeout as e:
        raise LibraryLockedError(root) from e

    logger.debug(f"Acquired library lock {lock_path}")
    try:
        yield lock_path
    finally:
        lock.release()
        logger.debug(f"Released library lock {lock_path}")
