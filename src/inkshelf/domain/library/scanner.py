"""
Library scanning.

Walks a library root, diffs the files found against the canonical database
and builds staging records for what is new.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Callable, Collection, Dict, List, Optional, Set

from loguru import logger

from inkshelf.core.errors import LibraryUnavailableError

from .database import Database
from .exceptions import ScanIOError
from .models import (
    DocumentRecord,
    FileInfo,
    categories_from_path,
    file_kind,
    utc_now,
)


@dataclass
class ScanResult:
    """Outcome of a scan: the new staging database plus bookkeeping."""

    staging: Database
    files_seen: int = 0
    paths: Set[str] = field(default_factory=set)  # Every file seen, relative
    added: List[str] = field(default_factory=list)
    changed: List[str] = field(default_factory=list)  # Canonical, size differs
    missing: List[str] = field(default_factory=list)  # Canonical paths with no file
    errors: List[ScanIOError] = field(default_factory=list)


def is_hidden(name: str) -> bool:
    return name.startswith(".")


def find_files(
    root: Path,
    errors: Optional[List[ScanIOError]] = None,
    ignore: Collection[str] = (),
) -> Dict[str, FileInfo]:
    """Find every visible regular file under `root`.

    Hidden files and directories (dot-prefixed, which includes the default
    database files) are skipped, as are files directly in the root whose
    name is listed in `ignore`. An unreadable entry is logged, recorded in
    `errors` and skipped; the walk continues.

    Returns:
        Mapping of relative POSIX path -> FileInfo
    """
    if errors is None:
        errors = []
    found: Dict[str, FileInfo] = {}
    pending = [root]

    while pending:
        directory = pending.pop()
        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as e:
            if directory == root:
                raise LibraryUnavailableError(
                    f"Can't read library root {root}: {e}"
                ) from e
            error = ScanIOError(directory, e)
            logger.warning(str(error))
            errors.append(error)
            continue

        subdirs = []
        for entry in entries:
            if is_hidden(entry.name):
                continue
            if directory == root and entry.name in ignore:
                continue
            try:
                if entry.is_dir(follow_symlinks=False):
                    subdirs.append(Path(entry.path))
                    continue
                if not entry.is_file():
                    continue
                size = entry.stat().st_size
            except OSError as e:
                error = ScanIOError(entry.path, e)
                logger.warning(str(error))
                errors.append(error)
                continue

            rel_path = PurePosixPath(Path(entry.path).relative_to(root)).as_posix()
            found[rel_path] = FileInfo(
                path=rel_path, kind=file_kind(rel_path), size=size
            )

        # Depth-first, alphabetical order
        pending.extend(reversed(subdirs))

    return found


def scan_library(
    root: Path,
    canonical: Database,
    ignore: Collection[str] = (),
    progress_callback: Optional[Callable[[str], None]] = None,
) -> ScanResult:
    """Scan `root` for files that are not yet in the canonical database.

    Args:
        root: Library root directory
        canonical: Canonical database (read only)
        ignore: Names of root-level files that are not documents (the databases)
        progress_callback: Optional callback(rel_path) for each new file

    Returns:
        ScanResult with a fresh staging database

    Raises:
        LibraryUnavailableError: If the root is missing or unreadable
    """
    if not root.is_dir():
        raise LibraryUnavailableError(f"Library root does not exist: {root}")

    result = ScanResult(staging=Database())
    files = find_files(root, result.errors, ignore)
    result.files_seen = len(files)
    result.paths = set(files)

    known_paths = {record.path: record for record in canonical.records()}
    now = utc_now()

    for rel_path, file_info in files.items():
        known = known_paths.get(rel_path)
        if known is None:
            if rel_path in canonical:
                # Hand-edited record whose file.path points elsewhere
                continue
            record = DocumentRecord(
                identity=rel_path,
                file=file_info,
                added=now,
                categories=categories_from_path(rel_path),
            )
            result.staging.add(record)
            result.added.append(rel_path)
            if progress_callback:
                progress_callback(rel_path)
        elif known.file is not None and known.file.size != file_info.size:
            # Reported only: an identity is never in both databases
            result.changed.append(rel_path)

    result.missing = sorted(
        record.identity for record in canonical.records() if record.path not in files
    )

    logger.info(
        f"Scan stats - files: {result.files_seen}, new: {len(result.added)}, "
        f"changed: {len(result.changed)}, missing: {len(result.missing)}, "
        f"errors: {len(result.errors)}"
    )
    return result
