"""
Mirror a library tree onto a reader device.

Files flow one way, source -> target: new and stale files are copied, files
only the target has are deleted. The canonical database is the exception:
it's excluded from mirroring and merged field by field instead, after every
file operation of the run has finished, so the device keeps its own edits
and never references a file that didn't arrive.
"""

import fnmatch
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Callable, Dict, List, Optional, Sequence

from loguru import logger

from inkshelf.core.config import IMPORTED_MD_FILENAME, LOCK_FILENAME, METADATA_FILENAME
from inkshelf.core.errors import LibraryUnavailableError

from ..library.database import Database, load_database_or_empty, save_database
from ..library.merger import merge_databases
from ..library.workers import run_bounded
from .exceptions import SyncCollision

PARTIAL_SUFFIX = ".inkshelf-part"
DEFAULT_EXCLUDE = (METADATA_FILENAME, IMPORTED_MD_FILENAME, LOCK_FILENAME)


@dataclass(frozen=True)
class FileState:
    """What the comparison needs to know about one file."""

    size: int
    mtime: float


@dataclass
class SyncPlan:
    """Work for one synchronization, computed without touching the target."""

    source: Path
    target: Path
    copies: Dict[str, str] = field(default_factory=dict)  # path -> reason
    deletions: List[str] = field(default_factory=list)
    collisions: List[SyncCollision] = field(default_factory=list)
    excluded: List[str] = field(default_factory=list)
    unchanged: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.copies and not self.deletions


@dataclass
class SyncReport:
    """What a synchronization actually did."""

    plan: SyncPlan
    dry_run: bool = False
    copied: List[str] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)
    removed_dirs: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)  # path -> reason
    merged_records: int = 0

    def summary(self) -> str:
        if self.dry_run:
            return (
                f"Dry run: {len(self.plan.copies)} to copy, "
                f"{len(self.plan.deletions)} to delete, "
                f"{self.plan.unchanged} up to date"
            )
        return (
            f"Sync complete: {len(self.copied)} copied, {len(self.deleted)} deleted, "
            f"{self.plan.unchanged} up to date, {len(self.failed)} failed"
        )


def is_excluded(rel_path: str, patterns: Sequence[str]) -> bool:
    """Match glob patterns against the relative path and the bare file name."""
    name = PurePosixPath(rel_path).name
    return any(
        fnmatch.fnmatchcase(rel_path, p) or fnmatch.fnmatchcase(name, p)
        for p in patterns
    )


def walk_tree(root: Path) -> Dict[str, FileState]:
    """Every regular file under `root`, keyed by relative POSIX path.

    Raises:
        LibraryUnavailableError: If `root` itself can't be read
    """
    if not root.is_dir():
        raise LibraryUnavailableError(f"Not a directory: {root}")

    files: Dict[str, FileState] = {}

    def on_error(error: OSError) -> None:
        if Path(error.filename) == root:
            raise LibraryUnavailableError(f"Can't read {root}: {error}") from error
        logger.warning(f"Skipping unreadable directory {error.filename}: {error}")

    for dirpath, dirnames, filenames in os.walk(root, onerror=on_error):
        dirnames.sort()
        for name in sorted(filenames):
            path = Path(dirpath) / name
            try:
                st = path.stat()
            except OSError as e:
                logger.warning(f"Skipping unreadable file {path}: {e}")
                continue
            rel_path = path.relative_to(root).as_posix()
            files[rel_path] = FileState(size=st.st_size, mtime=st.st_mtime)
    return files


def plan_sync(
    source: Path,
    target: Path,
    tolerance: float = 2.0,
    exclude: Sequence[str] = DEFAULT_EXCLUDE,
    delete: bool = True,
) -> SyncPlan:
    """Compare two trees and list the copies and deletions needed.

    A target file is stale when its size differs from the source's, or its
    modification time is more than `tolerance` seconds away. Paths matching
    `exclude` are never copied or deleted.
    """
    plan = SyncPlan(source=source, target=target)
    source_files = walk_tree(source)
    target_files = walk_tree(target)

    for rel_path, src in source_files.items():
        if is_excluded(rel_path, exclude) or rel_path.endswith(PARTIAL_SUFFIX):
            plan.excluded.append(rel_path)
            continue
        dst = target_files.get(rel_path)
        if dst is None:
            plan.copies[rel_path] = "new"
            continue
        drift = dst.mtime - src.mtime
        if dst.size == src.size and abs(drift) <= tolerance:
            plan.unchanged += 1
            continue
        if drift > tolerance:
            collision = SyncCollision(rel_path, src.mtime, dst.mtime)
            plan.collisions.append(collision)
            logger.warning(str(collision))
        plan.copies[rel_path] = "size" if dst.size != src.size else "mtime"

    if delete:
        for rel_path in target_files:
            if rel_path in source_files or is_excluded(rel_path, exclude):
                continue
            plan.deletions.append(rel_path)

    logger.debug(
        f"Sync plan {source} -> {target}: {len(plan.copies)} copies, "
        f"{len(plan.deletions)} deletions, {plan.unchanged} unchanged"
    )
    return plan


def copy_file(source: Path, target: Path) -> None:
    """Copy contents and timestamps; the target path only ever holds a whole file."""
    target.parent.mkdir(parents=True, exist_ok=True)
    partial = target.with_name(target.name + PARTIAL_SUFFIX)
    try:
        shutil.copy2(source, partial)
        os.replace(partial, target)
    except OSError:
        if partial.exists():
            partial.unlink()
        raise


def prune_empty_dirs(root: Path, rel_paths: Sequence[str]) -> List[str]:
    """Remove directories left empty by deletions, up to but not including root."""
    removed = []
    candidates = set()
    for rel_path in rel_paths:
        candidates.update(PurePosixPath(rel_path).parents)
    candidates.discard(PurePosixPath("."))

    # Deepest first so a parent is checked after its children are gone
    for rel_dir in sorted(candidates, key=lambda p: len(p.parts), reverse=True):
        path = root / rel_dir
        try:
            if path.is_dir() and not any(path.iterdir()):
                path.rmdir()
                removed.append(rel_dir.as_posix())
        except OSError as e:
            logger.warning(f"Can't remove empty directory {path}: {e}")
    return removed


def merge_device_database(
    source: Path,
    target: Path,
    skip: Sequence[str] = (),
    metadata_file: str = METADATA_FILENAME,
) -> int:
    """Merge the source canonical database into the target's copy.

    Source fields win per field; records and fields only the device has are
    kept. Records whose identity is in `skip` (failed copies) aren't merged.

    Returns:
        Number of source records merged
    """
    source_db = load_database_or_empty(source / metadata_file)
    target_path = target / metadata_file
    target_db = load_database_or_empty(target_path)

    skipped = set(skip)
    transferred = Database.from_records(
        r for r in source_db.records() if r.identity not in skipped
    )
    merged = merge_databases(target_db, transferred)
    save_database(merged, target_path)
    return len(transferred)


def synchronize(
    source: Path,
    target: Path,
    tolerance: float = 2.0,
    exclude: Sequence[str] = DEFAULT_EXCLUDE,
    delete: bool = True,
    workers: int = 4,
    dry_run: bool = False,
    metadata_file: str = METADATA_FILENAME,
    progress_callback: Optional[Callable[[str], None]] = None,
) -> SyncReport:
    """Bring `target` in line with `source`.

    Args:
        source: Canonical library root
        target: Library root on the device
        tolerance: Allowed mtime difference, in seconds, for an unchanged file
        exclude: Glob patterns never copied or deleted
        delete: Remove target files the source doesn't have
        workers: Copies in flight at once
        dry_run: Compute and report the plan only
        metadata_file: Name of the canonical database in both roots
        progress_callback: Optional callback(path) after each copy

    Returns:
        SyncReport

    Raises:
        LibraryUnavailableError: If either root can't be read
        DatabaseError: If a database file can't be read or written
    """
    plan = plan_sync(source, target, tolerance, exclude, delete)
    report = SyncReport(plan=plan, dry_run=dry_run)
    if dry_run:
        for rel_path, reason in plan.copies.items():
            logger.info(f"Would copy {rel_path} ({reason})")
        for rel_path in plan.deletions:
            logger.info(f"Would delete {rel_path}")
        return report

    def work(rel_path: str) -> None:
        copy_file(source / rel_path, target / rel_path)

    for outcome in run_bounded(plan.copies, work, max_workers=workers):
        rel_path = outcome.item
        if outcome.ok:
            report.copied.append(rel_path)
            logger.debug(f"Copied {rel_path}")
            if progress_callback:
                progress_callback(rel_path)
        else:
            report.failed[rel_path] = str(outcome.error)
            logger.error(f"Can't copy {rel_path}: {outcome.error}")

    for rel_path in plan.deletions:
        try:
            (target / rel_path).unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            report.failed[rel_path] = str(e)
            logger.error(f"Can't delete {rel_path}: {e}")
            continue
        report.deleted.append(rel_path)
        logger.debug(f"Deleted {rel_path}")
    report.removed_dirs = prune_empty_dirs(target, report.deleted)

    # Only now is every file operation of this run finished
    report.merged_records = merge_device_database(
        source, target, skip=list(report.failed), metadata_file=metadata_file
    )
    logger.info(report.summary())
    return report
