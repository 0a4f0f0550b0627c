"""
Sync command handler.

Mirrors the library onto a reader device and merges the library database
into the device's copy.
"""

import contextlib
from pathlib import Path
from typing import Optional

from loguru import logger

from inkshelf.context import AppContext
from inkshelf.core.console import print_paths
from inkshelf.core.errors import LibraryUnavailableError
from inkshelf.core.locking import library_lock
from inkshelf.core.output import log
from inkshelf.domain.library.database import load_database_or_empty
from inkshelf.domain.sync import check_integrity, synchronize


def handle_sync_command(
    ctx: AppContext,
    target: Optional[str] = None,
    dry_run: bool = False,
    delete: Optional[bool] = None,
    tolerance: Optional[float] = None,
) -> int:
    """Synchronize the library onto `target` (or [sync] target_path).

    Args:
        ctx: Application context
        target: Device library root; overrides the configured one
        dry_run: Only report what would change
        delete: Remove device files absent from the library (default from config)
        tolerance: Allowed mtime difference in seconds (default from config)

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    sync_config = ctx.config.sync
    target = target or sync_config.target_path
    if not target:
        log("No sync target: pass one or set [sync] target_path", level="error")
        return 1

    target_root = Path(target).expanduser()
    if not target_root.is_dir():
        raise LibraryUnavailableError(f"Sync target does not exist: {target_root}")
    if target_root.resolve() == ctx.root.resolve():
        log("Sync target is the library itself", level="error")
        return 1

    exclude = list(sync_config.exclude)
    library = ctx.config.library
    for name in (library.metadata_file, library.imported_file):
        if name not in exclude:
            exclude.append(name)

    logger.info(f"Syncing {ctx.root} -> {target_root} (dry_run={dry_run})")
    with contextlib.ExitStack() as stack:
        stack.enter_context(library_lock(ctx.root))
        if not dry_run:
            stack.enter_context(library_lock(target_root))
        report = synchronize(
            ctx.root,
            target_root,
            tolerance=(
                sync_config.time_tolerance_seconds if tolerance is None else tolerance
            ),
            exclude=exclude,
            delete=sync_config.delete if delete is None else delete,
            workers=sync_config.workers,
            dry_run=dry_run,
            metadata_file=library.metadata_file,
        )

    if dry_run:
        print_paths("Would copy", list(report.plan.copies), style="green")
        print_paths("Would delete", report.plan.deletions, style="red")
    for collision in report.plan.collisions:
        log(str(collision), level="warning")
    for path, reason in report.failed.items():
        log(f"Failed: {path} ({reason})", level="error")
    log(report.summary(), level="warning" if report.failed else "info")

    if not dry_run:
        device_db = load_database_or_empty(target_root / library.metadata_file)
        orphans = check_integrity(target_root, device_db)
        print_paths("Device records without a file", orphans)
    return 0
