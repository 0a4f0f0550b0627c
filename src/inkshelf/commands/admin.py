"""
Admin command handlers.

Handles: init, status, check, prune, config
"""

from inkshelf.context import AppContext
from inkshelf.core.config import get_config_path
from inkshelf.core.console import get_console, print_paths, print_table
from inkshelf.core.locking import library_lock
from inkshelf.core.output import log
from inkshelf.domain.library.database import (
    init_database,
    load_database,
    save_database,
)
from inkshelf.domain.library.scanner import find_files
from inkshelf.domain.sync import check_integrity
from inkshelf.helpers import database_names, print_status


def handle_init_command(ctx: AppContext) -> int:
    """Create an empty canonical database in the library root."""
    library = ctx.config.library
    with library_lock(ctx.root):
        init_database(library.canonical_path)
    log(f"✓ Created {library.canonical_path}")
    return 0


def _database_path(ctx: AppContext, staging: bool):
    library = ctx.config.library
    return library.staging_path if staging else library.canonical_path


def handle_status_command(ctx: AppContext, staging: bool = False) -> int:
    """Show per-status counts for the canonical (or staging) database."""
    path = _database_path(ctx, staging)
    db = load_database(path)
    print_status(db, "Staging" if staging else "Library")
    return 0


def handle_check_command(ctx: AppContext, staging: bool = False) -> int:
    """Report records whose file no longer exists. Nothing is removed."""
    path = _database_path(ctx, staging)
    db = load_database(path)
    orphans = check_integrity(ctx.root, db)
    if orphans:
        print_paths("Orphaned records", orphans, style="red")
        log(f"{len(orphans)} of {len(db)} records have no file", level="warning")
    else:
        log(f"✓ All {len(db)} records point at existing files")
    return 0


def handle_prune_command(ctx: AppContext, assume_yes: bool = False) -> int:
    """Remove canonical records whose file is gone, after confirmation."""
    path = ctx.config.library.canonical_path
    with library_lock(ctx.root):
        db = load_database(path)
        present = find_files(ctx.root, ignore=database_names(ctx))
        orphans = [r.identity for r in db.records() if r.path not in present]
        if not orphans:
            log("✓ Nothing to prune")
            return 0

        print_paths("Records without a file", orphans, style="red")
        if not assume_yes:
            answer = input(
                f"Remove {len(orphans)} records from {path.name}? (y/n) [n]: "
            )
            if answer.strip().lower() != "y":
                log("Prune cancelled")
                return 0

        for identity in orphans:
            del db[identity]
        save_database(db, path)

    log(f"✓ Removed {len(orphans)} records")
    return 0


def handle_config_command(ctx: AppContext) -> int:
    """Show the effective configuration."""
    config = ctx.config
    console = get_console()
    console.print(f"Configuration file: {get_config_path()}", highlight=False)

    print_table(
        "Settings",
        ["Setting", "Value"],
        [
            ("library.path", config.library.path),
            ("library.metadata_file", config.library.metadata_file),
            ("library.imported_file", config.library.imported_file),
            ("extraction.page_window", config.extraction.page_window),
            ("extraction.workers", config.extraction.workers),
            ("extraction.timeout_seconds", config.extraction.timeout_seconds),
            ("retrieval.endpoint", config.retrieval.endpoint),
            ("retrieval.timeout_seconds", config.retrieval.timeout_seconds),
            ("retrieval.max_concurrency", config.retrieval.max_concurrency),
            ("retrieval.allow_fallback_query", config.retrieval.allow_fallback_query),
            ("sync.target_path", config.sync.target_path or "-"),
            ("sync.time_tolerance_seconds", config.sync.time_tolerance_seconds),
            ("sync.delete", config.sync.delete),
            ("sync.exclude", ", ".join(config.sync.exclude)),
            ("logging.level", config.logging.level),
        ],
    )

    if config.styling:
        rows = [
            (kind, key, value)
            for kind, overrides in sorted(config.styling.items())
            for key, value in overrides.items()
        ]
        print_table("Styling overrides", ["Format", "Setting", "Value"], rows)
    return 0
