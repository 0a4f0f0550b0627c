"""
Import pipeline command handlers.

Handles: import, extract-isbn, extract-metadata, retrieve, consolidate,
rename, finalize

Every stage works on the staging database and can be re-run on its own.
Handlers return a process exit code; per-document failures never make it
non-zero.
"""

from loguru import logger

from inkshelf.context import AppContext
from inkshelf.core.console import print_paths
from inkshelf.core.locking import library_lock
from inkshelf.core.output import log
from inkshelf.domain.library import consolidate, extractor, merger, retriever
from inkshelf.domain.library.database import (
    load_database,
    load_database_or_empty,
    save_database,
)
from inkshelf.domain.library.scanner import scan_library
from inkshelf.helpers import database_names, print_status, report_pass


def handle_import_command(ctx: AppContext, keep: bool = False) -> int:
    """Scan the library for new files and write them to a fresh staging database.

    Args:
        ctx: Application context
        keep: Merge the scan into the existing staging database instead, so
            staged records keep what earlier stages found for them. Staged
            records whose file has since disappeared are dropped.
    """
    library = ctx.config.library
    with library_lock(ctx.root):
        canonical = load_database(library.canonical_path)

        log(f"Scanning {ctx.root} for new documents...")
        scan = scan_library(ctx.root, canonical, ignore=database_names(ctx))

        staging = scan.staging
        if keep:
            existing = load_database_or_empty(library.staging_path)
            staging = merger.merge_databases(existing, scan.staging)
            vanished = [
                r.identity for r in staging.records() if r.path not in scan.paths
            ]
            for identity in vanished:
                logger.info(f"Dropping staged record with no file: {identity}")
                del staging[identity]

        save_database(staging, library.staging_path)

    log(f"✓ {len(scan.added)} new, {len(staging)} staged in {library.imported_file}")
    if scan.changed:
        print_paths("Library files whose size changed", scan.changed)
    for error in scan.errors:
        log(f"Skipped: {error}", level="warning")
    if scan.missing:
        log(
            f"{len(scan.missing)} library records have no file "
            "(see 'inkshelf prune')",
            level="warning",
        )
    print_status(staging, "Staging")
    return 0


def handle_extract_isbn_command(ctx: AppContext) -> int:
    """Search the leading pages of staged documents for an ISBN."""
    extraction = ctx.config.extraction
    staging_path = ctx.config.library.staging_path
    with library_lock(ctx.root):
        staging = load_database(staging_path)
        log(f"Extracting ISBNs (first {extraction.page_window} pages)...")
        result = extractor.extract_identifiers(
            ctx.root,
            staging,
            ctx.get_text_layer(),
            window=extraction.page_window,
            workers=extraction.workers,
            timeout=extraction.timeout_seconds,
        )
        save_database(staging, staging_path)

    report_pass(result)
    print_status(staging, "Staging")
    return 0


def handle_extract_metadata_command(ctx: AppContext) -> int:
    """Fill title and author from the documents' embedded info."""
    extraction = ctx.config.extraction
    staging_path = ctx.config.library.staging_path
    with library_lock(ctx.root):
        staging = load_database(staging_path)
        result = extractor.extract_embedded_metadata(
            ctx.root,
            staging,
            ctx.get_text_layer(),
            workers=extraction.workers,
            timeout=extraction.timeout_seconds,
        )
        save_database(staging, staging_path)

    report_pass(result)
    print_status(staging, "Staging")
    return 0


def handle_retrieve_command(ctx: AppContext, strict: bool = False) -> int:
    """Look up descriptive metadata for staged documents without a title.

    Args:
        ctx: Application context
        strict: Only query by ISBN, never by file name
    """
    retrieval = ctx.config.retrieval
    staging_path = ctx.config.library.staging_path
    with library_lock(ctx.root):
        staging = load_database(staging_path)
        result = retriever.retrieve_metadata(
            staging,
            ctx.get_provider(),
            allow_fallback=retrieval.allow_fallback_query and not strict,
            max_concurrency=retrieval.max_concurrency,
            timeout=retrieval.timeout_seconds,
        )
        save_database(staging, staging_path)

    report_pass(result)
    print_status(staging, "Staging")
    return 0


def handle_consolidate_command(ctx: AppContext) -> int:
    """Tidy titles, apostrophes and years of staged records."""
    staging_path = ctx.config.library.staging_path
    with library_lock(ctx.root):
        staging = load_database(staging_path)
        changed = consolidate.consolidate_database(staging)
        save_database(staging, staging_path)

    log(f"✓ Consolidated {changed} records")
    return 0


def handle_rename_command(ctx: AppContext, apply: bool = False) -> int:
    """Rename staged documents after their metadata (dry run unless `apply`)."""
    library = ctx.config.library
    with library_lock(ctx.root):
        canonical = load_database_or_empty(library.canonical_path)
        staging = load_database(library.staging_path)
        plan = consolidate.rename_files(
            ctx.root, staging, apply=apply, protected=set(canonical)
        )
        if apply:
            save_database(staging, library.staging_path)

    if not apply:
        for identity, new_path in plan.moves.items():
            log(f"  {identity} -> {new_path}")
        if plan.moves:
            log(f"Run with --apply to rename {len(plan.moves)} files")
        else:
            log("Nothing to rename")
        return 0

    log(f"✓ Renamed {len(plan.moves)} files")
    for identity, reason in plan.failed.items():
        log(f"Can't rename {identity}: {reason}", level="warning")
    return 0


def handle_finalize_command(ctx: AppContext) -> int:
    """Clean the staging database and merge its finished records into the library.

    Records that still need work stay in the staging file; it is removed
    once nothing is left in it. Either way the canonical database is
    written first.
    """
    library = ctx.config.library
    with library_lock(ctx.root):
        if not library.staging_path.exists():
            log("Nothing to finalize (no staging database)")
            return 0

        canonical = load_database(library.canonical_path)
        staging = load_database(library.staging_path)

        result = merger.finalize_staging(canonical, staging)
        save_database(result.canonical, library.canonical_path)
        if result.held:
            save_database(result.held, library.staging_path)
        else:
            library.staging_path.unlink()

    for error in result.dropped:
        log(
            f"Dropped {error.field_name} of {error.identity} ({error.reason})",
            level="warning",
        )
    merged_count = len(staging) - len(result.held)
    log(
        f"✓ Merged {merged_count} records into {library.metadata_file} "
        f"({len(result.canonical)} total)"
    )
    if result.held:
        log(
            f"{len(result.held)} records are not ready and stay in "
            f"{library.imported_file}",
            level="warning",
        )
        print_status(result.held, "Staging")
    print_status(result.canonical, "Library")
    return 0
