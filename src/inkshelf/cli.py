"""
inkshelf CLI - Entry point

Subcommands map one to one onto pipeline stages; each can be re-run on its
own. Typical import: init (once), import, extract-isbn, retrieve, then
review the staging file and finalize.
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from loguru import logger

from inkshelf.commands import admin, library, sync
from inkshelf.context import AppContext
from inkshelf.core.config import load_config
from inkshelf.core.console import get_console
from inkshelf.core.errors import InkshelfError
from inkshelf.core.output import log, setup_loguru, setup_from_config


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="inkshelf",
        description="inkshelf - Document library import and e-reader sync",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    # Global options
    parser.add_argument(
        "-l", "--library", metavar="PATH", help="Library root (default: [library] path)"
    )
    parser.add_argument(
        "-i", "--input", metavar="NAME", help="Canonical database file name"
    )
    parser.add_argument(
        "-o", "--output", metavar="NAME", help="Staging database file name"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Mirror debug logging to stderr"
    )

    subparsers = parser.add_subparsers(dest="subcommand", metavar="COMMAND")
    subparsers.required = True

    subparsers.add_parser("init", help="Create an empty library database")
    import_parser = subparsers.add_parser("import", help="Stage records for new files")
    import_parser.add_argument(
        "-k",
        "--keep",
        action="store_true",
        help="Merge into the existing staging database instead of replacing it",
    )

    subparsers.add_parser("extract-isbn", help="Find ISBNs in the leading pages")
    subparsers.add_parser(
        "extract-metadata", help="Fill title/author from embedded document info"
    )

    retrieve_parser = subparsers.add_parser(
        "retrieve", help="Look up metadata for staged documents"
    )
    retrieve_parser.add_argument(
        "-s", "--strict", action="store_true", help="Only query by ISBN"
    )

    subparsers.add_parser(
        "consolidate", help="Tidy titles, apostrophes and years in staging"
    )

    rename_parser = subparsers.add_parser(
        "rename", help="Rename staged files after their metadata"
    )
    rename_parser.add_argument(
        "--apply", action="store_true", help="Actually rename (default: dry run)"
    )

    subparsers.add_parser(
        "finalize", help="Clean staging and merge it into the library database"
    )

    status_parser = subparsers.add_parser("status", help="Show counts per status")
    status_parser.add_argument(
        "--staging", action="store_true", help="Report on the staging database"
    )

    check_parser = subparsers.add_parser(
        "check", help="List records whose file is missing"
    )
    check_parser.add_argument(
        "--staging", action="store_true", help="Check the staging database"
    )

    prune_parser = subparsers.add_parser(
        "prune", help="Remove library records whose file is missing"
    )
    prune_parser.add_argument(
        "-y", "--yes", action="store_true", help="Don't ask for confirmation"
    )

    sync_parser = subparsers.add_parser("sync", help="Mirror the library onto a device")
    sync_parser.add_argument(
        "target", nargs="?", help="Device library root (default: [sync] target_path)"
    )
    sync_parser.add_argument(
        "-n", "--dry-run", action="store_true", help="Only show what would change"
    )
    sync_parser.add_argument(
        "--no-delete",
        dest="delete",
        action="store_false",
        default=None,
        help="Keep device files that are absent from the library",
    )
    sync_parser.add_argument(
        "--tolerance",
        type=float,
        metavar="S",
        help="Seconds two modification times may differ and still match",
    )

    subparsers.add_parser("config", help="Show the effective configuration")
    return parser


def dispatch(ctx: AppContext, args: argparse.Namespace) -> int:
    """Run the handler for a parsed subcommand and return its exit code."""
    command = args.subcommand
    if command == "init":
        return admin.handle_init_command(ctx)
    elif command == "import":
        return library.handle_import_command(ctx, keep=args.keep)
    elif command == "extract-isbn":
        return library.handle_extract_isbn_command(ctx)
    elif command == "extract-metadata":
        return library.handle_extract_metadata_command(ctx)
    elif command == "retrieve":
        return library.handle_retrieve_command(ctx, strict=args.strict)
    elif command == "consolidate":
        return library.handle_consolidate_command(ctx)
    elif command == "rename":
        return library.handle_rename_command(ctx, apply=args.apply)
    elif command == "finalize":
        return library.handle_finalize_command(ctx)
    elif command == "status":
        return admin.handle_status_command(ctx, staging=args.staging)
    elif command == "check":
        return admin.handle_check_command(ctx, staging=args.staging)
    elif command == "prune":
        return admin.handle_prune_command(ctx, assume_yes=args.yes)
    elif command == "sync":
        return sync.handle_sync_command(
            ctx,
            target=args.target,
            dry_run=args.dry_run,
            delete=args.delete,
            tolerance=args.tolerance,
        )
    elif command == "config":
        return admin.handle_config_command(ctx)
    raise ValueError(f"Unknown command: {command}")


def run(argv: Optional[List[str]] = None, ctx: Optional[AppContext] = None) -> int:
    """Parse `argv` and run the command.

    Args:
        argv: Command line arguments (default: sys.argv[1:])
        ctx: Context to run with (default: built from the configuration file)

    Returns:
        Exit code (0 for success, 1 for a fatal error)
    """
    args = build_parser().parse_args(argv)

    if ctx is None:
        config = load_config()
        setup_from_config(config.logging)
        ctx = AppContext.create(config, console=get_console())
    if args.verbose:
        log_file = ctx.config.logging.log_file
        setup_loguru(
            Path(log_file) if log_file else None, level="DEBUG", console_output=True
        )
    ctx = ctx.with_library(args.library, args.input, args.output)

    try:
        return dispatch(ctx, args)
    except InkshelfError as e:
        log(f"Error: {e}", level="error")
        return 1
    except KeyboardInterrupt:
        log("Interrupted", level="warning")
        return 1
    except Exception as e:
        logger.exception(f"Unexpected error running '{args.subcommand}'")
        log(f"Unexpected error: {e}", level="error")
        return 1


def main() -> None:
    """Main entry point for the inkshelf command."""
    sys.exit(run())


if __name__ == "__main__":
    main()
