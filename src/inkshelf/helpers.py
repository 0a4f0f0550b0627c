"""
Shared helpers for command handlers.
"""

from typing import Dict, Set

from inkshelf.context import AppContext
from inkshelf.core.config import LOCK_FILENAME
from inkshelf.core.console import print_paths, print_table
from inkshelf.core.output import log
from inkshelf.domain.library.database import Database
from inkshelf.domain.library.models import DocumentStatus
from inkshelf.domain.library.results import PassResult


def print_status(db: Database, title: str) -> Dict[DocumentStatus, int]:
    """Print per-status counts and the records needing attention."""
    counts = db.status_counts()
    rows = [(status.value, counts[status]) for status in DocumentStatus]
    rows.append(("total", len(db)))
    print_table(title, ["Status", "Documents"], rows)

    attention = [
        f"{record.path}: {'; '.join(record.attention)}"
        for record in db.needing_attention()
    ]
    print_paths("Needs attention", attention)
    return counts


def report_pass(result: PassResult) -> None:
    level = "warning" if result.failed else "info"
    log(result.summary(), level=level)


def database_names(ctx: AppContext) -> Set[str]:
    """File names in the library root that belong to inkshelf, not documents."""
    library = ctx.config.library
    return {library.metadata_file, library.imported_file, LOCK_FILENAME}
