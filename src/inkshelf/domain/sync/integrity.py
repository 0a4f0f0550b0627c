"""Check that every record points at a file that exists."""

from pathlib import Path
from typing import List

from loguru import logger

from ..library.database import Database


def check_integrity(root: Path, db: Database) -> List[str]:
    """Identities whose file.path doesn't resolve to a file under `root`.

    Orphans are only reported, never removed.
    """
    orphans = [
        record.identity
        for record in db.records()
        if not (root / record.path).is_file()
    ]
    for identity in orphans:
        logger.warning(f"Orphaned record: {identity}")
    logger.info(f"Integrity check: {len(db) - len(orphans)} ok, {len(orphans)} orphaned")
    return orphans
