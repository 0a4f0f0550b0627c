"""
Field-level merge of two databases.

Used by finalize (canonical <- cleaned staging) and by sync (device <- library).
For each field present in the newer record, its value replaces the older one;
fields the newer record doesn't carry are kept. Records are never removed and
neither input is modified.
"""

from dataclasses import dataclass, field
from typing import List, Tuple

from loguru import logger

from .cleaner import clean_database
from .database import Database
from .exceptions import ValidationError
from .models import DocumentRecord, DocumentStatus

# A title, and either an ISBN or nothing flagged for review
READY_STATUSES = (DocumentStatus.COMPLETE, DocumentStatus.ENRICHED)


def merge_record(base: DocumentRecord, update: DocumentRecord) -> DocumentRecord:
    """Overlay the present fields of `update` onto a copy of `base`."""
    merged = base.copy()

    if update.file is not None:
        merged.file = update.file
    # First-seen timestamp never moves once recorded
    if merged.added is None:
        merged.added = update.added
    if update.categories is not None:
        merged.categories = list(update.categories)
    if update.isbn is not None:
        merged.isbn = update.isbn

    for name, value in update.metadata.present().items():
        setattr(merged.metadata, name, value)

    merged.extra.update(update.extra)
    for reason in update.attention:
        merged.flag(reason)
    return merged


def merge_databases(base: Database, update: Database) -> Database:
    """Return `base` with every record of `update` merged in.

    Order is that of `base`, followed by records only `update` knows about.
    """
    merged = base.copy()
    added, updated = _merge_into(merged, update)
    logger.info(f"Merged {len(update)} records: {added} new, {updated} updated")
    return merged


def _merge_into(target: Database, update: Database) -> Tuple[int, int]:
    added = updated = 0
    for identity, record in update.items():
        if identity in target:
            target[identity] = merge_record(target[identity], record)
            updated += 1
        else:
            target[identity] = record.copy()
            added += 1
    return added, updated



@dataclass
class FinalizeResult:
    """New canonical database plus the staged records held back from it."""

    canonical: Database
    held: Database
    dropped: List[ValidationError] = field(default_factory=list)


def finalize_staging(canonical: Database, staging: Database) -> FinalizeResult:
    """Clean `staging` and merge the records that are ready into `canonical`.

    Records that are new, only identified or flagged for review stay out of
    the canonical database. They are held back as they were staged, flags
    included, so a re-run of the stages or an operator edit can finish them.
    """
    cleaned = clean_database(staging)
    ready = Database()
    held = Database()
    for record in cleaned.database.records():
        staged = staging[record.identity]
        if staged.status in READY_STATUSES and record.metadata.title:
            ready.add(record)
        else:
            held.add(staged.copy())

    merged = merge_databases(canonical, ready)
    logger.info(f"Finalize: {len(ready)} records merged, {len(held)} held in staging")
    return FinalizeResult(
        canonical=merged,
        held=held,
        dropped=[e for e in cleaned.dropped if e.identity in ready],
    )
