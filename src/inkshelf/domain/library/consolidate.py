"""
Tidy staging metadata and give files readable names.

consolidate_database() is a pure text pass over the descriptive fields.
rename_files() moves files on disk to
'Title - Subtitle - Volume - Number - Author.kind' and re-keys the records
that moved.
"""

import os
import unicodedata
from dataclasses import dataclass, field, replace
from pathlib import Path, PurePosixPath
from typing import Collection, Dict, List, Optional

from loguru import logger
from titlecase import titlecase

from .database import Database
from .models import DocumentRecord

APOSTROPHE = "’"
_YEAR_LENGTH = 4


def consolidate_record(record: DocumentRecord) -> None:
    """Normalize one record's descriptive fields in place."""
    md = record.metadata

    if md.title and not md.subtitle and ":" in md.title:
        title, subtitle = md.title.split(":", 1)
        md.title = title.rstrip()
        md.subtitle = subtitle.lstrip() or None

    if not md.language:
        if md.title:
            md.title = titlecase(md.title)
        if md.subtitle:
            md.subtitle = titlecase(md.subtitle)

    for name in ("title", "subtitle", "author", "series", "publisher"):
        value = getattr(md, name)
        if value:
            setattr(md, name, value.replace("'", APOSTROPHE))

    if md.year and len(md.year) > _YEAR_LENGTH:
        md.year = md.year[:_YEAR_LENGTH]


def consolidate_database(staging: Database) -> int:
    """Consolidate every titled record; returns how many changed."""
    changed = 0
    for record in staging.records():
        if not record.metadata.title:
            continue
        before = replace(record.metadata)
        consolidate_record(record)
        if record.metadata != before:
            changed += 1
            logger.debug(f"{record.identity}: {before.title!r} -> {record.label()!r}")
    logger.info(f"Consolidated {changed} of {len(staging)} records")
    return changed


def asciify(text: str) -> str:
    """Fold to plain ASCII: accents are stripped, the rest is dropped."""
    text = text.replace(APOSTROPHE, "'")
    decomposed = unicodedata.normalize("NFKD", text)
    return decomposed.encode("ascii", "ignore").decode("ascii")


def file_name_from_record(record: DocumentRecord) -> str:
    """Readable file name for a record, or '' when it has no title."""
    md = record.metadata
    if not md.title:
        return ""

    parts = [asciify(md.title)]
    if md.subtitle:
        parts.append(asciify(md.subtitle))
    # A series carries its own volume numbering
    if md.volume and not md.series:
        parts.append(md.volume)
    if md.number:
        parts.append(md.number)
    if md.author:
        parts.append(asciify(md.author))

    kind = record.file.kind if record.file else PurePosixPath(record.path).suffix[1:]
    name = f"{' - '.join(parts)}.{kind}"
    return name.replace("..", ".").replace(" / ", ", ").replace("/", "-")


@dataclass
class RenamePlan:
    """Renames for one pass; `moves` maps old identity -> new relative path."""

    moves: Dict[str, str] = field(default_factory=dict)
    skipped: Dict[str, str] = field(default_factory=dict)
    failed: Dict[str, str] = field(default_factory=dict)


def plan_renames(
    staging: Database, protected: Optional[Collection[str]] = None
) -> RenamePlan:
    """Work out new names without touching the disk.

    Records whose identity is in `protected` (already canonical) keep their
    path so the canonical database never ends up with a dangling identity.
    """
    protected = protected or ()
    plan = RenamePlan()
    claimed = set(staging)

    for record in staging.records():
        name = file_name_from_record(record)
        if not name:
            continue
        if record.identity in protected:
            plan.skipped[record.identity] = "already in the library database"
            continue
        new_path = PurePosixPath(record.path).with_name(name).as_posix()
        if new_path == record.path:
            continue
        if new_path in claimed:
            plan.skipped[record.identity] = f"name taken: {new_path}"
            continue
        claimed.add(new_path)
        plan.moves[record.identity] = new_path
    return plan


def rename_files(
    root: Path,
    staging: Database,
    apply: bool = False,
    protected: Optional[Collection[str]] = None,
) -> RenamePlan:
    """Rename staging documents to readable names.

    Without `apply` nothing moves and the plan is only reported. With it,
    each file is renamed on disk and its record is re-keyed under the new
    path; a failed rename leaves that record untouched.
    """
    plan = plan_renames(staging, protected)
    for identity, reason in plan.skipped.items():
        logger.warning(f"Not renaming {identity}: {reason}")

    if not apply:
        for identity, new_path in plan.moves.items():
            logger.info(f"Would rename {identity} -> {new_path}")
        return plan

    renamed: List[DocumentRecord] = []
    for identity, new_path in list(plan.moves.items()):
        target = root / new_path
        if target.exists():
            plan.failed[identity] = f"{new_path} already exists"
            del plan.moves[identity]
            logger.error(f"Can't rename {identity} to {new_path}: target exists")
            continue
        try:
            os.rename(root / staging[identity].path, target)
        except OSError as e:
            plan.failed[identity] = str(e)
            del plan.moves[identity]
            logger.error(f"Can't rename {identity} to {new_path}: {e}")
            continue

        record = staging[identity]
        record.identity = new_path
        if record.file is not None:
            record.file = replace(record.file, path=new_path)
        renamed.append(record)
        logger.info(f"Renamed {identity} -> {new_path}")

    _rekey(staging)
    logger.info(f"Renamed {len(renamed)} files, {len(plan.failed)} failed")
    return plan


def _rekey(db: Database) -> None:
    """Rebuild the mapping after identities changed, keeping order."""
    records = list(db.values())
    db.clear()
    for record in records:
        db.add(record)
