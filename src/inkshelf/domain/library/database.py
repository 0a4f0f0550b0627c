"""
Metadata database files.

A database is a JSON object keyed by document identity, indented so that an
operator can open it in a text editor and fill in fields by hand. Each
library root holds two of them: the canonical database and the import
staging database.
"""

import json
import os
from collections import OrderedDict
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional

from loguru import logger

from inkshelf.core.errors import DatabaseError, DatabaseExistsError

from .models import DocumentRecord, DocumentStatus


class Database(OrderedDict):
    """Mapping of identity -> DocumentRecord.

    Keys are unique by construction; storing a record under a key other than
    its own identity is rejected.
    """

    def __setitem__(self, identity: str, record: DocumentRecord) -> None:
        if not isinstance(record, DocumentRecord):
            raise TypeError(f"expected DocumentRecord, got {type(record).__name__}")
        if record.identity != identity:
            raise KeyError(
                f"record identity {record.identity!r} stored under {identity!r}"
            )
        super().__setitem__(identity, record)

    @classmethod
    def from_records(cls, records: Iterable[DocumentRecord]) -> "Database":
        db = cls()
        for record in records:
            db.add(record)
        return db

    def add(self, record: DocumentRecord) -> None:
        self[record.identity] = record

    def records(self) -> Iterator[DocumentRecord]:
        return iter(self.values())

    def copy(self) -> "Database":
        return Database.from_records(r.copy() for r in self.values())

    def status_counts(self) -> Dict[DocumentStatus, int]:
        counts = {status: 0 for status in DocumentStatus}
        for record in self.values():
            counts[record.status] += 1
        return counts

    def needing_attention(self) -> List[DocumentRecord]:
        return [
            r for r in self.values() if r.status == DocumentStatus.NEEDS_ATTENTION
        ]

    def to_json(self) -> str:
        payload = {identity: record.to_dict() for identity, record in self.items()}
        return json.dumps(payload, indent=2, ensure_ascii=False) + "\n"

    @classmethod
    def from_json(cls, text: str, source: Optional[Path] = None) -> "Database":
        """Decode a database document.

        Accepts the keyed-object form as well as a legacy array of records,
        which is keyed by each record's file path.

        Raises:
            DatabaseError: If the document is not valid JSON or a record is malformed
        """
        where = source if source is not None else "<memory>"
        try:
            payload = json.loads(text) if text.strip() else {}
        except json.JSONDecodeError as e:
            raise DatabaseError(where, f"invalid JSON ({e})") from e

        if isinstance(payload, list):
            items = []
            for index, data in enumerate(payload):
                path = data.get("file", {}).get("path") if isinstance(data, dict) else None
                if not path:
                    raise DatabaseError(where, f"record #{index} has no file.path")
                items.append((path, data))
        elif isinstance(payload, dict):
            items = list(payload.items())
        else:
            raise DatabaseError(where, "expected a JSON object keyed by identity")

        db = cls()
        for identity, data in items:
            if identity in db:
                raise DatabaseError(where, f"duplicate identity {identity!r}")
            try:
                db[identity] = DocumentRecord.from_dict(identity, data)
            except ValueError as e:
                raise DatabaseError(where, f"record {identity!r}: {e}") from e
        return db


def load_database(path: Path) -> Database:
    """Load a database file.

    Raises:
        DatabaseError: If the file is missing, unreadable or malformed
    """
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise DatabaseError(path, "no such database (run 'inkshelf init' first?)") from e
    except OSError as e:
        raise DatabaseError(path, f"can't read ({e})") from e

    db = Database.from_json(text, source=path)
    logger.debug(f"Loaded {len(db)} records from {path}")
    return db


def load_database_or_empty(path: Path) -> Database:
    """Load a database file, treating a missing file as an empty database."""
    if not path.exists():
        return Database()
    return load_database(path)


def save_database(db: Database, path: Path) -> None:
    """Write a database atomically.

    The new content goes to a temp file next to the target, is flushed to
    disk, then replaces the target in one rename. A crash at any point leaves
    either the old or the new file, never a partial one.

    Raises:
        DatabaseError: If the file can't be written
    """
    temp_path = path.with_name(path.name + ".tmp")
    try:
        with open(temp_path, "w", encoding="utf-8") as f:
            f.write(db.to_json())
            f.flush()
            os.fsync(f.fileno())
        os.replace(temp_path, path)
    except OSError as e:
        if temp_path.exists():
            try:
                temp_path.unlink()
            except OSError:
                logger.warning(f"Could not remove temp file {temp_path}")
        raise DatabaseError(path, f"can't write ({e})") from e

    logger.debug(f"Saved {len(db)} records to {path}")


def init_database(path: Path) -> None:
    """Create an empty canonical database.

    Raises:
        DatabaseExistsError: If the file already exists
        DatabaseError: If it can't be written
    """
    if path.exists():
        raise DatabaseExistsError(path)
    save_database(Database(), path)
