"""
Cleaner: normalize staging records before they are merged.

Every optional field is checked against its own validity predicate; a field
that fails is dropped and the record is kept. Stage-only bookkeeping is
stripped so canonical records never carry it. Cleaning twice is the same as
cleaning once.
"""

import re
from dataclasses import dataclass, field
from typing import List, Tuple

from loguru import logger

from .database import Database
from .exceptions import ValidationError
from .isbn import is_valid_isbn, normalize_isbn
from .models import DocumentRecord, Metadata

_YEAR_RE = re.compile(r"\d{1,4}", re.ASCII)
_YEAR_LENGTH = 4


@dataclass
class CleanResult:
    """Cleaned database plus every field that was dropped."""

    database: Database
    dropped: List[ValidationError] = field(default_factory=list)


def clean_record(record: DocumentRecord) -> Tuple[DocumentRecord, List[ValidationError]]:
    """Return a cleaned copy of `record` and the validation failures found."""
    cleaned = record.copy()
    dropped: List[ValidationError] = []

    def drop(field_name: str, value, reason: str) -> None:
        dropped.append(ValidationError(record.identity, field_name, value, reason))

    if cleaned.isbn is not None:
        if is_valid_isbn(cleaned.isbn):
            cleaned.isbn = normalize_isbn(cleaned.isbn)
        else:
            drop("isbn", cleaned.isbn, "fails ISBN checksum or length")
            cleaned.isbn = None

    for name in Metadata.field_names():
        value = getattr(cleaned.metadata, name)
        if value is None:
            continue
        collapsed = " ".join(value.split())
        if not collapsed:
            drop(name, value, "empty")
            setattr(cleaned.metadata, name, None)
            continue
        setattr(cleaned.metadata, name, collapsed)

    year = cleaned.metadata.year
    if year is not None:
        if _YEAR_RE.fullmatch(year[:_YEAR_LENGTH]):
            cleaned.metadata.year = year[:_YEAR_LENGTH]
        else:
            drop("year", year, "not a year")
            cleaned.metadata.year = None

    if cleaned.categories is not None:
        categories = [c.strip() for c in cleaned.categories]
        if any(not c for c in categories):
            drop("categories", cleaned.categories, "blank category")
        cleaned.categories = [c for c in categories if c]

    cleaned.attention = []
    return cleaned, dropped


def clean_database(staging: Database) -> CleanResult:
    """Clean every record of a staging database (the input is not modified)."""
    result = CleanResult(database=Database())
    for record in staging.records():
        cleaned, dropped = clean_record(record)
        result.database.add(cleaned)
        result.dropped.extend(dropped)

    for error in result.dropped:
        logger.warning(str(error))
    logger.info(
        f"Cleaned {len(result.database)} records, dropped {len(result.dropped)} fields"
    )
    return result
