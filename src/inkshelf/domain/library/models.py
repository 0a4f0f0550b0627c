"""
Library domain models.

A DocumentRecord is the unit of the metadata database. On disk it is a flat
JSON object; in memory the descriptive fields are grouped in Metadata and any
keys we don't know about are carried in `extra` so nothing is lost on a
load/save round trip.
"""

from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timezone
from enum import Enum
from pathlib import PurePosixPath
from typing import Any, Dict, List, Optional

ATTENTION_KEY = "_attention"


class DocumentStatus(str, Enum):
    """Pipeline status, computed from which optional fields are present."""

    NEW = "new"
    IDENTIFIED = "identified"
    ENRICHED = "enriched"
    COMPLETE = "complete"
    NEEDS_ATTENTION = "needs-attention"


@dataclass(frozen=True)
class FileInfo:
    """Where a document lives, relative to the library root."""

    path: str  # POSIX-style, relative to the library root
    kind: str  # Lowercase extension without the dot
    size: int  # Bytes

    @classmethod
    def from_dict(cls, data: Dict[str, Any], default_path: str) -> "FileInfo":
        path = data.get("path") or default_path
        kind = data.get("kind")
        if kind is None:
            kind = file_kind(path)
        size = data.get("size")
        if not isinstance(size, int) or isinstance(size, bool) or size < 0:
            raise ValueError(f"file.size must be a non-negative integer, got {size!r}")
        return cls(path=str(path), kind=str(kind), size=size)

    def to_dict(self) -> Dict[str, Any]:
        return {"path": self.path, "kind": self.kind, "size": self.size}


@dataclass
class Metadata:
    """Descriptive fields fetched from the lookup service or typed in by hand."""

    title: Optional[str] = None
    subtitle: Optional[str] = None
    author: Optional[str] = None
    year: Optional[str] = None
    language: Optional[str] = None
    publisher: Optional[str] = None
    series: Optional[str] = None
    edition: Optional[str] = None
    volume: Optional[str] = None
    number: Optional[str] = None

    @classmethod
    def field_names(cls) -> List[str]:
        return [f.name for f in fields(cls)]

    def is_empty(self) -> bool:
        return all(getattr(self, name) is None for name in self.field_names())

    def present(self) -> Dict[str, str]:
        """Fields that are set, in declaration order."""
        return {
            name: getattr(self, name)
            for name in self.field_names()
            if getattr(self, name) is not None
        }

    def fill_missing(self, other: "Metadata") -> List[str]:
        """Copy fields from `other` that are absent here; return their names."""
        filled = []
        for name, value in other.present().items():
            if getattr(self, name) is None:
                setattr(self, name, value)
                filled.append(name)
        return filled


@dataclass
class DocumentRecord:
    """A document in the metadata database, keyed by `identity`."""

    identity: str
    file: Optional[FileInfo] = None
    added: Optional[datetime] = None
    categories: Optional[List[str]] = None
    isbn: Optional[str] = None
    metadata: Metadata = field(default_factory=Metadata)
    attention: List[str] = field(default_factory=list)  # Staging-only bookkeeping
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def status(self) -> DocumentStatus:
        has_title = self.metadata.title is not None
        if self.isbn and has_title:
            return DocumentStatus.COMPLETE
        if self.attention:
            return DocumentStatus.NEEDS_ATTENTION
        if has_title:
            return DocumentStatus.ENRICHED
        if self.isbn:
            return DocumentStatus.IDENTIFIED
        return DocumentStatus.NEW

    @property
    def path(self) -> str:
        """Relative path of the underlying file."""
        return self.file.path if self.file else self.identity

    def flag(self, reason: str) -> None:
        """Mark the record for operator review (idempotent per reason)."""
        if reason not in self.attention:
            self.attention.append(reason)

    def unflag(self, prefix: str) -> None:
        """Drop review reasons raised by a stage, e.g. before re-running it."""
        self.attention = [r for r in self.attention if not r.startswith(prefix)]

    def copy(self) -> "DocumentRecord":
        return replace(
            self,
            categories=list(self.categories) if self.categories is not None else None,
            metadata=replace(self.metadata),
            attention=list(self.attention),
            extra=dict(self.extra),
        )

    def label(self) -> str:
        """Human readable one-liner: 'Title - Author' or the file path."""
        if self.metadata.title:
            if self.metadata.author:
                return f"{self.metadata.title} - {self.metadata.author}"
            return self.metadata.title
        return self.path

    @classmethod
    def from_dict(cls, identity: str, data: Dict[str, Any]) -> "DocumentRecord":
        """Build a record from its on-disk form.

        Raises:
            ValueError: If a known field has the wrong shape
        """
        if not isinstance(data, dict):
            raise ValueError(f"record must be an object, got {type(data).__name__}")

        data = dict(data)
        record = cls(identity=identity)

        file_data = data.pop("file", None)
        if file_data is not None:
            if not isinstance(file_data, dict):
                raise ValueError("file must be an object")
            record.file = FileInfo.from_dict(file_data, default_path=identity)

        added = data.pop("added", None)
        if added is not None:
            record.added = parse_timestamp(added)

        categories = data.pop("categories", None)
        if categories is not None:
            if not isinstance(categories, list):
                raise ValueError("categories must be a list")
            record.categories = [str(c) for c in categories]

        isbn = data.pop("isbn", None)
        if isbn is not None:
            record.isbn = str(isbn)

        for name in Metadata.field_names():
            value = data.pop(name, None)
            if value is not None:
                setattr(record.metadata, name, str(value))

        attention = data.pop(ATTENTION_KEY, None)
        if attention:
            record.attention = [str(a) for a in attention]

        record.extra = data
        return record

    def to_dict(self) -> Dict[str, Any]:
        """On-disk form: absent optional fields are omitted."""
        data: Dict[str, Any] = {}
        data.update(self.metadata.present())
        if self.isbn is not None:
            data["isbn"] = self.isbn
        if self.categories is not None:
            data["categories"] = list(self.categories)
        if self.file is not None:
            data["file"] = self.file.to_dict()
        if self.added is not None:
            data["added"] = format_timestamp(self.added)
        for key, value in self.extra.items():
            data.setdefault(key, value)
        if self.attention:
            data[ATTENTION_KEY] = list(self.attention)
        return data


def file_kind(path: str) -> str:
    """Lowercase extension without the leading dot ('' if none)."""
    return PurePosixPath(path).suffix.lower().lstrip(".")


def categories_from_path(rel_path: str) -> List[str]:
    """Directory segments between the library root and the file."""
    return list(PurePosixPath(rel_path).parent.parts)


def utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


def format_timestamp(value: datetime) -> str:
    return value.isoformat(sep=" ", timespec="seconds")


def parse_timestamp(value: Any) -> datetime:
    if not isinstance(value, str):
        raise ValueError(f"added must be a timestamp string, got {value!r}")
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError as e:
        raise ValueError(f"added is not a valid timestamp: {value!r}") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
