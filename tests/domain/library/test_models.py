"""Unit tests for document records and their on-disk form."""

from datetime import datetime, timezone

import pytest

from inkshelf.domain.library.models import (
    ATTENTION_KEY,
    DocumentRecord,
    DocumentStatus,
    FileInfo,
    Metadata,
    categories_from_path,
    file_kind,
)


def make_record(**kwargs) -> DocumentRecord:
    record = DocumentRecord(
        identity="fiction/novel.pdf",
        file=FileInfo(path="fiction/novel.pdf", kind="pdf", size=2048),
    )
    for key, value in kwargs.items():
        if key in Metadata.field_names():
            setattr(record.metadata, key, value)
        else:
            setattr(record, key, value)
    return record


class TestStatus:
    """Status is derived from field presence, never stored."""

    def test_new(self):
        assert make_record().status == DocumentStatus.NEW

    def test_identified(self):
        assert make_record(isbn="9780140449136").status == DocumentStatus.IDENTIFIED

    def test_enriched(self):
        assert make_record(title="The Odyssey").status == DocumentStatus.ENRICHED

    def test_complete(self):
        record = make_record(isbn="9780140449136", title="The Odyssey")
        assert record.status == DocumentStatus.COMPLETE

    def test_needs_attention(self):
        record = make_record()
        record.flag("isbn: not found in the first 10 pages")
        assert record.status == DocumentStatus.NEEDS_ATTENTION

    def test_complete_wins_over_attention(self):
        record = make_record(isbn="9780140449136", title="The Odyssey")
        record.flag("retrieval: transport error")
        assert record.status == DocumentStatus.COMPLETE

    def test_status_follows_edits(self):
        record = make_record()
        record.isbn = "9780140449136"
        assert record.status == DocumentStatus.IDENTIFIED
        record.isbn = None
        assert record.status == DocumentStatus.NEW


class TestFlags:
    """Tests for attention bookkeeping."""

    def test_flag_is_idempotent(self):
        record = make_record()
        record.flag("isbn: no text layer")
        record.flag("isbn: no text layer")
        assert record.attention == ["isbn: no text layer"]

    def test_unflag_by_prefix(self):
        record = make_record()
        record.flag("isbn: no text layer")
        record.flag("retrieval: not found (odyssey)")
        record.unflag("isbn:")
        assert record.attention == ["retrieval: not found (odyssey)"]


class TestSerialization:
    """Tests for from_dict / to_dict."""

    def test_absent_fields_omitted(self):
        data = make_record().to_dict()
        assert data == {"file": {"path": "fiction/novel.pdf", "kind": "pdf", "size": 2048}}

    def test_round_trip_keeps_unknown_keys(self):
        data = {
            "title": "The Odyssey",
            "isbn": "9780140449136",
            "categories": ["fiction"],
            "file": {"path": "fiction/novel.pdf", "kind": "pdf", "size": 2048},
            "added": "2024-01-02 03:04:05+00:00",
            "reader": {"currentPage": 12},
        }
        record = DocumentRecord.from_dict("fiction/novel.pdf", data)
        assert record.extra == {"reader": {"currentPage": 12}}
        assert record.to_dict() == data

    def test_added_parsed_as_utc(self):
        record = DocumentRecord.from_dict(
            "a.pdf",
            {"file": {"path": "a.pdf", "kind": "pdf", "size": 1}, "added": "2024-01-02 03:04:05"},
        )
        assert record.added == datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

    def test_attention_written_last(self):
        record = make_record(title="The Odyssey")
        record.flag("isbn: no text layer")
        assert list(record.to_dict())[-1] == ATTENTION_KEY

    def test_numbers_become_strings(self):
        record = DocumentRecord.from_dict("a.pdf", {"year": 1946, "isbn": 9780140449136})
        assert record.metadata.year == "1946"
        assert record.isbn == "9780140449136"

    @pytest.mark.parametrize(
        "data",
        [
            {"file": {"path": "a.pdf", "kind": "pdf", "size": -1}},
            {"file": {"path": "a.pdf", "kind": "pdf", "size": "big"}},
            {"file": "a.pdf"},
            {"categories": "fiction"},
            {"added": "yesterday"},
        ],
    )
    def test_malformed_fields_rejected(self, data):
        with pytest.raises(ValueError):
            DocumentRecord.from_dict("a.pdf", data)

    def test_copy_is_independent(self):
        record = make_record(categories=["fiction"], title="The Odyssey")
        clone = record.copy()
        clone.categories.append("greek")
        clone.metadata.title = "Odyssey"
        assert record.categories == ["fiction"]
        assert record.metadata.title == "The Odyssey"


class TestPathHelpers:
    """Tests for helpers derived from relative paths."""

    def test_categories_from_path(self):
        assert categories_from_path("fiction/greek/odyssey.pdf") == ["fiction", "greek"]

    def test_categories_at_root(self):
        assert categories_from_path("odyssey.pdf") == []

    def test_file_kind_lowercase(self):
        assert file_kind("fiction/Odyssey.EPUB") == "epub"

    def test_file_kind_without_extension(self):
        assert file_kind("README") == ""
