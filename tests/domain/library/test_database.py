"""Unit tests for database files."""

import json

import pytest

from inkshelf.core.errors import DatabaseError, DatabaseExistsError
from inkshelf.domain.library.database import (
    Database,
    init_database,
    load_database,
    load_database_or_empty,
    save_database,
)
from inkshelf.domain.library.models import DocumentRecord, DocumentStatus, FileInfo


def record(path: str, size: int = 100, **fields) -> DocumentRecord:
    rec = DocumentRecord(identity=path, file=FileInfo(path=path, kind="pdf", size=size))
    for key, value in fields.items():
        setattr(rec.metadata, key, value)
    return rec


class TestDatabase:
    """Tests for the identity-keyed mapping."""

    def test_key_must_match_identity(self):
        db = Database()
        with pytest.raises(KeyError):
            db["other.pdf"] = record("a.pdf")

    def test_only_records_stored(self):
        db = Database()
        with pytest.raises(TypeError):
            db["a.pdf"] = {"title": "A"}

    def test_status_counts(self):
        db = Database.from_records(
            [record("a.pdf"), record("b.pdf", title="B"), record("c.pdf", title="C")]
        )
        counts = db.status_counts()
        assert counts[DocumentStatus.NEW] == 1
        assert counts[DocumentStatus.ENRICHED] == 2
        assert counts[DocumentStatus.COMPLETE] == 0

    def test_copy_is_deep(self):
        db = Database.from_records([record("a.pdf", title="A")])
        clone = db.copy()
        clone["a.pdf"].metadata.title = "Changed"
        assert db["a.pdf"].metadata.title == "A"


class TestFromJson:
    """Tests for decoding database documents."""

    def test_empty_text_is_empty_database(self):
        assert len(Database.from_json("")) == 0

    def test_keyed_object(self):
        text = json.dumps({"a.pdf": {"title": "A", "file": {"path": "a.pdf", "kind": "pdf", "size": 1}}})
        db = Database.from_json(text)
        assert db["a.pdf"].metadata.title == "A"

    def test_legacy_array_keyed_by_path(self):
        text = json.dumps([{"title": "A", "file": {"path": "x/a.pdf", "kind": "pdf", "size": 1}}])
        db = Database.from_json(text)
        assert list(db) == ["x/a.pdf"]

    def test_legacy_array_duplicate_rejected(self):
        entry = {"file": {"path": "a.pdf", "kind": "pdf", "size": 1}}
        with pytest.raises(DatabaseError, match="duplicate"):
            Database.from_json(json.dumps([entry, entry]))

    def test_invalid_json(self):
        with pytest.raises(DatabaseError, match="invalid JSON"):
            Database.from_json("{not json")

    def test_malformed_record(self):
        text = json.dumps({"a.pdf": {"file": {"path": "a.pdf", "size": -5}}})
        with pytest.raises(DatabaseError, match="a.pdf"):
            Database.from_json(text)

    def test_scalar_document_rejected(self):
        with pytest.raises(DatabaseError):
            Database.from_json("42")


class TestFiles:
    """Tests for loading, saving and initializing database files."""

    def test_init_creates_empty_mapping(self, tmp_path):
        path = tmp_path / ".metadata.json"
        init_database(path)
        assert json.loads(path.read_text()) == {}
        assert len(load_database(path)) == 0

    def test_init_refuses_existing_file(self, tmp_path):
        path = tmp_path / ".metadata.json"
        path.write_text('{"a.pdf": {}}')
        with pytest.raises(DatabaseExistsError):
            init_database(path)
        assert path.read_text() == '{"a.pdf": {}}'

    def test_save_and_load(self, tmp_path):
        path = tmp_path / ".metadata.json"
        db = Database.from_records([record("b.pdf", title="B"), record("a.pdf")])
        save_database(db, path)
        loaded = load_database(path)
        assert list(loaded) == ["b.pdf", "a.pdf"]
        assert loaded["b.pdf"].metadata.title == "B"

    def test_save_leaves_no_temp_file(self, tmp_path):
        path = tmp_path / ".metadata.json"
        save_database(Database.from_records([record("a.pdf")]), path)
        assert [p.name for p in tmp_path.iterdir()] == [".metadata.json"]

    def test_saved_file_is_indented_utf8(self, tmp_path):
        path = tmp_path / ".metadata.json"
        save_database(Database.from_records([record("a.pdf", title="Ἰλιάς")]), path)
        text = path.read_text(encoding="utf-8")
        assert "Ἰλιάς" in text
        assert '\n  "a.pdf"' in text

    def test_missing_file_is_fatal(self, tmp_path):
        with pytest.raises(DatabaseError, match="no such database"):
            load_database(tmp_path / ".metadata.json")

    def test_missing_file_or_empty(self, tmp_path):
        assert len(load_database_or_empty(tmp_path / ".metadata-imported.json")) == 0
