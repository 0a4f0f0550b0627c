"""Unit tests for the database integrity check."""

from inkshelf.domain.library.database import Database
from inkshelf.domain.library.models import DocumentRecord, FileInfo
from inkshelf.domain.sync.integrity import check_integrity


def record(path: str) -> DocumentRecord:
    return DocumentRecord(identity=path, file=FileInfo(path=path, kind="pdf", size=1))


class TestCheckIntegrity:
    """Tests for check_integrity."""

    def test_orphans_reported(self, tmp_path):
        (tmp_path / "fiction").mkdir()
        (tmp_path / "fiction" / "novel.pdf").write_bytes(b"x")
        db = Database.from_records([record("fiction/novel.pdf"), record("gone.pdf")])
        assert check_integrity(tmp_path, db) == ["gone.pdf"]

    def test_directory_is_not_a_file(self, tmp_path):
        (tmp_path / "fiction").mkdir()
        db = Database.from_records([record("fiction")])
        assert check_integrity(tmp_path, db) == ["fiction"]

    def test_no_side_effects(self, tmp_path):
        db = Database.from_records([record("gone.pdf")])
        check_integrity(tmp_path, db)
        assert list(db) == ["gone.pdf"]

    def test_empty_database(self, tmp_path):
        assert check_integrity(tmp_path, Database()) == []
