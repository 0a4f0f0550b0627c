"""Unit tests for library scanning."""

import os
from pathlib import Path

import pytest

from inkshelf.core.errors import LibraryUnavailableError
from inkshelf.domain.library.database import Database
from inkshelf.domain.library.merger import merge_databases
from inkshelf.domain.library.models import DocumentRecord, FileInfo
from inkshelf.domain.library.scanner import find_files, scan_library


def write(root: Path, rel_path: str, size: int) -> Path:
    path = root / rel_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"x" * size)
    return path


@pytest.fixture
def library(tmp_path):
    """A small library tree with a hidden database file."""
    root = tmp_path / "books"
    write(root, "fiction/novel.pdf", 2048)
    write(root, "fiction/greek/odyssey.epub", 300)
    write(root, "manual.djvu", 50)
    write(root, ".metadata.json", 2)
    write(root, ".cache/thumb.png", 10)
    return root


class TestFindFiles:
    """Tests for the directory walk."""

    def test_hidden_entries_skipped(self, library):
        files = find_files(library)
        assert sorted(files) == [
            "fiction/greek/odyssey.epub",
            "fiction/novel.pdf",
            "manual.djvu",
        ]

    def test_file_info(self, library):
        info = find_files(library)["fiction/novel.pdf"]
        assert (info.path, info.kind, info.size) == ("fiction/novel.pdf", "pdf", 2048)

    def test_ignored_names_skipped(self, library):
        write(library, "lib.json", 2)
        files = find_files(library, ignore={"lib.json"})
        assert "lib.json" not in files
        assert "manual.djvu" in files

    def test_ignored_names_only_skipped_in_root(self, library):
        write(library, "lib.json", 2)
        write(library, "fiction/lib.json", 2)
        files = find_files(library, ignore={"lib.json"})
        assert "lib.json" not in files
        assert "fiction/lib.json" in files

    def test_missing_root_is_fatal(self, tmp_path):
        with pytest.raises(LibraryUnavailableError):
            find_files(tmp_path / "nowhere")

    @pytest.mark.skipif(
        not hasattr(os, "geteuid") or os.geteuid() == 0,
        reason="permissions are not enforced for root",
    )
    def test_unreadable_directory_skipped(self, library):
        locked = library / "locked"
        write(library, "locked/secret.pdf", 10)
        locked.chmod(0)
        try:
            errors = []
            files = find_files(library, errors)
        finally:
            locked.chmod(0o755)
        assert "locked/secret.pdf" not in files
        assert "manual.djvu" in files
        assert len(errors) == 1


class TestScanLibrary:
    """Tests for diffing the tree against the canonical database."""

    def test_new_file_staged(self, library):
        """books/fiction/novel.pdf becomes a staging record with its categories."""
        result = scan_library(library, Database())
        record = result.staging["fiction/novel.pdf"]
        assert record.file == FileInfo(path="fiction/novel.pdf", kind="pdf", size=2048)
        assert record.categories == ["fiction"]
        assert record.added is not None
        assert record.isbn is None
        assert record.metadata.is_empty()

    def test_root_file_has_no_categories(self, library):
        result = scan_library(library, Database())
        assert result.staging["manual.djvu"].categories == []

    def test_known_files_not_staged(self, library):
        canonical = Database.from_records(
            [
                DocumentRecord(
                    identity="manual.djvu",
                    file=FileInfo(path="manual.djvu", kind="djvu", size=50),
                )
            ]
        )
        result = scan_library(library, canonical)
        assert "manual.djvu" not in result.staging
        assert len(result.staging) == 2

    def test_idempotent_after_merge(self, library):
        """A second scan after merging the first one's output stages nothing."""
        first = scan_library(library, Database())
        canonical = merge_databases(Database(), first.staging)
        second = scan_library(library, canonical)
        assert len(second.staging) == 0
        assert second.added == []

    def test_changed_size_reported_not_staged(self, library):
        known = DocumentRecord(
            identity="manual.djvu",
            file=FileInfo(path="manual.djvu", kind="djvu", size=10),
            categories=[],
        )
        result = scan_library(library, Database.from_records([known]))
        assert result.changed == ["manual.djvu"]
        assert "manual.djvu" not in result.staging
        assert known.file.size == 10

    def test_identity_on_disk_with_other_file_path(self, library):
        """A hand-edited record keeps its identity out of staging."""
        edited = DocumentRecord(
            identity="manual.djvu",
            file=FileInfo(path="fiction/novel.pdf", kind="pdf", size=2048),
        )
        result = scan_library(library, Database.from_records([edited]))
        assert "manual.djvu" not in result.staging
        assert "fiction/novel.pdf" not in result.staging
        assert "fiction/greek/odyssey.epub" in result.staging

    def test_missing_files_reported(self, library):
        gone = DocumentRecord(
            identity="gone.pdf", file=FileInfo(path="gone.pdf", kind="pdf", size=1)
        )
        result = scan_library(library, Database.from_records([gone]))
        assert result.missing == ["gone.pdf"]

    def test_canonical_not_modified(self, library):
        canonical = Database()
        scan_library(library, canonical)
        assert len(canonical) == 0

    def test_progress_callback(self, library):
        seen = []
        scan_library(library, Database(), progress_callback=seen.append)
        assert len(seen) == 3

    def test_missing_root(self, tmp_path):
        with pytest.raises(LibraryUnavailableError):
            scan_library(tmp_path / "nowhere", Database())
