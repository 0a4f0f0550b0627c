"""Unit tests for ISBN validation and extraction."""

import pytest

from inkshelf.domain.library.exceptions import IdentifierNotFound
from inkshelf.domain.library.isbn import (
    find_isbn,
    find_isbn_candidates,
    is_valid_isbn,
    normalize_isbn,
)


class TestChecksums:
    """Tests for the ISBN-10 and ISBN-13 check digits."""

    def test_valid_isbn13(self):
        assert is_valid_isbn("9780140449136")

    def test_isbn13_wrong_check_digit(self):
        assert not is_valid_isbn("9780140449137")

    def test_valid_isbn10(self):
        assert is_valid_isbn("0140449132")

    def test_isbn10_with_x_check_digit(self):
        """X stands for a check value of 10."""
        assert is_valid_isbn("080442957X")

    def test_isbn10_wrong_check_digit(self):
        assert not is_valid_isbn("0140449133")

    def test_x_only_allowed_last(self):
        assert not is_valid_isbn("08044295X7")

    def test_non_ascii_digits_rejected(self):
        """Digits from other scripts never reach the checksum."""
        assert not is_valid_isbn("٩٧٨٠١٤٠٤٤٩١٣٦")


class TestIsValidIsbn:
    """Tests for is_valid_isbn with separators."""

    @pytest.mark.parametrize(
        "value",
        ["978-0-14-044913-6", "978 0 14 044913 6", "0-14-044913-2", "080442957x"],
    )
    def test_separators_ignored(self, value):
        assert is_valid_isbn(value)

    @pytest.mark.parametrize("value", ["", "12345", "97801404491361", "abcdefghij"])
    def test_wrong_length_or_garbage(self, value):
        assert not is_valid_isbn(value)

    def test_normalize(self):
        assert normalize_isbn("0-8044-2957-x") == "080442957X"


class TestFindCandidates:
    """Tests for locating ISBNs in free text."""

    def test_hyphenated_isbn13_in_text(self):
        text = "Penguin Classics\nISBN 978-0-14-044913-6\nPrinted in England"
        assert list(find_isbn_candidates(text)) == ["9780140449136"]

    def test_invalid_checksum_skipped(self):
        text = "ISBN 978-0-14-044913-7"
        assert list(find_isbn_candidates(text)) == []

    def test_document_order(self):
        text = "ISBN 0-14-044913-2 (pbk)\nISBN 978-0-14-044913-6 (ebook)"
        assert list(find_isbn_candidates(text)) == ["0140449132", "9780140449136"]

    def test_other_numbers_ignored(self):
        text = "Copyright 2003, 1946. All rights reserved. Page 12 of 400."
        assert list(find_isbn_candidates(text)) == []

    def test_isbn_with_x(self):
        assert list(find_isbn_candidates("ISBN: 0-8044-2957-X.")) == ["080442957X"]


class TestFindIsbn:
    """Tests for the leading-page window."""

    def test_first_page(self):
        pages = ["ISBN 978-0-14-044913-6", "ISBN 0-8044-2957-X"]
        assert find_isbn(pages) == "9780140449136"

    def test_first_valid_wins_across_pages(self):
        pages = ["no identifier here", "ISBN 978-0-14-044913-7", "ISBN 0-8044-2957-X"]
        assert find_isbn(pages) == "080442957X"

    def test_last_page_of_window(self):
        pages = [""] * 9 + ["ISBN 978-0-14-044913-6"]
        assert find_isbn(pages, window=10) == "9780140449136"

    def test_page_outside_window_ignored(self):
        """An ISBN only on page window+1 is not found."""
        pages = [""] * 10 + ["ISBN 978-0-14-044913-6"]
        with pytest.raises(IdentifierNotFound):
            find_isbn(pages, window=10)

    def test_nothing_found(self):
        with pytest.raises(IdentifierNotFound):
            find_isbn(["Chapter One", "It was a dark and stormy night."])
