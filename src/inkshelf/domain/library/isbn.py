"""
ISBN validation and extraction from text.

Candidates are runs of digit groups joined by single hyphens or spaces, so
"ISBN 978-0-14-044913-6" and "0 14 044913 2" are both found. Check digits
are verified by isbnlib; only strings of exactly 10 or 13 characters
(separators ignored) whose check digit is right are ever returned.
"""

import re
from typing import Iterator, Sequence

import isbnlib

from .exceptions import IdentifierNotFound

# Digit groups separated by a single hyphen (ASCII or Unicode) or space.
# The ISBN-10 check character X may close a run, attached or as its own group.
_RUN_RE = re.compile(r"\d+(?:[ \-‐‑‒–]\d+)*(?:[ \-‐‑‒–]?[Xx]\b)?", re.ASCII)
_GROUP_SPLIT_RE = re.compile(r"[ \-‐‑‒–]")

DEFAULT_PAGE_WINDOW = 10


def normalize_isbn(value: str) -> str:
    """Digits and a trailing upper-case X, or '' if `value` can't be an ISBN."""
    return isbnlib.canonical(value)


def is_valid_isbn(value: str) -> bool:
    """True for a checksum-valid ISBN-10 or ISBN-13, separators ignored."""
    return isbnlib.is_isbn13(value) or isbnlib.is_isbn10(value)


def _candidates_in_run(run: str) -> Iterator[str]:
    groups = _GROUP_SPLIT_RE.split(run)
    for start in range(len(groups)):
        joined = ""
        lengths = {}
        for group in groups[start:]:
            if joined.endswith(("X", "x")):
                break  # X only ends an ISBN-10
            joined += group
            if len(joined) > 13:
                break
            if len(joined) in (10, 13):
                lengths[len(joined)] = joined
        # At the same start, prefer the longer form
        for length in (13, 10):
            if length in lengths:
                yield lengths[length].upper()


def find_isbn_candidates(text: str) -> Iterator[str]:
    """Yield checksum-valid ISBNs in document order."""
    for match in _RUN_RE.finditer(text):
        for candidate in _candidates_in_run(match.group(0)):
            if is_valid_isbn(candidate):
                yield candidate


def find_isbn(pages: Sequence[str], window: int = DEFAULT_PAGE_WINDOW) -> str:
    """Return the first valid ISBN in the leading `window` pages.

    Raises:
        IdentifierNotFound: If no page in the window holds a valid ISBN
    """
    for page in pages[:window]:
        for candidate in find_isbn_candidates(page):
            return candidate
    raise IdentifierNotFound(f"no valid ISBN in the first {window} pages")
