"""
Open Library metadata lookups.

Uses the public search API: ISBN queries go through the `isbn` parameter,
title guesses through `q`. Only the best match is used.
"""

from typing import Any, Dict

import requests
from loguru import logger

from inkshelf.core.config import DEFAULT_LOOKUP_URL

from ..exceptions import RetrievalNotFound, RetrievalTransportError
from ..models import Metadata
from ..provider import Query, normalize_metadata

SEARCH_FIELDS = "title,subtitle,author_name,first_publish_year,publisher,language"


class OpenLibraryProvider:
    """MetadataProvider backed by the Open Library search API."""

    name = "openlibrary"

    def __init__(
        self, endpoint: str = DEFAULT_LOOKUP_URL, user_agent: str = "inkshelf"
    ):
        self.endpoint = endpoint
        self.headers = {"User-Agent": user_agent, "Accept": "application/json"}

    def build_params(self, query: Query) -> Dict[str, Any]:
        params: Dict[str, Any] = {"limit": 1, "fields": SEARCH_FIELDS}
        if query.is_isbn:
            params["isbn"] = query.terms
        else:
            params["q"] = query.terms
        return params

    def lookup(self, query: Query, timeout: float) -> Metadata:
        try:
            response = requests.get(
                self.endpoint,
                params=self.build_params(query),
                headers=self.headers,
                timeout=timeout,
            )
        except requests.Timeout as e:
            raise RetrievalTransportError(f"timed out after {timeout}s") from e
        except requests.RequestException as e:
            raise RetrievalTransportError(f"request failed: {e}") from e

        if response.status_code == 404:
            raise RetrievalNotFound(f"no match for {query.terms!r}")
        if not response.ok:
            raise RetrievalTransportError(f"HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise RetrievalTransportError("response is not JSON") from e

        docs = payload.get("docs") if isinstance(payload, dict) else None
        if not docs:
            raise RetrievalNotFound(f"no match for {query.terms!r}")

        metadata = parse_search_doc(docs[0])
        if not metadata.title:
            raise RetrievalNotFound(f"match for {query.terms!r} has no title")

        logger.debug(f"Open Library: {query.terms!r} -> {metadata.title!r}")
        return metadata


def parse_search_doc(doc: Dict[str, Any]) -> Metadata:
    """Map one search result onto descriptive fields."""
    publishers = doc.get("publisher") or []
    languages = doc.get("language") or []
    return normalize_metadata(
        {
            "title": doc.get("title"),
            "subtitle": doc.get("subtitle"),
            "author": doc.get("author_name"),
            "year": doc.get("first_publish_year"),
            # First entry only: editions list many publishers and languages
            "publisher": publishers[0] if publishers else None,
            "language": languages[0] if languages else None,
        }
    )
