"""Unit tests for the Open Library provider (HTTP mocked)."""

from unittest.mock import Mock, patch

import pytest
import requests

from inkshelf.core.config import RetrievalConfig
from inkshelf.domain.library.exceptions import RetrievalNotFound, RetrievalTransportError
from inkshelf.domain.library.provider import Query
from inkshelf.domain.library.providers import get_provider, list_providers
from inkshelf.domain.library.providers.openlibrary import (
    OpenLibraryProvider,
    parse_search_doc,
)


def response(status_code=200, payload=None, json_error=False):
    mock = Mock()
    mock.status_code = status_code
    mock.ok = 200 <= status_code < 400
    if json_error:
        mock.json.side_effect = ValueError("not json")
    else:
        mock.json.return_value = payload
    return mock


ODYSSEY_DOC = {
    "title": "The Odyssey",
    "author_name": ["Homer"],
    "first_publish_year": 1946,
    "publisher": ["Penguin Books", "Penguin Classics"],
    "language": ["eng", "gre"],
}


class TestBuildParams:
    """Tests for request parameters."""

    def test_isbn_query(self):
        params = OpenLibraryProvider().build_params(Query("9780140449136", is_isbn=True))
        assert params["isbn"] == "9780140449136"
        assert "q" not in params
        assert params["limit"] == 1

    def test_title_query(self):
        params = OpenLibraryProvider().build_params(Query("the odyssey"))
        assert params["q"] == "the odyssey"
        assert "isbn" not in params


class TestLookup:
    """Tests for response handling."""

    @patch("inkshelf.domain.library.providers.openlibrary.requests.get")
    def test_match(self, mock_get):
        mock_get.return_value = response(payload={"docs": [ODYSSEY_DOC]})
        provider = OpenLibraryProvider(endpoint="https://example.org/search.json")

        metadata = provider.lookup(Query("9780140449136", is_isbn=True), timeout=3.0)

        assert metadata.title == "The Odyssey"
        assert metadata.author == "Homer"
        assert metadata.year == "1946"
        _, kwargs = mock_get.call_args
        assert kwargs["timeout"] == 3.0
        assert mock_get.call_args[0][0] == "https://example.org/search.json"

    @patch("inkshelf.domain.library.providers.openlibrary.requests.get")
    def test_no_docs(self, mock_get):
        mock_get.return_value = response(payload={"numFound": 0, "docs": []})
        with pytest.raises(RetrievalNotFound):
            OpenLibraryProvider().lookup(Query("nothing"), timeout=1.0)

    @patch("inkshelf.domain.library.providers.openlibrary.requests.get")
    def test_doc_without_title(self, mock_get):
        mock_get.return_value = response(payload={"docs": [{"author_name": ["Homer"]}]})
        with pytest.raises(RetrievalNotFound):
            OpenLibraryProvider().lookup(Query("homer"), timeout=1.0)

    @patch("inkshelf.domain.library.providers.openlibrary.requests.get")
    def test_http_404(self, mock_get):
        mock_get.return_value = response(status_code=404)
        with pytest.raises(RetrievalNotFound):
            OpenLibraryProvider().lookup(Query("odyssey"), timeout=1.0)

    @patch("inkshelf.domain.library.providers.openlibrary.requests.get")
    def test_http_500(self, mock_get):
        mock_get.return_value = response(status_code=500)
        with pytest.raises(RetrievalTransportError, match="HTTP 500"):
            OpenLibraryProvider().lookup(Query("odyssey"), timeout=1.0)

    @patch("inkshelf.domain.library.providers.openlibrary.requests.get")
    def test_timeout(self, mock_get):
        mock_get.side_effect = requests.Timeout("read timed out")
        with pytest.raises(RetrievalTransportError, match="timed out"):
            OpenLibraryProvider().lookup(Query("odyssey"), timeout=1.0)

    @patch("inkshelf.domain.library.providers.openlibrary.requests.get")
    def test_connection_error(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("no route to host")
        with pytest.raises(RetrievalTransportError):
            OpenLibraryProvider().lookup(Query("odyssey"), timeout=1.0)

    @patch("inkshelf.domain.library.providers.openlibrary.requests.get")
    def test_invalid_json(self, mock_get):
        mock_get.return_value = response(json_error=True)
        with pytest.raises(RetrievalTransportError):
            OpenLibraryProvider().lookup(Query("odyssey"), timeout=1.0)


class TestParseSearchDoc:
    """Tests for mapping a search result."""

    def test_first_publisher_and_language(self):
        metadata = parse_search_doc(ODYSSEY_DOC)
        assert metadata.publisher == "Penguin Books"
        assert metadata.language == "eng"

    def test_multiple_authors_joined(self):
        metadata = parse_search_doc({"title": "Good Omens", "author_name": ["Terry Pratchett", "Neil Gaiman"]})
        assert metadata.author == "Terry Pratchett, Neil Gaiman"


class TestRegistry:
    """Tests for provider lookup by name."""

    def test_default_provider_uses_config(self):
        config = RetrievalConfig(endpoint="https://example.org/search.json", user_agent="test/1.0")
        provider = get_provider(config)
        assert provider.name == "openlibrary"
        assert provider.endpoint == "https://example.org/search.json"
        assert provider.headers["User-Agent"] == "test/1.0"

    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="Unknown provider"):
            get_provider(RetrievalConfig(), name="worldcat")

    def test_list_providers(self):
        assert "openlibrary" in list_providers()
