"""
Provider interface for metadata lookup services.

The lookup service is an opaque request/response boundary: given a query (an
ISBN or a cleaned title guess) it returns descriptive metadata or says it
found nothing. Tests plug in fakes that satisfy the same protocol.
"""

from dataclasses import dataclass
from typing import Any, Dict, Protocol

from .models import Metadata


@dataclass(frozen=True)
class Query:
    """A lookup request."""

    terms: str
    is_isbn: bool = False


class MetadataProvider(Protocol):
    """Protocol for metadata lookup services."""

    name: str

    def lookup(self, query: Query, timeout: float) -> Metadata:
        """Look up descriptive metadata.

        Args:
            query: What to look up
            timeout: Seconds before the request is abandoned

        Returns:
            Metadata with at least a title

        Raises:
            RetrievalNotFound: If the service has no match
            RetrievalTransportError: On network failure, timeout or a bad response
        """
        ...


def normalize_metadata(raw: Dict[str, Any]) -> Metadata:
    """Normalize provider fields to descriptive metadata.

    Lists are joined with ", ", numbers become strings, blanks are dropped.
    """
    metadata = Metadata()
    for name in Metadata.field_names():
        value = raw.get(name)
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            value = ", ".join(str(v).strip() for v in value if str(v).strip())
        value = " ".join(str(value).split())
        if value:
            setattr(metadata, name, value)
    return metadata
