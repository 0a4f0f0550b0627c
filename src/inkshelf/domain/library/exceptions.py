"""Per-document pipeline errors.

None of these abort a pass: the failing document is logged, flagged for
review where relevant, and the batch continues.
"""

from inkshelf.core.errors import InkshelfError


class ScanIOError(InkshelfError):
    """Raised when a file or directory under the library root can't be read."""

    def __init__(self, path, cause: Exception):
        self.path = path
        self.cause = cause
        super().__init__(f"Can't read {path}: {cause}")


class IdentifierNotFound(InkshelfError):
    """Raised when no checksum-valid ISBN appears in the leading-page window."""

    pass


class TextLayerUnavailable(InkshelfError):
    """Raised when a document has no usable text layer."""

    pass


class RetrievalError(InkshelfError):
    """Base exception for metadata lookups."""

    pass


class RetrievalNotFound(RetrievalError):
    """Raised when the lookup service has no match for a query."""

    pass


class RetrievalTransportError(RetrievalError):
    """Raised on network failure, timeout or an unusable service response."""

    pass


class ValidationError(InkshelfError):
    """A field failed its own validity predicate and was dropped."""

    def __init__(self, identity: str, field_name: str, value, reason: str):
        self.identity = identity
        self.field_name = field_name
        self.value = value
        self.reason = reason
        super().__init__(f"{identity}: dropped {field_name}={value!r} ({reason})")
