"""Fatal errors: the library root or its database files are unusable.

Every other failure in the pipeline is per document and recovered locally.
"""


class InkshelfError(Exception):
    """Base exception for inkshelf operations."""

    pass


class LibraryUnavailableError(InkshelfError):
    """Raised when the library root is missing or unreadable."""

    pass


class LibraryLockedError(InkshelfError):
    """Raised when another invocation holds the library lock."""

    def __init__(self, root, message: str = None):
        self.root = root
        super().__init__(message or f"Another inkshelf run is using {root}")


class DatabaseError(InkshelfError):
    """Raised when a database file cannot be read, decoded or written."""

    def __init__(self, path, message: str):
        self.path = path
        super().__init__(f"{path}: {message}")


class DatabaseExistsError(DatabaseError):
    """Raised when initializing a database over an existing file."""

    def __init__(self, path):
        super().__init__(path, "file already exists")
