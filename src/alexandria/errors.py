"""Exception taxonomy for the collections store.

Validation and conflict errors are raised before anything is written, so the
store is unchanged when they surface. Storage errors describe persisted data
or filesystem problems and are left to the caller to handle.
"""

from typing import Any


class AlexandriaError(Exception):
    """Base exception for all collection store errors."""

    pass


class ValidationError(AlexandriaError, ValueError):
    """Raised when a record has an invalid shape."""

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None):
        self.message = message
        self.errors = errors or []
        super().__init__(message)


class ConflictError(AlexandriaError):
    """Raised when an operation would violate a store invariant."""

    pass


class NotFoundError(AlexandriaError):
    """Raised when a file, collection or membership does not exist."""

    pass


class IndexNotLoadedError(AlexandriaError):
    """Raised when querying a collection index before it was loaded."""

    pass


class StorageError(AlexandriaError):
    """Base exception for storage errors."""

    def __init__(self, message: str, storage_type: str, original_error: Exception | None = None):
        self.message = message
        self.storage_type = storage_type
        self.original_error = original_error
        super().__init__(self.message)


class DocumentNotFoundError(StorageError, NotFoundError):
    """Raised when a persisted document does not exist."""

    pass


class ParseError(StorageError):
    """Raised when a persisted document is malformed."""

    pass


class VersionError(StorageError):
    """Raised when a persisted document is newer than this release supports."""

    def __init__(self, message: str, storage_type: str, version: str, supported: str):
        self.version = version
        self.supported = supported
        super().__init__(message, storage_type=storage_type)


class StorageIOError(StorageError):
    """Raised when reading or writing a document fails at the filesystem level."""

    pass
