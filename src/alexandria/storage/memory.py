"""In-memory storage implementation for testing and development.

Documents are kept as serialized text keyed by path, so loading goes through
the same decoding and version checks as the file backend.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from alexandria.errors import DocumentNotFoundError
from alexandria.storage.base import DocumentStore, StorageConfig


class InMemoryDocumentStore(DocumentStore):
    """In-memory document store implementation."""

    storage_type = "memory"

    def __init__(self, config: StorageConfig) -> None:
        """Initialize in-memory document store."""
        super().__init__(config)
        self.documents: dict[str, str] = {}

    def read_text(self, path: Path) -> str:
        """Read the raw document stored under ``path``."""
        try:
            return self.documents[str(path)]
        except KeyError as e:
            raise DocumentNotFoundError(
                f"Document not found: {path}",
                storage_type=self.storage_type,
                original_error=e,
            ) from e

    def write_text(self, path: Path, text: str) -> None:
        """Replace the document stored under ``path``."""
        self.documents[str(path)] = text

    def exists(self, path: Path) -> bool:
        """Return True if a document is stored under ``path``."""
        return str(path) in self.documents

    @contextmanager
    def locked(self, path: Path) -> Iterator[None]:
        """No-op: a single in-process store has no concurrent writers."""
        yield
