"""Abstract base class for document storage backends.

Why this exists:
- Keeps envelope decoding, version checks and validation in one place
- Lets backends differ only in how raw text is read, written and locked
- Enables testing with an in-memory implementation

How to extend:
1. Subclass DocumentStore
2. Implement read_text, write_text, exists and locked
3. Register the backend in create_document_store
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from alexandria.entities import CollectionMembershipsData, CollectionsData, Envelope
from alexandria.errors import ParseError
from alexandria.storage.codec import decode_document, encode_document


class StorageConfig(BaseModel):
    """Configuration for document storage backends."""

    store_type: str = "json"
    collections_file: str = "collections.json"
    memberships_file: str = "collection-memberships.json"
    indent: int = Field(default=2, ge=0)
    lock_timeout: float = Field(default=5.0, gt=0, description="Seconds to wait for exclusive access")
    lock_poll_interval: float = Field(default=0.05, gt=0)
    stale_lock_seconds: float | None = Field(
        default=300.0, gt=0, description="Lock files older than this are broken; None disables"
    )


class DocumentStore(ABC):
    """Abstract interface for persisting the collection documents.

    Implementations must handle:
    - Reading raw document text
    - Atomic writes (a failed write leaves the previous document intact)
    - Scoped exclusive access to a document
    """

    storage_type: str = "abstract"

    def __init__(self, config: StorageConfig) -> None:
        """Initialize storage with configuration."""
        self.config = config

    @abstractmethod
    def read_text(self, path: Path) -> str:
        """Read the raw document at ``path``.

        Raises:
            DocumentNotFoundError: If the document does not exist
            StorageIOError: If reading fails
        """
        pass

    @abstractmethod
    def write_text(self, path: Path, text: str) -> None:
        """Replace the document at ``path`` atomically.

        Raises:
            StorageIOError: If writing fails; the previous document is untouched
        """
        pass

    @abstractmethod
    def exists(self, path: Path) -> bool:
        """Return True if a document exists at ``path``."""
        pass

    @abstractmethod
    def locked(self, path: Path) -> AbstractContextManager[None]:
        """Hold exclusive access to ``path`` for the duration of the block.

        Must be re-entrant for the same store instance.

        Raises:
            StorageIOError: If access cannot be acquired in time
        """
        pass

    def load(self, path: str | Path) -> Envelope:
        """Load and validate a versioned document.

        Args:
            path: Document location

        Returns:
            CollectionsData or CollectionMembershipsData, depending on content

        Raises:
            DocumentNotFoundError: If the document does not exist
            ParseError: If the content is malformed
            VersionError: If the document is newer than supported
        """
        path = Path(path)
        text = self.read_text(path)
        return decode_document(text, source=str(path), storage_type=self.storage_type)

    def load_collections(self, path: str | Path) -> CollectionsData:
        """Load a collections document, rejecting any other kind."""
        return self._load_kind(path, CollectionsData)

    def load_memberships(self, path: str | Path) -> CollectionMembershipsData:
        """Load a memberships document, rejecting any other kind."""
        return self._load_kind(path, CollectionMembershipsData)

    def save(self, path: str | Path, data: Envelope) -> None:
        """Serialize and atomically write a document.

        Documents that ``load`` would refuse are never written.

        Raises:
            VersionError: If data.version is newer than supported
            ConflictError: If a collection id or membership pair repeats
            StorageIOError: If writing fails
        """
        path = Path(path)
        text = encode_document(
            data,
            indent=self.config.indent,
            source=str(path),
            storage_type=self.storage_type,
        )
        with self.locked(path):
            self.write_text(path, text)

    def _load_kind(self, path: str | Path, kind: type[Any]) -> Any:
        data = self.load(path)
        if not isinstance(data, kind):
            raise ParseError(
                f"{path} holds {type(data).__name__}, expected {kind.__name__}",
                storage_type=self.storage_type,
            )
        return data
