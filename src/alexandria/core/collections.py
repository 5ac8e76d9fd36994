"""Collection management logic.

Provides read-modify-write operations over the two collection documents:
- Creating, updating and removing collections
- Keeping at most one default collection
- Adding, updating and removing memberships without duplicates

Every mutation holds exclusive access to the documents it touches, checks
the store invariants on the loaded data, and only then saves. A rejected
operation leaves both documents unchanged.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Optional

from alexandria.core.validation import validate_collection, validate_membership
from alexandria.entities import (
    Collection,
    CollectionMembership,
    CollectionMembershipsData,
    CollectionsData,
    MembershipMetadata,
    now_ms,
)
from alexandria.errors import ConflictError, DocumentNotFoundError, NotFoundError, ValidationError
from alexandria.observability.logging import get_logger
from alexandria.storage.base import DocumentStore

logger = get_logger(__name__)

# Fields update_collection may change; id and created_at are immutable
UPDATABLE_FIELDS = frozenset(
    {"name", "description", "theme", "icon", "suggested_clone_path", "metadata"}
)


class CollectionManager:
    """Manager for collection and membership CRUD operations.

    Owns the persisted collections and memberships documents and enforces
    the cross-record invariants: unique collection ids, a single default
    collection, and unique (repository, collection) memberships.
    """

    def __init__(
        self,
        store: DocumentStore,
        collections_path: str | Path,
        memberships_path: str | Path,
    ):
        """Initialize collection manager.

        Args:
            store: Document store used to read and write both documents
            collections_path: Location of collections.json
            memberships_path: Location of collection-memberships.json
        """
        self.store = store
        self.collections_path = Path(collections_path)
        self.memberships_path = Path(memberships_path)

    @contextmanager
    def _exclusive(self) -> Iterator[None]:
        # Always collections first, then memberships
        with self.store.locked(self.collections_path), self.store.locked(self.memberships_path):
            yield

    def _read_collections(self) -> CollectionsData:
        try:
            return self.store.load_collections(self.collections_path)
        except DocumentNotFoundError:
            return CollectionsData.empty()

    def _read_memberships(self) -> CollectionMembershipsData:
        try:
            return self.store.load_memberships(self.memberships_path)
        except DocumentNotFoundError:
            return CollectionMembershipsData.empty()

    # Collections

    def list_collections(self) -> list[Collection]:
        """List all collections in stored order."""
        return list(self._read_collections().collections)

    def get_collection(self, collection_id: str) -> Optional[Collection]:
        """Retrieve a collection by ID.

        Returns:
            Collection if found, None otherwise
        """
        for collection in self._read_collections().collections:
            if collection.id == collection_id:
                return collection
        return None

    def add_collection(self, collection: Collection) -> Collection:
        """Add a new collection.

        If the collection is flagged as default, the flag is cleared on every
        other collection in the same write.

        Args:
            collection: Collection to add

        Returns:
            The stored collection

        Raises:
            ValidationError: If the collection is invalid
            ConflictError: If a collection with the same id exists
        """
        collection = validate_collection(collection)
        logger.info("collection_add_started", collection_id=collection.id, name=collection.name)

        with self._exclusive():
            data = self._read_collections()
            if any(existing.id == collection.id for existing in data.collections):
                raise ConflictError(f"Collection '{collection.id}' already exists")

            collections = data.collections
            if collection.is_default:
                collections = _clear_default(collections, now_ms())
            collections = [*collections, collection]

            self.store.save(self.collections_path, data.model_copy(update={"collections": collections}))

        logger.info(
            "collection_added",
            collection_id=collection.id,
            name=collection.name,
            is_default=bool(collection.is_default),
        )
        return collection

    def update_collection(self, collection_id: str, **changes: Any) -> Collection:
        """Change display fields of a collection and bump updated_at.

        Args:
            collection_id: Collection to update
            **changes: New values for name, description, theme, icon,
                suggested_clone_path or metadata

        Returns:
            The updated collection

        Raises:
            ValidationError: If a field is not updatable or the result is invalid
            NotFoundError: If the collection does not exist
        """
        immutable = set(changes) - UPDATABLE_FIELDS
        if immutable:
            raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(immutable))}")

        with self._exclusive():
            data = self._read_collections()
            index = _find_collection(data.collections, collection_id)

            current = data.collections[index]
            updated = validate_collection(
                {**current.model_dump(), **changes, "updated_at": max(now_ms(), current.updated_at)}
            )
            collections = list(data.collections)
            collections[index] = updated

            self.store.save(self.collections_path, data.model_copy(update={"collections": collections}))

        logger.info("collection_updated", collection_id=collection_id, fields=sorted(changes))
        return updated

    def set_default_collection(self, collection_id: str) -> Collection:
        """Make a collection the default, clearing the previous default.

        Raises:
            NotFoundError: If the collection does not exist
        """
        with self._exclusive():
            data = self._read_collections()
            index = _find_collection(data.collections, collection_id)

            timestamp = now_ms()
            collections = _clear_default(data.collections, timestamp)
            target = collections[index].touch(timestamp).model_copy(update={"is_default": True})
            collections[index] = target

            self.store.save(self.collections_path, data.model_copy(update={"collections": collections}))

        logger.info("default_collection_set", collection_id=collection_id)
        return target

    def remove_collection(self, collection_id: str) -> bool:
        """Remove a collection and all of its memberships.

        Args:
            collection_id: Collection to remove

        Returns:
            True if removed, False if not found
        """
        logger.info("collection_remove_started", collection_id=collection_id)

        with self._exclusive():
            data = self._read_collections()
            remaining = [c for c in data.collections if c.id != collection_id]
            if len(remaining) == len(data.collections):
                logger.warning("collection_not_found", collection_id=collection_id)
                return False

            memberships = self._read_memberships()
            kept = [m for m in memberships.memberships if m.collection_id != collection_id]
            removed_count = len(memberships.memberships) - len(kept)

            # Collection first; a failed memberships write leaves dangling memberships
            self.store.save(self.collections_path, data.model_copy(update={"collections": remaining}))
            if removed_count:
                self.store.save(
                    self.memberships_path, memberships.model_copy(update={"memberships": kept})
                )

        logger.info(
            "collection_removed",
            collection_id=collection_id,
            memberships_removed=removed_count,
        )
        return True

    def ensure_default_collection(self, name: str = "Default") -> Collection:
        """Ensure a default collection exists, creating it if necessary.

        Args:
            name: Name for the collection if one has to be created

        Returns:
            The default collection (existing or newly created)
        """
        with self._exclusive():
            for collection in self._read_collections().collections:
                if collection.is_default:
                    logger.debug("default_collection_exists", collection_id=collection.id)
                    return collection

            return self.add_collection(Collection(name=name, is_default=True))

    # Memberships

    def list_memberships(self) -> list[CollectionMembership]:
        """List all memberships in stored order."""
        return list(self._read_memberships().memberships)

    def add_membership(self, membership: CollectionMembership) -> CollectionMembership:
        """Add a repository to a collection.

        Args:
            membership: Membership to add

        Returns:
            The stored membership

        Raises:
            ValidationError: If the membership is invalid
            NotFoundError: If the collection does not exist
            ConflictError: If the repository is already in the collection
        """
        membership = validate_membership(membership)

        with self._exclusive():
            collections = self._read_collections()
            if not any(c.id == membership.collection_id for c in collections.collections):
                raise NotFoundError(f"Collection '{membership.collection_id}' not found")

            data = self._read_memberships()
            if any(existing.key == membership.key for existing in data.memberships):
                raise ConflictError(
                    f"Repository '{membership.repository_id}' is already in "
                    f"collection '{membership.collection_id}'"
                )

            self.store.save(
                self.memberships_path,
                data.model_copy(update={"memberships": [*data.memberships, membership]}),
            )

        logger.info(
            "membership_added",
            repository_id=membership.repository_id,
            collection_id=membership.collection_id,
        )
        return membership

    def update_membership_metadata(
        self,
        repository_id: str,
        collection_id: str,
        pinned: Optional[bool] = None,
        notes: Optional[str] = None,
    ) -> CollectionMembership:
        """Change the pinned flag or notes of a membership.

        Arguments left as None keep their current value. Other metadata keys
        are preserved.

        Raises:
            NotFoundError: If the membership does not exist
        """
        with self._exclusive():
            data = self._read_memberships()
            for index, membership in enumerate(data.memberships):
                if membership.key == (repository_id, collection_id):
                    break
            else:
                raise NotFoundError(
                    f"Repository '{repository_id}' is not in collection '{collection_id}'"
                )

            metadata = membership.metadata.model_dump() if membership.metadata else {}
            if pinned is not None:
                metadata["pinned"] = pinned
            if notes is not None:
                metadata["notes"] = notes

            updated = membership.model_copy(update={"metadata": MembershipMetadata(**metadata)})
            memberships = list(data.memberships)
            memberships[index] = updated

            self.store.save(self.memberships_path, data.model_copy(update={"memberships": memberships}))

        logger.info(
            "membership_updated",
            repository_id=repository_id,
            collection_id=collection_id,
            pinned=updated.is_pinned,
        )
        return updated

    def remove_membership(self, repository_id: str, collection_id: str) -> bool:
        """Remove a repository from a collection.

        Returns:
            True if removed, False if the membership did not exist
        """
        with self._exclusive():
            data = self._read_memberships()
            kept = [m for m in data.memberships if m.key != (repository_id, collection_id)]
            if len(kept) == len(data.memberships):
                logger.warning(
                    "membership_not_found",
                    repository_id=repository_id,
                    collection_id=collection_id,
                )
                return False

            self.store.save(self.memberships_path, data.model_copy(update={"memberships": kept}))

        logger.info("membership_removed", repository_id=repository_id, collection_id=collection_id)
        return True


def _find_collection(collections: list[Collection], collection_id: str) -> int:
    for index, collection in enumerate(collections):
        if collection.id == collection_id:
            return index
    raise NotFoundError(f"Collection '{collection_id}' not found")


def _clear_default(collections: list[Collection], timestamp: int) -> list[Collection]:
    """Return a copy of ``collections`` with every default flag cleared."""
    return [
        c.touch(timestamp).model_copy(update={"is_default": False}) if c.is_default else c
        for c in collections
    ]
