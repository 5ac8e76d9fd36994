"""Relationship queries over a loaded collection store.

A CollectionIndex is either unloaded or loaded. ``load()`` reads both
documents and builds lookup tables; queries before that raise
IndexNotLoadedError. The index is a snapshot: call ``load()`` again after
the documents change.
"""

from collections import defaultdict
from pathlib import Path
from typing import Optional

from alexandria.entities import (
    Collection,
    CollectionMembership,
    CollectionMembershipsData,
    CollectionsData,
)
from alexandria.errors import DocumentNotFoundError, IndexNotLoadedError
from alexandria.observability.logging import get_logger
from alexandria.storage.base import DocumentStore

logger = get_logger(__name__)


def membership_sort_key(membership: CollectionMembership) -> tuple[bool, int, str]:
    """Display order: pinned first, then oldest first, then by repository id."""
    return (not membership.is_pinned, membership.added_at, membership.repository_id)


class CollectionIndex:
    """In-memory view of collections and memberships for lookups."""

    def __init__(
        self,
        store: Optional[DocumentStore] = None,
        collections_path: Optional[str | Path] = None,
        memberships_path: Optional[str | Path] = None,
    ):
        """Initialize an unloaded index.

        Args:
            store: Document store to load from
            collections_path: Location of collections.json
            memberships_path: Location of collection-memberships.json
        """
        self.store = store
        self.collections_path = Path(collections_path) if collections_path else None
        self.memberships_path = Path(memberships_path) if memberships_path else None

        self._loaded = False
        self._collections: dict[str, Collection] = {}
        self._by_repository: dict[str, list[CollectionMembership]] = {}
        self._by_collection: dict[str, list[CollectionMembership]] = {}

    @classmethod
    def from_data(
        cls,
        collections: CollectionsData,
        memberships: CollectionMembershipsData,
    ) -> "CollectionIndex":
        """Build a loaded index from envelopes already in memory."""
        index = cls()
        index._build(collections, memberships)
        return index

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    def load(self) -> "CollectionIndex":
        """Read both documents and (re)build the index.

        Missing documents count as empty. Parse and version errors propagate.

        Returns:
            self, for chaining
        """
        if self.store is None or self.collections_path is None or self.memberships_path is None:
            raise IndexNotLoadedError("CollectionIndex has no store to load from")

        try:
            collections = self.store.load_collections(self.collections_path)
        except DocumentNotFoundError:
            collections = CollectionsData.empty()

        try:
            memberships = self.store.load_memberships(self.memberships_path)
        except DocumentNotFoundError:
            memberships = CollectionMembershipsData.empty()

        self._build(collections, memberships)
        return self

    def _build(self, collections: CollectionsData, memberships: CollectionMembershipsData) -> None:
        by_repository: dict[str, list[CollectionMembership]] = defaultdict(list)
        by_collection: dict[str, list[CollectionMembership]] = defaultdict(list)
        for membership in memberships.memberships:
            by_repository[membership.repository_id].append(membership)
            by_collection[membership.collection_id].append(membership)

        for members in by_collection.values():
            members.sort(key=membership_sort_key)

        self._collections = {collection.id: collection for collection in collections.collections}
        self._by_repository = dict(by_repository)
        self._by_collection = dict(by_collection)
        self._loaded = True

        logger.debug(
            "collection_index_loaded",
            collections=len(self._collections),
            memberships=len(memberships.memberships),
        )

    def _require_loaded(self) -> None:
        if not self._loaded:
            raise IndexNotLoadedError("CollectionIndex must be loaded before querying")

    def collections(self) -> list[Collection]:
        """All collections in stored order."""
        self._require_loaded()
        return list(self._collections.values())

    def collections_for(self, repository_id: str) -> set[Collection]:
        """All collections containing the repository.

        Memberships pointing at a collection that no longer exists are skipped.
        """
        self._require_loaded()
        return {
            self._collections[m.collection_id]
            for m in self._by_repository.get(repository_id, [])
            if m.collection_id in self._collections
        }

    def memberships_for(self, repository_id: str) -> list[CollectionMembership]:
        """All memberships of a repository, in stored order."""
        self._require_loaded()
        return list(self._by_repository.get(repository_id, []))

    def repositories_in(self, collection_id: str) -> list[str]:
        """Repository ids in a collection, in display order.

        Pinned memberships come first, then by added_at ascending, with ties
        broken by repository id.
        """
        self._require_loaded()
        return [m.repository_id for m in self._by_collection.get(collection_id, [])]

    def default_collection(self) -> Optional[Collection]:
        """The collection flagged as default, or None."""
        self._require_loaded()
        defaults = [c for c in self._collections.values() if c.is_default]
        if len(defaults) > 1:
            logger.warning(
                "multiple_default_collections",
                collection_ids=[c.id for c in defaults],
            )
        return defaults[0] if defaults else None
