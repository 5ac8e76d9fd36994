"""Service layer - wiring of the collection store.

- CollectionManager: Collection and membership mutations
- CollectionIndex: Relationship queries
- initialize_collections: Build both from configuration
"""

from alexandria.core.collections import CollectionManager
from alexandria.core.query import CollectionIndex
from alexandria.service.stores import initialize_collections

__all__ = [
    "CollectionIndex",
    "CollectionManager",
    "initialize_collections",
]
