"""Entities - Domain models for the collections store.

This module contains pure domain entities without business logic:
- Collection: A named grouping of repositories
- CollectionMembership: A repository/collection edge with metadata
- AlexandriaRepository: A tracked repository
- GithubRepository: A cached snapshot of GitHub metadata
- CollectionsData / CollectionMembershipsData: Versioned envelopes
"""

from alexandria.entities.base import now_ms
from alexandria.entities.collection import Collection
from alexandria.entities.envelope import (
    CURRENT_VERSION,
    CollectionMembershipsData,
    CollectionsData,
    Envelope,
)
from alexandria.entities.membership import CollectionMembership, MembershipMetadata
from alexandria.entities.repository import (
    AlexandriaRepository,
    GithubRepository,
    parse_repository_id,
)

__all__ = [
    "CURRENT_VERSION",
    "AlexandriaRepository",
    "Collection",
    "CollectionMembership",
    "CollectionMembershipsData",
    "CollectionsData",
    "Envelope",
    "GithubRepository",
    "MembershipMetadata",
    "now_ms",
    "parse_repository_id",
]
