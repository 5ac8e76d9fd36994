"""Versioned top-level documents persisted to disk."""

from typing import ClassVar

from pydantic import Field

from alexandria.entities.base import WireModel
from alexandria.entities.collection import Collection
from alexandria.entities.membership import CollectionMembership

CURRENT_VERSION = "1.0"


class CollectionsData(WireModel):
    """Storage structure for collections.json."""

    items_key: ClassVar[str] = "collections"

    version: str = CURRENT_VERSION
    collections: list[Collection] = Field(default_factory=list)

    @classmethod
    def empty(cls) -> "CollectionsData":
        return cls(version=CURRENT_VERSION)


class CollectionMembershipsData(WireModel):
    """Storage structure for collection-memberships.json."""

    items_key: ClassVar[str] = "memberships"

    version: str = CURRENT_VERSION
    memberships: list[CollectionMembership] = Field(default_factory=list)

    @classmethod
    def empty(cls) -> "CollectionMembershipsData":
        return cls(version=CURRENT_VERSION)


Envelope = CollectionsData | CollectionMembershipsData
