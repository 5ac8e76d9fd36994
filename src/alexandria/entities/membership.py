"""CollectionMembership entity - a repository/collection edge."""

from pydantic import ConfigDict, Field, field_validator

from alexandria.entities.base import WireModel, now_ms


class MembershipMetadata(WireModel):
    """Collection-specific metadata for one repository.

    Keys other than ``pinned`` and ``notes`` are kept as-is.
    """

    model_config = ConfigDict(extra="allow")

    pinned: bool | None = Field(None, description="Pin to top of collection")
    notes: str | None = None


class CollectionMembership(WireModel):
    """Maps a repository identity to a collection (many-to-many).

    Uses the repository identity rather than a local clone, so all clones of
    a repository share the same memberships and a repository with no clone
    can still belong to collections.
    """

    repository_id: str = Field(..., description="Repository identity, e.g. 'owner/name'")
    collection_id: str = Field(..., description="Collection identifier")
    added_at: int = Field(default_factory=now_ms, ge=0, description="Unix time in milliseconds")
    metadata: MembershipMetadata | None = None

    @field_validator("repository_id", "collection_id")
    @classmethod
    def id_not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Membership identifiers cannot be empty")
        return v

    @property
    def key(self) -> tuple[str, str]:
        return (self.repository_id, self.collection_id)

    @property
    def is_pinned(self) -> bool:
        return bool(self.metadata and self.metadata.pinned)
