"""Collection entity - a named grouping of repositories."""

import re
from typing import Any
from uuid import uuid4

from pydantic import Field, JsonValue, field_validator

from alexandria.entities.base import WireModel, now_ms

COLLECTION_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._:-]*$")


class Collection(WireModel):
    """A collection for organizing repositories.

    Collections do not require local clones, so they can reference remote
    repositories alongside locally cloned ones. At most one collection in a
    store is the default; that is enforced by the collection manager, not
    here.
    """

    id: str = Field(default_factory=lambda: str(uuid4()), description="Opaque unique identifier")
    name: str = Field(..., description="Display name, e.g. 'Reading List'")
    description: str | None = None
    theme: str | None = None
    icon: str | None = None
    is_default: bool | None = Field(None, description="Default collection for new clones")
    created_at: int = Field(default_factory=now_ms, ge=0, description="Unix time in milliseconds")
    updated_at: int = Field(default_factory=now_ms, ge=0, description="Unix time in milliseconds")
    suggested_clone_path: str | None = Field(None, description="Path hint for clone suggestions")
    metadata: dict[str, JsonValue] | None = None

    @field_validator("id")
    @classmethod
    def id_well_formed(cls, v: str) -> str:
        if not COLLECTION_ID_PATTERN.match(v):
            raise ValueError(f"Collection id '{v}' is not a well-formed identifier")
        return v

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Collection name cannot be empty")
        return v

    @field_validator("updated_at")
    @classmethod
    def updated_after_created(cls, v: int, info: Any) -> int:
        if "created_at" in info.data and v < info.data["created_at"]:
            raise ValueError("updated_at must not be earlier than created_at")
        return v

    def __hash__(self) -> int:
        return hash(self.id)

    def touch(self, now: int | None = None) -> "Collection":
        """Return a copy with ``updated_at`` advanced to ``now``."""
        timestamp = max(now if now is not None else now_ms(), self.updated_at)
        return self.model_copy(update={"updated_at": timestamp})
