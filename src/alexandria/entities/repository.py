"""Repository entities - tracked repositories and their GitHub snapshots."""

import re

from pydantic import Field, field_validator

from alexandria.entities.base import WireModel, now_ms

# https://host/owner/name(.git), git@host:owner/name.git, ssh://git@host:22/owner/name.git
_REMOTE_URL_PATTERN = re.compile(
    r"^(?:[a-z][a-z0-9+.-]*://)?(?:[^@/]+@)?[^/:]+(?::\d+)?[:/]"
    r"(?P<owner>[^/]+)/(?P<name>[^/]+?)(?:\.git)?/?$"
)


def parse_repository_id(remote_url: str | None) -> str | None:
    """Derive an ``owner/name`` identity from a git remote URL.

    Returns None when the URL is empty or does not have exactly an owner and
    a name segment.
    """
    if not remote_url:
        return None
    match = _REMOTE_URL_PATTERN.match(remote_url.strip())
    if not match:
        return None
    return f"{match.group('owner')}/{match.group('name')}"


class GithubRepository(WireModel):
    """A cached snapshot of upstream GitHub metadata.

    Snapshots are replaced wholesale when refreshed, never merged field by
    field.
    """

    owner: str
    name: str
    description: str | None = None
    html_url: str | None = None
    default_branch: str | None = None
    language: str | None = None
    license: str | None = None
    topics: list[str] = Field(default_factory=list)
    stars: int = Field(default=0, ge=0)
    forks: int = Field(default=0, ge=0)
    open_issues: int = Field(default=0, ge=0)
    is_fork: bool = False
    is_archived: bool = False
    pushed_at: int | None = None
    last_checked: int = Field(default_factory=now_ms, description="When this snapshot was fetched")

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


class AlexandriaRepository(WireModel):
    """A tracked repository, optionally linked to GitHub metadata."""

    name: str
    remote_url: str | None = Field(None, description="Absent for repositories without a tracked remote")
    registered_at: int = Field(default_factory=now_ms)
    github: GithubRepository | None = None
    book_color: str | None = None
    theme: str | None = None

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Repository name cannot be empty")
        return v

    @property
    def repository_id(self) -> str | None:
        """Stable identity used by collection memberships."""
        if self.github is not None:
            return self.github.full_name
        return parse_repository_id(self.remote_url)

    def refresh_github(self, snapshot: GithubRepository | None) -> "AlexandriaRepository":
        """Return a copy carrying ``snapshot`` in place of the old one."""
        return self.model_copy(update={"github": snapshot})
