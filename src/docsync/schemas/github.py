"""Pydantic models for GitHub API payloads consumed by the sync engine."""

from pydantic import BaseModel, ConfigDict, Field


class GitHubUser(BaseModel):
    """GitHub user or organization."""

    login: str
    id: int = 0
    avatar_url: str | None = None
    type: str = "User"  # "User" or "Organization"


class ActivePullRequest(BaseModel):
    """The open PR for the current branch. Replaced wholesale, never mutated."""

    model_config = ConfigDict(frozen=True)

    number: int
    head_sha: str
    base_ref: str
    html_url: str

    def with_head(self, head_sha: str) -> "ActivePullRequest":
        """Return a copy tracking a newer head commit."""
        return self.model_copy(update={"head_sha": head_sha})


class RemoteReviewComment(BaseModel):
    """A pull request review comment as returned by the REST API."""

    id: int
    body: str
    path: str
    line: int | None = None
    start_line: int | None = None
    user: GitHubUser | None = None
    in_reply_to_id: int | None = None
    diff_hunk: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    html_url: str | None = None


class RemoteReaction(BaseModel):
    """A reaction on a review comment."""

    id: int
    content: str
    user: GitHubUser | None = None


class ThreadInfo(BaseModel):
    """Review thread details for one comment, from the GraphQL API."""

    thread_id: str  # GraphQL node id, used by resolve/unresolve mutations
    is_resolved: bool = False
    reactions: list[RemoteReaction] = Field(default_factory=list)
