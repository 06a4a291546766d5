"""Pydantic models for GitHub webhook payloads."""

from typing import Literal

from pydantic import BaseModel

from .github import GitHubUser, RemoteReviewComment


class GitHubRepository(BaseModel):
    """GitHub repository info."""

    id: int
    full_name: str
    name: str
    default_branch: str = "main"
    private: bool = False


class PullRequestRef(BaseModel):
    """PR head or base branch info."""

    sha: str
    ref: str


class PullRequest(BaseModel):
    """Pull request details."""

    number: int
    title: str = ""
    state: str = "open"
    html_url: str = ""
    user: GitHubUser | None = None
    head: PullRequestRef
    base: PullRequestRef


class PullRequestEvent(BaseModel):
    """Webhook payload for pull_request events."""

    action: str
    number: int
    pull_request: PullRequest
    repository: GitHubRepository


class ReviewCommentEvent(BaseModel):
    """Webhook payload for pull_request_review_comment events."""

    action: Literal["created", "edited", "deleted"]
    comment: RemoteReviewComment
    pull_request: PullRequest
    repository: GitHubRepository


class ReviewThreadEvent(BaseModel):
    """Webhook payload for pull_request_review_thread events."""

    action: Literal["resolved", "unresolved"]
    pull_request: PullRequest
    repository: GitHubRepository
