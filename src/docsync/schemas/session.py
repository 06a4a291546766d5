"""Document session API schemas."""

from typing import Literal

from pydantic import BaseModel

from ..models import CommentType
from .comment import CommentAuthor, CommentView
from .github import ActivePullRequest


class OpenSessionRequest(BaseModel):
    """Request to open a document."""

    owner: str
    repo: str
    path: str
    branch: str
    user: CommentAuthor


class SessionResponse(BaseModel):
    """Current view of an open document."""

    id: str
    owner: str
    repo: str
    path: str
    branch: str
    save_status: str
    active_pr: ActivePullRequest | None = None
    active_comment_count: int
    resolved_comment_count: int
    comments: list[CommentView]


class CreateCommentRequest(BaseModel):
    """New root comment; the selection is taken from the session's document."""

    content: str
    type: CommentType = CommentType.COMMENT
    selection_start: int | None = None
    selection_end: int | None = None


class CommentBodyRequest(BaseModel):
    """Reply or edit body."""

    content: str


class ReactionRequest(BaseModel):
    emoji: str


class ResolutionRequest(BaseModel):
    action: Literal["resolve", "unresolve"]


class ContentChangeRequest(BaseModel):
    content: str


class SwitchBranchRequest(BaseModel):
    branch: str
    discard_changes: bool = False


class CommentCreatedResponse(BaseModel):
    id: str
