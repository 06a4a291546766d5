"""Pydantic schemas."""

from .comment import CommentAuthor, CommentDraft, CommentView
from .github import (
    ActivePullRequest,
    GitHubUser,
    RemoteReaction,
    RemoteReviewComment,
    ThreadInfo,
)
from .github_webhooks import (
    GitHubRepository,
    PullRequestEvent,
    ReviewCommentEvent,
    ReviewThreadEvent,
)
from .repo_config import SaveConfig
from .session import (
    CommentBodyRequest,
    CommentCreatedResponse,
    ContentChangeRequest,
    CreateCommentRequest,
    OpenSessionRequest,
    ReactionRequest,
    ResolutionRequest,
    SessionResponse,
    SwitchBranchRequest,
)

__all__ = [
    "ActivePullRequest",
    "CommentAuthor",
    "CommentBodyRequest",
    "CommentCreatedResponse",
    "CommentDraft",
    "CommentView",
    "ContentChangeRequest",
    "CreateCommentRequest",
    "GitHubRepository",
    "GitHubUser",
    "OpenSessionRequest",
    "PullRequestEvent",
    "ReactionRequest",
    "RemoteReaction",
    "RemoteReviewComment",
    "ResolutionRequest",
    "ReviewCommentEvent",
    "ReviewThreadEvent",
    "SaveConfig",
    "SessionResponse",
    "SwitchBranchRequest",
    "ThreadInfo",
]
