"""Comment schemas shared by the store, the sync engine and the API."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from ..models import Comment, CommentStatus, CommentType


class CommentAuthor(BaseModel):
    """Who wrote a comment."""

    uid: str
    display_name: str
    photo_url: str | None = None
    external_username: str = ""  # login on the remote review system


class CommentDraft(BaseModel):
    """A comment about to be written to the local store."""

    file_id: str
    author: CommentAuthor
    content: str
    type: CommentType = CommentType.COMMENT
    anchor_start: int = 0
    anchor_end: int = 0
    anchor_text: str = ""
    parent_comment_id: str | None = None
    branch: str


class CommentView(BaseModel):
    """Immutable snapshot of a stored comment, as delivered to subscribers."""

    model_config = ConfigDict(frozen=True)

    id: str
    repo_full_name: str
    file_path: str
    file_id: str
    author: CommentAuthor
    content: str
    type: CommentType
    anchor_start: int
    anchor_end: int
    anchor_text: str
    reactions: dict[str, list[str]] = Field(default_factory=dict)
    parent_comment_id: str | None = None
    remote_comment_id: int | None = None
    remote_thread_id: str | None = None
    status: CommentStatus
    branch: str
    created_at: datetime
    updated_at: datetime

    @property
    def is_root(self) -> bool:
        return self.parent_comment_id is None

    @classmethod
    def from_model(cls, comment: Comment) -> "CommentView":
        """Build a snapshot from an ORM row."""
        return cls(
            id=comment.id,
            repo_full_name=comment.repo_full_name,
            file_path=comment.file_path,
            file_id=comment.file_id,
            author=CommentAuthor(
                uid=comment.author_uid,
                display_name=comment.author_display_name,
                photo_url=comment.author_photo_url,
                external_username=comment.author_external_username,
            ),
            content=comment.content,
            type=comment.type,
            anchor_start=comment.anchor_start,
            anchor_end=comment.anchor_end,
            anchor_text=comment.anchor_text,
            reactions=dict(comment.reactions or {}),
            parent_comment_id=comment.parent_comment_id,
            remote_comment_id=comment.remote_comment_id,
            remote_thread_id=comment.remote_thread_id,
            status=comment.status,
            branch=comment.branch,
            created_at=comment.created_at,
            updated_at=comment.updated_at,
        )
