"""Inline document comment model."""

from datetime import datetime
from enum import Enum

from sqlalchemy import JSON, BigInteger, DateTime, Integer, String, Text, func
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class CommentType(str, Enum):
    """Kind of comment."""

    COMMENT = "comment"
    SUGGESTION = "suggestion"


class CommentStatus(str, Enum):
    """Lifecycle status of a comment."""

    ACTIVE = "active"
    RESOLVED = "resolved"


class Comment(Base):
    """A comment anchored to free text in a repository file."""

    __tablename__ = "comments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)

    # Subscription key
    repo_full_name: Mapped[str] = mapped_column(String(255), index=True)
    file_path: Mapped[str] = mapped_column(String(500), index=True)
    file_id: Mapped[str] = mapped_column(String(500))

    # Author
    author_uid: Mapped[str] = mapped_column(String(255))
    author_display_name: Mapped[str] = mapped_column(String(255))
    author_photo_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    author_external_username: Mapped[str] = mapped_column(String(255), default="")

    # Content
    content: Mapped[str] = mapped_column(Text)
    type: Mapped[CommentType] = mapped_column(
        SQLEnum(CommentType),
        default=CommentType.COMMENT,
    )

    # Anchor (anchor_text is authoritative, offsets are a hint)
    anchor_start: Mapped[int] = mapped_column(Integer, default=0)
    anchor_end: Mapped[int] = mapped_column(Integer, default=0)
    anchor_text: Mapped[str] = mapped_column(Text, default="")

    reactions: Mapped[dict] = mapped_column(JSON, default=dict)  # emoji -> [uid, ...]
    parent_comment_id: Mapped[str | None] = mapped_column(
        String(36),
        nullable=True,
        index=True,
    )

    # Remote review system tracking
    remote_comment_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    remote_thread_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    status: Mapped[CommentStatus] = mapped_column(
        SQLEnum(CommentStatus),
        default=CommentStatus.ACTIVE,
        index=True,
    )
    branch: Mapped[str] = mapped_column(String(255), index=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )
