"""Database models."""

from .base import Base
from .comment import Comment, CommentStatus, CommentType

__all__ = [
    "Base",
    "Comment",
    "CommentStatus",
    "CommentType",
]
