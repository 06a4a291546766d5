"""Local comment store with push-based subscriptions per (repository, file)."""

import logging
import uuid
from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..exceptions import CommentNotFoundError
from ..models import Comment, CommentStatus
from ..schemas.comment import CommentDraft, CommentView
from .reactions import prune_reactions

logger = logging.getLogger(__name__)

CommentListener = Callable[[list[CommentView]], None]

# Fields a caller may patch through update()
UPDATABLE_FIELDS = frozenset(
    {
        "content",
        "type",
        "anchor_start",
        "anchor_end",
        "anchor_text",
        "reactions",
        "remote_comment_id",
        "remote_thread_id",
        "status",
    }
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LocalCommentStore:
    """
    The single source of truth for comment state seen by this client.

    Every committed write pushes the full, ordered comment set for the
    affected (repository, file) to all of its listeners.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory
        self._listeners: dict[tuple[str, str], list[CommentListener]] = {}

    async def subscribe(
        self,
        repo_full_name: str,
        file_path: str,
        on_update: CommentListener,
    ) -> Callable[[], None]:
        """
        Register ``on_update`` for (repo, file) and deliver the current set.

        Returns an unsubscribe function that is safe to call repeatedly.
        """
        key = (repo_full_name, file_path)
        self._listeners.setdefault(key, []).append(on_update)
        on_update(await self.list_comments(repo_full_name, file_path))

        def unsubscribe() -> None:
            listeners = self._listeners.get(key)
            if listeners and on_update in listeners:
                listeners.remove(on_update)
                if not listeners:
                    del self._listeners[key]

        return unsubscribe

    async def list_comments(self, repo_full_name: str, file_path: str) -> list[CommentView]:
        """All comments for a file, oldest first."""
        async with self.session_factory() as session:
            result = await session.execute(
                select(Comment)
                .where(
                    Comment.repo_full_name == repo_full_name,
                    Comment.file_path == file_path,
                )
                .order_by(Comment.created_at.asc(), Comment.id.asc())
            )
            return [CommentView.from_model(c) for c in result.scalars().all()]

    async def get(self, comment_id: str) -> CommentView | None:
        async with self.session_factory() as session:
            comment = await session.get(Comment, comment_id)
            return CommentView.from_model(comment) if comment else None

    async def create(
        self,
        repo_full_name: str,
        file_path: str,
        draft: CommentDraft,
    ) -> str:
        """Append a root comment or a reply; returns the new comment id."""
        now = _utcnow()
        comment = Comment(
            id=str(uuid.uuid4()),
            repo_full_name=repo_full_name,
            file_path=file_path,
            file_id=draft.file_id,
            author_uid=draft.author.uid,
            author_display_name=draft.author.display_name,
            author_photo_url=draft.author.photo_url,
            author_external_username=draft.author.external_username,
            content=draft.content,
            type=draft.type,
            anchor_start=draft.anchor_start,
            anchor_end=draft.anchor_end,
            # Replies never carry an anchor of their own
            anchor_text=draft.anchor_text if draft.parent_comment_id is None else "",
            reactions={},
            parent_comment_id=draft.parent_comment_id,
            remote_comment_id=None,
            remote_thread_id=None,
            status=CommentStatus.ACTIVE,
            branch=draft.branch,
            created_at=now,
            updated_at=now,
        )
        async with self.session_factory() as session:
            session.add(comment)
            await session.commit()

        logger.debug(f"Created comment {comment.id} on {repo_full_name}:{file_path}")
        await self._publish(repo_full_name, file_path)
        return comment.id

    async def update(self, comment_id: str, **patch: Any) -> CommentView:
        """Apply a partial update and bump ``updated_at``."""
        unknown = set(patch) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update fields: {sorted(unknown)}")

        async with self.session_factory() as session:
            comment = await session.get(Comment, comment_id)
            if comment is None:
                raise CommentNotFoundError(comment_id)

            for field, value in patch.items():
                if field == "reactions":
                    value = prune_reactions(value)
                setattr(comment, field, value)
            comment.updated_at = _utcnow()
            await session.commit()
            # Reload so both timestamps come back from the database alike
            await session.refresh(comment)
            view = CommentView.from_model(comment)

        await self._publish(view.repo_full_name, view.file_path)
        return view

    async def update_many(self, comment_ids: Iterable[str], **patch: Any) -> None:
        """Apply the same patch to several comments with one notification per file."""
        touched: set[tuple[str, str]] = set()
        async with self.session_factory() as session:
            for comment_id in comment_ids:
                comment = await session.get(Comment, comment_id)
                if comment is None:
                    continue
                for field, value in patch.items():
                    setattr(comment, field, value)
                comment.updated_at = _utcnow()
                touched.add((comment.repo_full_name, comment.file_path))
            await session.commit()

        for repo_full_name, file_path in touched:
            await self._publish(repo_full_name, file_path)

    async def delete(self, comment_id: str) -> None:
        """Remove a comment."""
        async with self.session_factory() as session:
            comment = await session.get(Comment, comment_id)
            if comment is None:
                raise CommentNotFoundError(comment_id)
            key = (comment.repo_full_name, comment.file_path)
            await session.delete(comment)
            await session.commit()

        await self._publish(*key)

    async def _publish(self, repo_full_name: str, file_path: str) -> None:
        listeners = list(self._listeners.get((repo_full_name, file_path), []))
        if not listeners:
            return
        comments = await self.list_comments(repo_full_name, file_path)
        for listener in listeners:
            listener(comments)


def filter_for_branch(comments: Iterable[CommentView], branch: str) -> list[CommentView]:
    """
    Comments visible on ``branch``.

    Root comments are visible when authored against the branch; replies are
    visible exactly when their root is.
    """
    comments = list(comments)
    visible_roots = {c.id for c in comments if c.is_root and c.branch == branch}
    return [
        c
        for c in comments
        if (c.is_root and c.id in visible_roots)
        or (not c.is_root and c.parent_comment_id in visible_roots)
    ]


def count_by_status(comments: Iterable[CommentView], status: CommentStatus) -> int:
    """Number of root comments (threads) with the given status."""
    return sum(1 for c in comments if c.is_root and c.status == status)
