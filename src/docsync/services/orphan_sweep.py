"""Resolve comments whose anchor text disappeared from the document."""

import hashlib
import logging
from collections.abc import Callable

from ..config import settings
from ..models import CommentStatus
from ..schemas.comment import CommentView
from .anchors import is_orphaned
from .comment_store import LocalCommentStore
from .timers import Timer

logger = logging.getLogger(__name__)


def content_identity(content: str) -> str:
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def find_orphans(comments: list[CommentView], document: str, branch: str) -> list[str]:
    """Ids of active root comments on ``branch`` whose anchor no longer occurs."""
    return [
        c.id
        for c in comments
        if c.is_root
        and c.status == CommentStatus.ACTIVE
        and c.branch == branch
        and c.anchor_text
        and is_orphaned(document, c.anchor_text)
    ]


class OrphanSweeper:
    """
    Debounced orphan sweep, run at most once per (file, branch) per content.

    The resolve writes it issues change the comment set, not the content, so
    they never re-trigger a sweep.
    """

    def __init__(self, store: LocalCommentStore, debounce: float | None = None):
        self.store = store
        self.debounce = settings.orphan_sweep_debounce_seconds if debounce is None else debounce
        self._swept: dict[tuple[str, str], str] = {}
        self._timer = Timer("orphan-sweep")

    @property
    def pending(self) -> bool:
        return self._timer.pending

    def schedule(
        self,
        file_path: str,
        branch: str,
        document: str,
        comments: Callable[[], list[CommentView]],
    ) -> bool:
        """Debounce a sweep for this content; False if it was already swept."""
        if self._swept.get((file_path, branch)) == content_identity(document):
            return False
        self._timer.schedule(
            self.debounce,
            lambda: self.sweep(file_path, branch, document, comments()),
        )
        return True

    def cancel(self) -> None:
        self._timer.cancel()

    async def sweep(
        self,
        file_path: str,
        branch: str,
        document: str,
        comments: list[CommentView],
    ) -> list[str]:
        """Resolve orphaned comments now; returns the ids that were resolved."""
        key = (file_path, branch)
        identity = content_identity(document)
        if self._swept.get(key) == identity:
            return []
        # Mark before writing so the status updates cannot re-enter
        self._swept[key] = identity

        orphans = find_orphans(comments, document, branch)
        if orphans:
            logger.info(f"Resolving {len(orphans)} orphaned comments on {file_path}@{branch}")
            await self.store.update_many(orphans, status=CommentStatus.RESOLVED)
        return orphans
