"""Fast-path local -> remote comment id cache."""

import logging
from collections.abc import Callable

from ..schemas.comment import CommentView

logger = logging.getLogger(__name__)

CommentLookup = Callable[[str], CommentView | None]


class IdentityBridge:
    """
    Maps local comment ids to remote comment ids as soon as a remote create
    succeeds, ahead of the store subscription echoing ``remote_comment_id``.

    Not authoritative storage: ``resolve`` falls back to the comment record
    as last seen through the subscription. The map only grows and lives as
    long as the document view.
    """

    def __init__(self, lookup: CommentLookup):
        self._lookup = lookup
        self._remote_ids: dict[str, int] = {}

    def record(self, local_id: str, remote_id: int) -> None:
        self._remote_ids[local_id] = remote_id
        logger.debug(f"Bridged comment {local_id} -> remote {remote_id}")

    def resolve(self, local_id: str) -> int | None:
        remote_id = self._remote_ids.get(local_id)
        if remote_id is not None:
            return remote_id
        comment = self._lookup(local_id)
        return comment.remote_comment_id if comment else None

    def local_id_for(self, remote_id: int) -> str | None:
        """Reverse lookup over bridged entries only."""
        for local_id, known in self._remote_ids.items():
            if known == remote_id:
                return local_id
        return None

    def __len__(self) -> int:
        return len(self._remote_ids)
