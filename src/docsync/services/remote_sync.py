"""Best-effort projection of local comment operations onto GitHub PR reviews."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Literal

from .anchors import AnchorLocation, locate
from .comment_store import LocalCommentStore
from .github_client import GitHubClient
from .identity_bridge import CommentLookup, IdentityBridge
from .reactions import emoji_to_github_reaction
from .state import AppState

logger = logging.getLogger(__name__)

DEFAULT_LOCATION = AnchorLocation(line=1)


class SyncStatus(str, Enum):
    """How a best-effort projection ended."""

    OK = "ok"
    SKIPPED = "skipped"  # Preconditions not met (no PR, no remote id, ...)
    FAILED = "failed"  # The remote call raised; already logged


@dataclass
class SyncOutcome:
    """
    Result of a fire-and-forget remote call.

    Callers never have to check it: failures are logged where they happen
    and never raised past this module.
    """

    status: SyncStatus
    detail: str = ""
    result: Any = None

    @property
    def succeeded(self) -> bool:
        return self.status == SyncStatus.OK

    @classmethod
    def ok(cls, result: Any = None) -> "SyncOutcome":
        return cls(SyncStatus.OK, result=result)

    @classmethod
    def skipped(cls, detail: str) -> "SyncOutcome":
        return cls(SyncStatus.SKIPPED, detail)

    @classmethod
    def failed(cls, detail: str) -> "SyncOutcome":
        return cls(SyncStatus.FAILED, detail)


class RemoteSyncClient:
    """
    Outbound comment sync for one file.

    Every operation is gated on an active PR and on the remote ids it needs
    being resolvable through the identity bridge; otherwise it is a no-op.
    """

    def __init__(
        self,
        gh: GitHubClient,
        state: AppState,
        store: LocalCommentStore,
        bridge: IdentityBridge,
        lookup: CommentLookup,
        file_path: str,
    ):
        self.gh = gh
        self.state = state
        self.store = store
        self.bridge = bridge
        self.lookup = lookup
        self.file_path = file_path

    async def _attempt(self, action: str, call: Callable[[], Awaitable[Any]]) -> SyncOutcome:
        try:
            result = await call()
        except Exception as e:
            logger.warning(f"Remote {action} failed for {self.state.repo_full_name}:{self.file_path}: {e}")
            return SyncOutcome.failed(str(e))
        return SyncOutcome.ok(result)

    async def _place(self, head_sha: str, anchor_text: str, hint_offset: int | None) -> AnchorLocation:
        """Line placement at the PR head; line 1 when the anchor can't be found."""
        try:
            remote_file = await self.gh.get_content(
                self.state.owner, self.state.repo, self.file_path, head_sha
            )
        except Exception as e:
            logger.info(f"Could not load {self.file_path}@{head_sha[:8]} for placement: {e}")
            return DEFAULT_LOCATION
        return locate(remote_file.content, anchor_text, hint_offset) or DEFAULT_LOCATION

    async def create_remote(
        self,
        local_id: str,
        content: str,
        anchor_text: str,
        hint_offset: int | None = None,
    ) -> SyncOutcome:
        """Mirror a new root comment as a line comment on the active PR."""
        pr = self.state.active_pr
        if pr is None:
            return SyncOutcome.skipped("no active pull request")

        location = await self._place(pr.head_sha, anchor_text, hint_offset)

        async def call():
            remote = await self.gh.create_review_comment(
                self.state.owner,
                self.state.repo,
                pr.number,
                body=content,
                commit_id=pr.head_sha,
                path=self.file_path,
                line=location.line,
                start_line=location.start_line,
            )
            # Bridge first: the store write below may not have round-tripped yet
            self.bridge.record(local_id, remote.id)
            await self.store.update(local_id, remote_comment_id=remote.id)
            return remote

        return await self._attempt("create", call)

    async def reply(self, local_id: str, parent_local_id: str, content: str) -> SyncOutcome:
        pr = self.state.active_pr
        if pr is None:
            return SyncOutcome.skipped("no active pull request")
        parent_remote_id = self.bridge.resolve(parent_local_id)
        if parent_remote_id is None:
            return SyncOutcome.skipped("parent comment was never synced")

        async def call():
            remote = await self.gh.reply_to_review_comment(
                self.state.owner, self.state.repo, pr.number, parent_remote_id, content
            )
            self.bridge.record(local_id, remote.id)
            await self.store.update(local_id, remote_comment_id=remote.id)
            return remote

        return await self._attempt("reply", call)

    async def update(self, local_id: str, content: str) -> SyncOutcome:
        if self.state.active_pr is None:
            return SyncOutcome.skipped("no active pull request")
        remote_id = self.bridge.resolve(local_id)
        if remote_id is None:
            return SyncOutcome.skipped("comment was never synced")

        return await self._attempt(
            "update",
            lambda: self.gh.update_review_comment(
                self.state.owner, self.state.repo, remote_id, content
            ),
        )

    async def delete(self, remote_id: int | None) -> SyncOutcome:
        """
        Delete a remote comment.

        Takes the already-resolved remote id: the local record is gone by the
        time this runs, so it can no longer be resolved from the local id.
        """
        if self.state.active_pr is None:
            return SyncOutcome.skipped("no active pull request")
        if remote_id is None:
            return SyncOutcome.skipped("comment was never synced")

        return await self._attempt(
            "delete",
            lambda: self.gh.delete_review_comment(self.state.owner, self.state.repo, remote_id),
        )

    async def set_reaction(
        self,
        local_id: str,
        emoji: str,
        external_username: str,
        remove: bool = False,
    ) -> SyncOutcome:
        """Add or remove the acting user's reaction on the remote comment."""
        if self.state.active_pr is None:
            return SyncOutcome.skipped("no active pull request")
        reaction = emoji_to_github_reaction(emoji)
        if reaction is None:
            return SyncOutcome.skipped(f"no GitHub reaction for {emoji!r}")
        remote_id = self.bridge.resolve(local_id)
        if remote_id is None:
            return SyncOutcome.skipped("comment was never synced")

        owner, repo = self.state.owner, self.state.repo

        async def call():
            if not remove:
                await self.gh.add_reaction(owner, repo, remote_id, reaction)
                return None
            for existing in await self.gh.list_reactions(owner, repo, remote_id):
                if (
                    existing.content == reaction
                    and existing.user is not None
                    and existing.user.login == external_username
                ):
                    await self.gh.delete_reaction(owner, repo, remote_id, existing.id)
                    return existing.id
            return None

        return await self._attempt("reaction", call)

    async def set_thread_resolution(
        self,
        local_id: str,
        action: Literal["resolve", "unresolve"],
    ) -> SyncOutcome:
        """Resolve or reopen the remote review thread a comment belongs to."""
        if self.state.active_pr is None:
            return SyncOutcome.skipped("no active pull request")
        comment = self.lookup(local_id)
        thread_id = comment.remote_thread_id if comment else None
        if not thread_id:
            # Thread ids are assigned remotely and only learned by inbound sync
            return SyncOutcome.skipped("thread id not known yet")

        if action == "resolve":
            return await self._attempt("resolve", lambda: self.gh.resolve_thread(thread_id))
        return await self._attempt("unresolve", lambda: self.gh.unresolve_thread(thread_id))
