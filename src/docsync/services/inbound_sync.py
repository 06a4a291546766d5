"""Pull remote review comments into the local comment store."""

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from ..config import settings
from ..models import CommentStatus
from ..schemas.comment import CommentAuthor, CommentDraft, CommentView
from ..schemas.github import ActivePullRequest, RemoteReviewComment, ThreadInfo
from .anchors import anchor_from_line
from .comment_store import LocalCommentStore
from .github_client import GitHubClient
from .identity_bridge import IdentityBridge
from .reactions import github_reaction_to_emoji
from .state import AppState
from .timers import spawn

logger = logging.getLogger(__name__)


def remote_author(remote: RemoteReviewComment) -> CommentAuthor:
    """Local author record for a comment written on GitHub."""
    login = remote.user.login if remote.user else "unknown"
    return CommentAuthor(
        uid=f"github-{login}",
        display_name=login,
        photo_url=remote.user.avatar_url if remote.user else None,
        external_username=login if remote.user else "",
    )


def remote_reactions(thread: ThreadInfo | None) -> dict[str, list[str]]:
    """Local reaction map for a remote comment's reactions."""
    reactions: dict[str, list[str]] = {}
    if thread is None:
        return reactions
    for reaction in thread.reactions:
        emoji = github_reaction_to_emoji(reaction.content)
        if emoji is None or reaction.user is None:
            continue
        users = reactions.setdefault(emoji, [])
        uid = f"github-{reaction.user.login}"
        if uid not in users:
            users.append(uid)
    return reactions


class InboundSyncPoller:
    """
    Reconciles remote-authored review comments into the local store.

    Triggers: first detection of a PR for this file, window refocus, and a
    fixed interval while a PR is active. At most one reconciliation runs at a
    time; a trigger that fires while one is in flight is dropped, not queued.
    Failures are logged and left for the next trigger to retry.
    """

    def __init__(
        self,
        gh: GitHubClient,
        state: AppState,
        store: LocalCommentStore,
        bridge: IdentityBridge,
        file_path: str,
        document: Callable[[], str],
        interval: float | None = None,
    ):
        self.gh = gh
        self.state = state
        self.store = store
        self.bridge = bridge
        self.file_path = file_path
        self.document = document
        self.interval = settings.inbound_poll_interval_seconds if interval is None else interval

        self._in_flight = False
        self._synced_keys: set[str] = set()
        self._interval_task: asyncio.Task | None = None
        # Last remote state seen, so only remote-side changes are applied
        self._seen_updated_at: dict[int, str | None] = {}
        self._seen_resolved: dict[str, bool] = {}

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def on_pr_detected(self, pr: ActivePullRequest) -> asyncio.Task | None:
        """Sync once the first time a given PR is seen for this file."""
        key = f"{pr.number}:{self.file_path}"
        if key in self._synced_keys:
            return None
        self._synced_keys.add(key)
        self.start()
        return self.trigger("pr-detected")

    def on_focus(self) -> asyncio.Task | None:
        return self.trigger("focus")

    def trigger(self, reason: str = "manual") -> asyncio.Task | None:
        """Start a background reconciliation unless one is already running."""
        if self.state.active_pr is None:
            return None
        if self._in_flight:
            logger.debug(f"Inbound sync ({reason}) dropped: another poll is in flight")
            return None
        self._in_flight = True
        return spawn(self._run(reason), name=f"inbound-sync:{self.file_path}")

    async def poll(self, reason: str = "manual") -> bool:
        """Reconcile now; returns False if a poll was already in flight."""
        if self._in_flight:
            return False
        self._in_flight = True
        await self._run(reason)
        return True

    def start(self) -> None:
        """Start the interval trigger (idempotent)."""
        if self._interval_task is None or self._interval_task.done():
            self._interval_task = asyncio.get_running_loop().create_task(self._interval_loop())

    async def stop(self) -> None:
        if self._interval_task is not None:
            self._interval_task.cancel()
            try:
                await self._interval_task
            except asyncio.CancelledError:
                pass
            self._interval_task = None

    async def _interval_loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            if self.state.active_pr is not None:
                self.trigger("interval")

    async def _run(self, reason: str) -> None:
        try:
            pr = self.state.active_pr
            if pr is None:
                return
            logger.debug(f"Inbound sync ({reason}) for {self.file_path} on PR #{pr.number}")
            await self.reconcile(pr)
        except Exception as e:
            logger.warning(f"Inbound sync failed for {self.state.repo_full_name}:{self.file_path}: {e}")
        finally:
            self._in_flight = False

    async def reconcile(self, pr: ActivePullRequest) -> int:
        """Apply remote changes for one PR; returns the number of imported comments."""
        owner, repo = self.state.owner, self.state.repo
        remote_comments = await self.gh.list_review_comments(owner, repo, pr.number, self.file_path)
        try:
            threads = await self.gh.fetch_thread_details(owner, repo, pr.number)
        except Exception as e:
            # GraphQL may be unavailable to this token; REST data is still usable
            logger.info(f"Thread details unavailable for PR #{pr.number}: {e}")
            threads = {}

        local = await self.store.list_comments(self.state.repo_full_name, self.file_path)
        by_id = {c.id: c for c in local}
        local_by_remote: dict[int, str] = {
            c.remote_comment_id: c.id for c in local if c.remote_comment_id is not None
        }

        imported = 0
        # Parents have lower ids than their replies
        for remote in sorted(remote_comments, key=lambda c: c.id):
            thread = threads.get(remote.id)
            local_id = local_by_remote.get(remote.id) or self.bridge.local_id_for(remote.id)

            if local_id is not None:
                existing = by_id.get(local_id)
                if existing is not None:
                    await self._apply_remote_changes(existing, remote, thread)
                local_by_remote[remote.id] = local_id
                continue

            new_id = await self._import(remote, thread, local_by_remote)
            if new_id is not None:
                local_by_remote[remote.id] = new_id
                imported += 1

        if imported:
            logger.info(f"Imported {imported} review comments into {self.file_path}")
        return imported

    async def _apply_remote_changes(
        self,
        comment: CommentView,
        remote: RemoteReviewComment,
        thread: ThreadInfo | None,
    ) -> None:
        patch: dict[str, Any] = {}

        # Bodies: first sighting only records; later remote edits win
        seen = self._seen_updated_at.get(remote.id, remote.updated_at)
        if remote.id in self._seen_updated_at and remote.updated_at != seen:
            if remote.body != comment.content:
                patch["content"] = remote.body
        self._seen_updated_at[remote.id] = remote.updated_at

        if thread is not None:
            if comment.remote_thread_id != thread.thread_id:
                patch["remote_thread_id"] = thread.thread_id
            if comment.is_root:
                was_resolved = self._seen_resolved.get(thread.thread_id)
                self._seen_resolved[thread.thread_id] = thread.is_resolved
                if was_resolved is None:
                    # First sighting: a remote resolution propagates, an open
                    # remote thread never reopens a locally resolved comment
                    if thread.is_resolved and comment.status == CommentStatus.ACTIVE:
                        patch["status"] = CommentStatus.RESOLVED
                elif was_resolved != thread.is_resolved:
                    patch["status"] = (
                        CommentStatus.RESOLVED if thread.is_resolved else CommentStatus.ACTIVE
                    )
                if patch.get("status") == comment.status:
                    del patch["status"]

        if patch:
            await self.store.update(comment.id, **patch)

    async def _import(
        self,
        remote: RemoteReviewComment,
        thread: ThreadInfo | None,
        local_by_remote: dict[int, str],
    ) -> str | None:
        parent_id: str | None = None
        if remote.in_reply_to_id is not None:
            parent_id = local_by_remote.get(remote.in_reply_to_id)
            if parent_id is None:
                logger.debug(f"Skipping reply {remote.id}: parent {remote.in_reply_to_id} unknown")
                return None

        anchor = anchor_from_line(self.document(), remote.line) if parent_id is None else None
        draft = CommentDraft(
            file_id=self.file_path,
            author=remote_author(remote),
            content=remote.body,
            anchor_start=anchor.start if anchor else 0,
            anchor_end=anchor.end if anchor else 0,
            anchor_text=anchor.text if anchor else "",
            parent_comment_id=parent_id,
            branch=self.state.current_branch,
        )
        new_id = await self.store.create(self.state.repo_full_name, self.file_path, draft)
        self.bridge.record(new_id, remote.id)

        patch: dict[str, Any] = {"remote_comment_id": remote.id}
        reactions = remote_reactions(thread)
        if reactions:
            patch["reactions"] = reactions
        if thread is not None:
            patch["remote_thread_id"] = thread.thread_id
            self._seen_resolved.setdefault(thread.thread_id, thread.is_resolved)
            if parent_id is None and thread.is_resolved:
                patch["status"] = CommentStatus.RESOLVED
        self._seen_updated_at[remote.id] = remote.updated_at
        await self.store.update(new_id, **patch)
        return new_id
