"""One open document: wires the comment store, sync engine and autosave together."""

import asyncio
import logging
import uuid
from typing import Literal

from ..exceptions import CommentNotFoundError, UnsavedChangesError
from ..models import CommentStatus, CommentType
from ..schemas.comment import CommentAuthor, CommentDraft, CommentView
from ..schemas.github import ActivePullRequest
from ..schemas.repo_config import SaveConfig
from .anchors import Anchor, Selection, find_comment_for_click, resolve_anchor
from .autosave import AutosaveOrchestrator, DocumentBuffer
from .comment_store import LocalCommentStore, count_by_status, filter_for_branch
from .github_client import GitHubClient
from .identity_bridge import IdentityBridge
from .inbound_sync import InboundSyncPoller
from .orphan_sweep import OrphanSweeper
from .reactions import toggle_reaction
from .remote_sync import RemoteSyncClient
from .state import AppState, SaveStatus, StateChange
from .timers import spawn

logger = logging.getLogger(__name__)


class DocumentSession:
    """
    The comment and save state of one file as seen by one user.

    Local store writes are awaited and their errors propagate to the caller.
    Remote projections are spawned in the background and only run while a
    pull request is active for the current branch.
    """

    def __init__(
        self,
        gh: GitHubClient,
        store: LocalCommentStore,
        owner: str,
        repo: str,
        file_path: str,
        branch: str,
        user: CommentAuthor,
        config: SaveConfig | None = None,
        poll_interval: float | None = None,
        sweep_debounce: float | None = None,
        status_display_seconds: float | None = None,
    ):
        self.id = str(uuid.uuid4())
        self.gh = gh
        self.store = store
        self.file_path = file_path
        self.user = user

        self.state = AppState(owner, repo, branch)
        self.buffer = DocumentBuffer()
        self._comments: list[CommentView] = []
        self._by_id: dict[str, CommentView] = {}

        self.bridge = IdentityBridge(self._lookup)
        self.remote = RemoteSyncClient(gh, self.state, store, self.bridge, self._lookup, file_path)
        self.poller = InboundSyncPoller(
            gh,
            self.state,
            store,
            self.bridge,
            file_path,
            document=lambda: self.buffer.content,
            interval=poll_interval,
        )
        self.sweeper = OrphanSweeper(store, debounce=sweep_debounce)
        self.autosave = AutosaveOrchestrator(
            gh,
            self.state,
            file_path,
            self.buffer,
            config=config,
            status_display_seconds=status_display_seconds,
        )

        self._unsubscribe_store = None
        self._unsubscribe_state = self.state.subscribe(self._on_state_change)

    # Views exposed upward

    @property
    def comments(self) -> list[CommentView]:
        """Comments visible on the current branch, oldest first."""
        return filter_for_branch(self._comments, self.state.current_branch)

    @property
    def active_comment_count(self) -> int:
        return count_by_status(self.comments, CommentStatus.ACTIVE)

    @property
    def resolved_comment_count(self) -> int:
        return count_by_status(self.comments, CommentStatus.RESOLVED)

    @property
    def save_status(self) -> SaveStatus:
        return self.state.save_status

    @property
    def active_pr(self) -> ActivePullRequest | None:
        return self.state.active_pr

    def resolve_remote_id(self, local_id: str) -> int | None:
        return self.bridge.resolve(local_id)

    def find_comment_for_click(self, text: str, offset: int | None = None) -> CommentView | None:
        return find_comment_for_click(self.comments, text, offset)

    # Lifecycle

    async def open(self) -> None:
        """Subscribe to comments, load the file and look for an open PR."""
        self._unsubscribe_store = await self.store.subscribe(
            self.state.repo_full_name, self.file_path, self._on_comments
        )
        await self.load_content()
        await self.detect_pull_request()

    async def close(self) -> None:
        if self._unsubscribe_store is not None:
            self._unsubscribe_store()
        self._unsubscribe_state()
        self.sweeper.cancel()
        self.autosave.close()
        await self.poller.stop()

    async def load_content(self) -> None:
        """Load the file at the current branch into the buffer."""
        branch = self.state.current_branch
        remote_file = await self.gh.get_content(
            self.state.owner, self.state.repo, self.file_path, branch
        )
        if branch != self.state.current_branch:
            return
        self.buffer.content = remote_file.content
        self.buffer.sha = remote_file.sha
        self.buffer.dirty = False
        self._schedule_sweep()

    async def detect_pull_request(self) -> ActivePullRequest | None:
        """Look up the open PR for the current branch; errors leave sync inactive."""
        branch = self.state.current_branch
        try:
            pr = await self.gh.find_open_pull_request(self.state.owner, self.state.repo, branch)
        except Exception as e:
            logger.warning(f"PR lookup failed for {self.state.repo_full_name}@{branch}: {e}")
            return None
        # Discard results for a branch we already left
        if pr is not None and branch == self.state.current_branch:
            self.state.set_active_pr(pr)
        return pr

    def _on_comments(self, comments: list[CommentView]) -> None:
        self._comments = comments
        self._by_id = {c.id: c for c in comments}

    def _lookup(self, comment_id: str) -> CommentView | None:
        return self._by_id.get(comment_id)

    def _on_state_change(self, change: StateChange) -> None:
        if change.field == "branch" and change.reload_content:
            spawn(self._reload_for_branch(), name=f"branch-reload:{self.file_path}")
        elif change.field == "active_pr" and change.new is not None:
            self.poller.on_pr_detected(change.new)

    async def _reload_for_branch(self) -> None:
        await self.load_content()
        await self.detect_pull_request()

    def _schedule_sweep(self) -> None:
        self.sweeper.schedule(
            self.file_path,
            self.state.current_branch,
            self.buffer.content,
            lambda: self._comments,
        )

    # User operations

    def _require(self, comment_id: str) -> CommentView:
        comment = self._lookup(comment_id)
        if comment is None:
            raise CommentNotFoundError(comment_id)
        return comment

    async def add_comment(
        self,
        content: str,
        selection: Selection | None = None,
        type: CommentType = CommentType.COMMENT,
    ) -> str:
        """Create a root comment anchored to the selection (or file-level)."""
        anchor = resolve_anchor(selection) if selection else Anchor(text="", start=0, end=0)
        draft = CommentDraft(
            file_id=self.buffer.sha or self.file_path,
            author=self.user,
            content=content,
            type=type,
            anchor_start=anchor.start,
            anchor_end=anchor.end,
            anchor_text=anchor.text,
            branch=self.state.current_branch,
        )
        comment_id = await self.store.create(self.state.repo_full_name, self.file_path, draft)

        if self.state.active_pr is not None:
            spawn(
                self.remote.create_remote(comment_id, content, anchor.text, anchor.start),
                name=f"remote-create:{comment_id}",
            )
        return comment_id

    async def reply(self, parent_id: str, content: str) -> str:
        """Reply to a thread; replies to replies attach to the root."""
        parent = self._require(parent_id)
        if not parent.is_root:
            parent = self._require(parent.parent_comment_id)

        draft = CommentDraft(
            file_id=self.buffer.sha or self.file_path,
            author=self.user,
            content=content,
            anchor_start=parent.anchor_start,
            anchor_end=parent.anchor_end,
            parent_comment_id=parent.id,
            branch=parent.branch,
        )
        comment_id = await self.store.create(self.state.repo_full_name, self.file_path, draft)

        if self.state.active_pr is not None:
            spawn(
                self.remote.reply(comment_id, parent.id, content),
                name=f"remote-reply:{comment_id}",
            )
        return comment_id

    async def edit_comment(self, comment_id: str, content: str) -> None:
        await self.store.update(comment_id, content=content)
        if self.state.active_pr is not None:
            spawn(self.remote.update(comment_id, content), name=f"remote-update:{comment_id}")

    async def delete_comment(self, comment_id: str) -> None:
        """Delete a comment and, for a root comment, its replies."""
        comment = self._require(comment_id)
        doomed = [comment_id]
        if comment.is_root:
            doomed += [c.id for c in self._comments if c.parent_comment_id == comment_id]

        # Resolve remote ids while the local records still exist
        remote_ids = [self.bridge.resolve(local_id) for local_id in doomed]
        for local_id in doomed:
            await self.store.delete(local_id)

        if self.state.active_pr is not None:
            for remote_id in remote_ids:
                if remote_id is not None:
                    spawn(self.remote.delete(remote_id), name=f"remote-delete:{remote_id}")

    async def toggle_reaction(self, comment_id: str, emoji: str) -> dict[str, list[str]]:
        """Toggle the current user's reaction; returns the new reaction map."""
        comment = self._require(comment_id)
        reactions, removed = toggle_reaction(comment.reactions, emoji, self.user.uid)
        await self.store.update(comment_id, reactions=reactions)

        if self.state.active_pr is not None:
            spawn(
                self.remote.set_reaction(
                    comment_id, emoji, self.user.external_username, remove=removed
                ),
                name=f"remote-reaction:{comment_id}",
            )
        return reactions

    async def set_resolution(
        self,
        comment_id: str,
        action: Literal["resolve", "unresolve"],
    ) -> None:
        """Resolve or reopen a thread locally and on the remote thread."""
        comment = self._require(comment_id)
        status = CommentStatus.RESOLVED if action == "resolve" else CommentStatus.ACTIVE
        await self.store.update(comment.id, status=status)
        if self.state.active_pr is not None:
            spawn(
                self.remote.set_thread_resolution(comment.id, action),
                name=f"remote-{action}:{comment_id}",
            )

    def on_content_change(self, content: str) -> bool:
        """Editor change: debounce autosave and the orphan sweep."""
        scheduled = self.autosave.on_content_change(content)
        self._schedule_sweep()
        return scheduled

    async def save(self) -> SaveStatus:
        return await self.autosave.save()

    def on_focus(self) -> asyncio.Task | None:
        return self.poller.on_focus()

    def on_visibility_hidden(self) -> asyncio.Task | None:
        return self.autosave.on_visibility_hidden()

    def switch_branch(self, branch: str, discard_changes: bool = False) -> None:
        """
        User-initiated branch switch: reloads content and re-detects the PR.

        Raises UnsavedChangesError when the buffer has uncommitted edits,
        unless ``discard_changes`` is set.
        """
        if self.buffer.dirty and branch != self.state.current_branch:
            if not discard_changes:
                raise UnsavedChangesError(
                    f"{self.file_path} has unsaved changes on {self.state.current_branch}"
                )
            logger.warning(f"Discarding unsaved changes to {self.file_path} for branch {branch}")
        self.autosave.on_branch_switched(branch)
        self.state.set_branch(branch)
