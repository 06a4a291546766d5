"""Autosave orchestration: branch isolation, content commits and auto-PRs."""

import asyncio
import fnmatch
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import PurePath

from ..config import settings
from ..exceptions import BranchCreationError, ContentWriteError, SaveError
from ..schemas.github import ActivePullRequest
from ..schemas.repo_config import SaveConfig
from .github_client import GitHubClient
from .state import AppState, SaveStatus
from .timers import Timer, spawn

logger = logging.getLogger(__name__)


@dataclass
class DocumentBuffer:
    """The in-memory edit buffer of the open file."""

    content: str = ""
    sha: str | None = None  # Blob sha the buffer was loaded from / last saved as
    dirty: bool = False


@dataclass
class PendingSaveState:
    """Decisions made for one save invocation."""

    target_branch: str
    base_branch: str
    is_first_commit_to_new_branch: bool = False


def matches_file_pattern(path: str, pattern: str) -> bool:
    """Glob match where ``**/`` may also match zero directories."""
    if pattern in ("", "*", "**", "**/*"):
        return True
    if PurePath(path).match(pattern) or fnmatch.fnmatch(path, pattern):
        return True
    return pattern.startswith("**/") and fnmatch.fnmatch(path, pattern[3:])


class AutosaveOrchestrator:
    """
    Saves the edit buffer, first creating an isolated branch when the save
    strategy asks for one, and optionally opening a PR from that branch once.

    Per invocation: idle -> saving -> saved | error. The terminal status is
    cleared back to idle after a display window and never blocks later saves.
    """

    def __init__(
        self,
        gh: GitHubClient,
        state: AppState,
        file_path: str,
        buffer: DocumentBuffer,
        config: SaveConfig | None = None,
        status_display_seconds: float | None = None,
    ):
        self.gh = gh
        self.state = state
        self.file_path = file_path
        self.buffer = buffer
        self.config = config or SaveConfig.get_default()
        self.status_display_seconds = (
            settings.save_status_display_seconds
            if status_display_seconds is None
            else status_display_seconds
        )

        # Session-lifetime guards
        self.session_branch: str | None = None
        self._session_base: str | None = None
        self._session_branch_committed = False
        self._auto_pr_created = False
        self._auto_pr_retry = False

        self._saving = False
        self._save_again = False
        self._debounce = Timer("autosave")
        self._status_reset = Timer("save-status")
        self.last_error: SaveError | None = None

    @property
    def autosave_pending(self) -> bool:
        return self._debounce.pending

    @property
    def auto_pr_created(self) -> bool:
        return self._auto_pr_created

    def new_branch_name(self, now: datetime | None = None) -> str:
        now = now or datetime.now()
        return f"{self.config.auto_branch_prefix}{now:%Y-%m-%d-%H%M}"

    def autosave_enabled(self) -> bool:
        if self.config.auto_commit_delay_seconds <= 0:
            return False
        if self.state.current_branch in self.config.exclude_branches:
            return False
        return matches_file_pattern(self.file_path, self.config.file_pattern)

    def on_content_change(self, content: str) -> bool:
        """Record an edit and (re)start the idle debounce. Returns True if scheduled."""
        self.buffer.content = content
        self.buffer.dirty = True
        self._status_reset.cancel()
        self.state.set_save_status(SaveStatus.IDLE)

        self._debounce.cancel()
        if not self.autosave_enabled():
            return False
        self._debounce.schedule(self.config.auto_commit_delay_seconds, self._autosave)
        return True

    def on_visibility_hidden(self) -> asyncio.Task | None:
        """Commit on close: save right away if there are unsaved edits."""
        if not (self.config.commit_on_close and self.buffer.dirty):
            return None
        self._debounce.cancel()
        return spawn(self._autosave(), name=f"commit-on-close:{self.file_path}")

    async def _autosave(self) -> None:
        try:
            await self.save()
        except SaveError:
            # Already surfaced through the save status
            pass

    async def save(self) -> SaveStatus:
        """
        Save now. Cancels a pending debounced autosave.

        Raises BranchCreationError or ContentWriteError; the buffer is left
        untouched on failure so the user can retry.
        """
        self._debounce.cancel()
        if self._saving:
            self._save_again = True
            return SaveStatus.SAVING

        self._saving = True
        self._status_reset.cancel()
        self.state.set_save_status(SaveStatus.SAVING)
        try:
            pending = await self._prepare_branch()
            commit_sha = await self._write_content(pending)
            self.last_error = None
            self.state.set_save_status(SaveStatus.SAVED)
            if pending.target_branch == self.session_branch:
                await self._maybe_create_pr(pending, commit_sha)
            return SaveStatus.SAVED
        except SaveError as e:
            logger.warning(f"Save of {self.file_path} failed: {e}")
            self.last_error = e
            self.state.set_save_status(SaveStatus.ERROR)
            raise
        finally:
            self._saving = False
            self._status_reset.schedule(self.status_display_seconds, self._clear_status)
            if self._save_again:
                self._save_again = False
                if self.buffer.dirty:
                    spawn(self._autosave(), name=f"autosave:{self.file_path}")

    def _clear_status(self) -> None:
        if self.state.save_status in (SaveStatus.SAVED, SaveStatus.ERROR):
            self.state.set_save_status(SaveStatus.IDLE)

    async def _prepare_branch(self) -> PendingSaveState:
        base = self.state.current_branch
        if self.config.save_strategy != "branch":
            return PendingSaveState(target_branch=base, base_branch=base)
        if self.session_branch is not None:
            return PendingSaveState(
                target_branch=self.session_branch,
                base_branch=self._session_base or base,
                is_first_commit_to_new_branch=not self._session_branch_committed,
            )

        name = self.new_branch_name()
        try:
            branches = await self.gh.list_branches(self.state.owner, self.state.repo)
            current = next((b for b in branches if b.name == base), None)
            if current is None:
                raise BranchCreationError(f"Could not find branch {base} to branch from")
            await self.gh.create_branch(self.state.owner, self.state.repo, name, current.sha)
        except BranchCreationError:
            raise
        except Exception as e:
            raise BranchCreationError(f"Failed to create branch {name}: {e}") from e

        logger.info(f"Created branch {name} from {base} ({current.sha[:8]})")
        self.session_branch = name
        self._session_base = base
        # The buffer already holds the content for the new branch; no reload
        self.state.set_branch(name, reload_content=False)
        return PendingSaveState(
            target_branch=name,
            base_branch=base,
            is_first_commit_to_new_branch=True,
        )

    async def _write_content(self, pending: PendingSaveState) -> str:
        content = self.buffer.content
        try:
            result = await self.gh.update_content(
                self.state.owner,
                self.state.repo,
                self.file_path,
                content,
                f"Update {self.file_path}",
                self.buffer.sha,
                pending.target_branch,
            )
        except Exception as e:
            raise ContentWriteError(f"Failed to save {self.file_path}: {e}") from e

        self.buffer.sha = result.sha
        # Edits made while the commit was in flight stay dirty
        if self.buffer.content == content:
            self.buffer.dirty = False
        if pending.target_branch == self.session_branch:
            self._session_branch_committed = True
        # The active PR belongs to the current branch; a commit to a branch we
        # already left must not move its head
        if self.state.current_branch == pending.target_branch:
            self.state.advance_head(result.commit_sha)
        return result.commit_sha

    async def _maybe_create_pr(self, pending: PendingSaveState, commit_sha: str) -> None:
        """One-shot auto-PR after a commit to the session branch; failure is non-fatal."""
        if not self.config.auto_create_pr or self._auto_pr_created:
            return
        # First commit to the new branch, or a retry after a failed attempt
        if not (pending.is_first_commit_to_new_branch or self._auto_pr_retry):
            return
        if self.state.active_pr is not None:
            return

        self._auto_pr_created = True
        try:
            created = await self.gh.create_pull_request(
                self.state.owner,
                self.state.repo,
                self.config.auto_create_pr_title,
                f"Automated PR created by docsync auto-save.\n\nBranch: `{pending.target_branch}`",
                pending.target_branch,
                pending.base_branch,
            )
        except Exception as e:
            logger.warning(f"Failed to create pull request for {pending.target_branch}: {e}")
            # Let a later save retry
            self._auto_pr_created = False
            self._auto_pr_retry = True
            return

        self._auto_pr_retry = False
        logger.info(f"Created PR #{created.number} from {pending.target_branch}")
        if self.state.current_branch == pending.target_branch:
            self.state.set_active_pr(
                ActivePullRequest(
                    number=created.number,
                    head_sha=commit_sha,
                    base_ref=pending.base_branch,
                    html_url=created.html_url,
                )
            )

    def on_branch_switched(self, branch: str) -> None:
        """A user-initiated switch away from the session branch ends its use."""
        if self.session_branch is not None and branch != self.session_branch:
            logger.info(f"Leaving session branch {self.session_branch} for {branch}")
            self.session_branch = None
            self._session_base = None
            self._session_branch_committed = False
            self._auto_pr_retry = False
        self._debounce.cancel()

    def close(self) -> None:
        self._debounce.cancel()
        self._status_reset.cancel()
