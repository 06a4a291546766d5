"""Session state shared by the comment sync components."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from ..schemas.github import ActivePullRequest

logger = logging.getLogger(__name__)


class SaveStatus(str, Enum):
    """Save indicator shown to the user."""

    IDLE = "idle"
    SAVING = "saving"
    SAVED = "saved"
    ERROR = "error"


@dataclass(frozen=True)
class StateChange:
    """What changed in an AppState update."""

    field: str
    old: object
    new: object
    reload_content: bool = True  # Only meaningful for branch changes


Listener = Callable[[StateChange], None]


class AppState:
    """
    Explicit container for the mutable session state of one document view.

    Components receive it by reference and observe changes through
    ``subscribe``. The active PR is replaced wholesale and is cleared on every
    branch change.
    """

    def __init__(self, owner: str, repo: str, branch: str):
        self.owner = owner
        self.repo = repo
        self._branch = branch
        self._active_pr: ActivePullRequest | None = None
        self._save_status = SaveStatus.IDLE
        self._listeners: list[Listener] = []

    @property
    def repo_full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    @property
    def current_branch(self) -> str:
        return self._branch

    @property
    def active_pr(self) -> ActivePullRequest | None:
        return self._active_pr

    @property
    def save_status(self) -> SaveStatus:
        return self._save_status

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener; returns an idempotent unsubscribe."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def set_branch(self, branch: str, *, reload_content: bool = True) -> None:
        """Switch branch. A PR is branch-scoped, so the active PR is cleared."""
        if branch == self._branch:
            return
        old = self._branch
        self._branch = branch
        self.set_active_pr(None)
        logger.info(f"{self.repo_full_name}: branch {old} -> {branch}")
        self._emit(StateChange("branch", old, branch, reload_content=reload_content))

    def set_active_pr(self, pr: ActivePullRequest | None) -> None:
        if pr == self._active_pr:
            return
        old = self._active_pr
        self._active_pr = pr
        self._emit(StateChange("active_pr", old, pr))

    def advance_head(self, head_sha: str) -> None:
        """Track a newer head commit on the active PR, if there is one."""
        if self._active_pr is not None:
            self.set_active_pr(self._active_pr.with_head(head_sha))

    def set_save_status(self, status: SaveStatus) -> None:
        if status == self._save_status:
            return
        old = self._save_status
        self._save_status = status
        self._emit(StateChange("save_status", old, status))

    def _emit(self, change: StateChange) -> None:
        for listener in list(self._listeners):
            listener(change)
