"""Comment sync and autosave services."""

from .anchors import (
    Anchor,
    AnchorLocation,
    Selection,
    find_comment_for_click,
    is_orphaned,
    locate,
    resolve_anchor,
)
from .autosave import AutosaveOrchestrator, DocumentBuffer, PendingSaveState
from .comment_store import LocalCommentStore, count_by_status, filter_for_branch
from .config_loader import load_save_config
from .document_session import DocumentSession
from .github_client import GitHubClient
from .identity_bridge import IdentityBridge
from .inbound_sync import InboundSyncPoller
from .orphan_sweep import OrphanSweeper
from .reactions import toggle_reaction
from .remote_sync import RemoteSyncClient, SyncOutcome, SyncStatus
from .sessions import SessionManager
from .state import AppState, SaveStatus

__all__ = [
    "Anchor",
    "AnchorLocation",
    "AppState",
    "AutosaveOrchestrator",
    "DocumentBuffer",
    "DocumentSession",
    "GitHubClient",
    "IdentityBridge",
    "InboundSyncPoller",
    "LocalCommentStore",
    "OrphanSweeper",
    "PendingSaveState",
    "RemoteSyncClient",
    "SaveStatus",
    "Selection",
    "SessionManager",
    "SyncOutcome",
    "SyncStatus",
    "count_by_status",
    "filter_for_branch",
    "find_comment_for_click",
    "is_orphaned",
    "load_save_config",
    "locate",
    "resolve_anchor",
    "toggle_reaction",
]
