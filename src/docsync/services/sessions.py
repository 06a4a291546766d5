"""Registry of open document sessions."""

import logging

from ..schemas.comment import CommentAuthor
from .comment_store import LocalCommentStore
from .config_loader import load_save_config
from .document_session import DocumentSession
from .github_client import GitHubClient

logger = logging.getLogger(__name__)


class SessionManager:
    """Opens, tracks and closes DocumentSessions over one GitHub client."""

    def __init__(self, gh: GitHubClient, store: LocalCommentStore):
        self.gh = gh
        self.store = store
        self._sessions: dict[str, DocumentSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, session_id: str) -> DocumentSession | None:
        return self._sessions.get(session_id)

    def for_repository(self, repo_full_name: str) -> list[DocumentSession]:
        return [s for s in self._sessions.values() if s.state.repo_full_name == repo_full_name]

    async def open_session(
        self,
        owner: str,
        repo: str,
        file_path: str,
        branch: str,
        user: CommentAuthor,
        config_ref: str | None = None,
    ) -> DocumentSession:
        """Open a document, applying the repository's .docsync.yaml if present."""
        config = await load_save_config(self.gh, owner, repo, config_ref or branch)
        session = DocumentSession(
            self.gh,
            self.store,
            owner,
            repo,
            file_path,
            branch,
            user,
            config=config,
        )
        try:
            await session.open()
        except Exception:
            await session.close()
            raise
        self._sessions[session.id] = session
        logger.info(f"Opened session {session.id} for {owner}/{repo}:{file_path}@{branch}")
        return session

    async def close_session(self, session_id: str) -> bool:
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        await session.close()
        return True

    async def close_all(self) -> None:
        for session_id in list(self._sessions):
            await self.close_session(session_id)
