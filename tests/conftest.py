"""Pytest configuration and fixtures."""

import base64
import itertools

import pytest

from docsync.database import init_db, make_engine, make_session_factory
from docsync.schemas.comment import CommentAuthor
from docsync.schemas.github import (
    ActivePullRequest,
    GitHubUser,
    RemoteReaction,
    RemoteReviewComment,
    ThreadInfo,
)
from docsync.services.comment_store import LocalCommentStore
from docsync.services.config_loader import clear_config_cache
from docsync.services.github_client import Branch, CommitResult, CreatedPullRequest, FileContent
from docsync.services.timers import drain_background_tasks


@pytest.fixture
async def db_engine():
    """Create a test database engine."""
    engine = make_engine("sqlite+aiosqlite:///:memory:")
    await init_db(engine)

    yield engine

    await drain_background_tasks()
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return make_session_factory(db_engine)


@pytest.fixture
def store(session_factory):
    return LocalCommentStore(session_factory)


@pytest.fixture(autouse=True)
async def _settle_background_tasks():
    clear_config_cache()
    yield
    await drain_background_tasks()


@pytest.fixture
def alice():
    return CommentAuthor(uid="u-alice", display_name="Alice", external_username="alice")


@pytest.fixture
def pr():
    return ActivePullRequest(
        number=7,
        head_sha="head0000",
        base_ref="main",
        html_url="https://github.com/acme/docs/pull/7",
    )


class FakeGitHub:
    """
    In-memory stand-in for GitHubClient.

    Every call is recorded as ``(method, args, kwargs)``. Method names listed
    in ``failing`` raise RuntimeError.
    """

    def __init__(self, files: dict[tuple[str, str], str] | None = None):
        self.files = dict(files or {})
        self.branches = [Branch(name="main", sha="main0000")]
        self.open_prs: dict[str, ActivePullRequest] = {}
        self.review_comments: list[RemoteReviewComment] = []
        self.threads: dict[int, ThreadInfo] = {}
        self.reactions: dict[int, list[RemoteReaction]] = {}
        self.failing: set[str] = set()
        self.calls: list[tuple[str, tuple, dict]] = []
        self._ids = itertools.count(1000)

    def _record(self, method, *args, **kwargs):
        self.calls.append((method, args, kwargs))
        if method in self.failing:
            raise RuntimeError(f"{method} failed")

    def called(self, method: str) -> list[tuple[tuple, dict]]:
        return [(args, kwargs) for name, args, kwargs in self.calls if name == method]

    async def get_content(self, owner, repo, path, ref):
        self._record("get_content", owner, repo, path, ref)
        if (path, ref) not in self.files:
            raise RuntimeError(f"404 {path}@{ref}")
        content = self.files[(path, ref)]
        sha = base64.b16encode(content.encode()).decode()[:12].lower() or "empty"
        return FileContent(content=content, sha=sha)

    async def update_content(self, owner, repo, path, content, message, sha, branch):
        self._record("update_content", owner, repo, path, content, message, sha, branch)
        self.files[(path, branch)] = content
        n = next(self._ids)
        return CommitResult(sha=f"blob{n}", commit_sha=f"commit{n}")

    async def list_branches(self, owner, repo):
        self._record("list_branches", owner, repo)
        return list(self.branches)

    async def create_branch(self, owner, repo, name, from_sha):
        self._record("create_branch", owner, repo, name, from_sha)
        self.branches.append(Branch(name=name, sha=from_sha))

    async def create_pull_request(self, owner, repo, title, body, head, base):
        self._record("create_pull_request", owner, repo, title, body, head, base)
        n = next(self._ids)
        return CreatedPullRequest(number=n, html_url=f"https://github.com/{owner}/{repo}/pull/{n}")

    async def find_open_pull_request(self, owner, repo, branch):
        self._record("find_open_pull_request", owner, repo, branch)
        return self.open_prs.get(branch)

    async def list_review_comments(self, owner, repo, pr_number, path=None):
        self._record("list_review_comments", owner, repo, pr_number, path)
        return [c for c in self.review_comments if path is None or c.path == path]

    async def create_review_comment(
        self, owner, repo, pr_number, body, commit_id, path, line, start_line=None
    ):
        self._record(
            "create_review_comment",
            owner,
            repo,
            pr_number,
            body=body,
            commit_id=commit_id,
            path=path,
            line=line,
            start_line=start_line,
        )
        remote = RemoteReviewComment(
            id=next(self._ids), body=body, path=path, line=line, start_line=start_line
        )
        self.review_comments.append(remote)
        return remote

    async def reply_to_review_comment(self, owner, repo, pr_number, comment_id, body):
        self._record("reply_to_review_comment", owner, repo, pr_number, comment_id, body)
        remote = RemoteReviewComment(
            id=next(self._ids), body=body, path="", in_reply_to_id=comment_id
        )
        self.review_comments.append(remote)
        return remote

    async def update_review_comment(self, owner, repo, comment_id, body):
        self._record("update_review_comment", owner, repo, comment_id, body)
        return RemoteReviewComment(id=comment_id, body=body, path="")

    async def delete_review_comment(self, owner, repo, comment_id):
        self._record("delete_review_comment", owner, repo, comment_id)

    async def add_reaction(self, owner, repo, comment_id, reaction):
        self._record("add_reaction", owner, repo, comment_id, reaction)

    async def list_reactions(self, owner, repo, comment_id):
        self._record("list_reactions", owner, repo, comment_id)
        return list(self.reactions.get(comment_id, []))

    async def delete_reaction(self, owner, repo, comment_id, reaction_id):
        self._record("delete_reaction", owner, repo, comment_id, reaction_id)

    async def fetch_thread_details(self, owner, repo, pr_number):
        self._record("fetch_thread_details", owner, repo, pr_number)
        return dict(self.threads)

    async def resolve_thread(self, thread_id):
        self._record("resolve_thread", thread_id)

    async def unresolve_thread(self, thread_id):
        self._record("unresolve_thread", thread_id)


def remote_comment(id, body, line=None, login="bob", in_reply_to_id=None, path="docs/guide.md",
                   updated_at="2026-01-01T00:00:00Z"):
    return RemoteReviewComment(
        id=id,
        body=body,
        path=path,
        line=line,
        user=GitHubUser(login=login),
        in_reply_to_id=in_reply_to_id,
        updated_at=updated_at,
    )


@pytest.fixture
def fake_github():
    return FakeGitHub()
