"""Tests for the document session wiring."""

import asyncio

import pytest

from conftest import FakeGitHub
from docsync.exceptions import CommentNotFoundError, UnsavedChangesError
from docsync.models import CommentStatus
from docsync.schemas.repo_config import SaveConfig
from docsync.services.anchors import Selection
from docsync.services.document_session import DocumentSession
from docsync.services.timers import drain_background_tasks

PATH = "docs/guide.md"
DOC = "# Guide\n\nHello world\nInstall the tool\n"
THUMBS_UP = "\U0001F44D"


@pytest.fixture
async def open_session(store, alice, pr):
    sessions = []
    gh = FakeGitHub({(PATH, "main"): DOC, (PATH, pr.head_sha): DOC, (PATH, "feature"): "Feature\n"})

    async def _open(branch="main", with_pr=False):
        if with_pr:
            gh.open_prs[branch] = pr
        session = DocumentSession(
            gh,
            store,
            "acme",
            "docs",
            PATH,
            branch,
            alice,
            config=SaveConfig(auto_commit_delay_seconds=0),
            poll_interval=3600,
            sweep_debounce=0,
            status_display_seconds=0.01,
        )
        await session.open()
        await drain_background_tasks()
        sessions.append(session)
        return session

    _open.gh = gh
    yield _open
    for session in sessions:
        await session.close()


def select(text: str) -> Selection:
    start = DOC.index(text)
    return Selection(DOC, start, start + len(text))


async def test_open_loads_content(open_session):
    session = await open_session()

    assert session.buffer.content == DOC
    assert session.comments == []
    assert session.active_pr is None


async def test_comment_without_pr_is_not_synced_retroactively(open_session, pr):
    """Test comments made before a PR exists stay local once one is detected."""
    session = await open_session()
    await session.add_comment("Typo?", select("Hello world"))
    await drain_background_tasks()

    open_session.gh.open_prs["main"] = pr
    await session.detect_pull_request()
    await drain_background_tasks()

    assert session.active_pr == pr
    assert open_session.gh.called("create_review_comment") == []
    assert open_session.gh.called("list_review_comments")


async def test_comment_with_pr_is_synced(open_session):
    """Test a new comment and its reply are mirrored to the PR."""
    session = await open_session(with_pr=True)
    comment_id = await session.add_comment("Typo?", select("Install the tool"))
    await drain_background_tasks()

    remote_id = session.resolve_remote_id(comment_id)
    assert remote_id is not None
    (_, kwargs), = open_session.gh.called("create_review_comment")
    assert kwargs["line"] == 4

    reply_id = await session.reply(comment_id, "Fixed")
    await drain_background_tasks()
    (args, _), = open_session.gh.called("reply_to_review_comment")
    assert args[3] == remote_id

    # Replies to replies attach to the root
    nested_id = await session.reply(reply_id, "Thanks")
    assert next(c for c in session.comments if c.id == nested_id).parent_comment_id == comment_id


async def test_delete_root_removes_replies_everywhere(open_session):
    session = await open_session(with_pr=True)
    comment_id = await session.add_comment("Typo?", select("Hello world"))
    await drain_background_tasks()
    await session.reply(comment_id, "Fixed")
    await drain_background_tasks()

    await session.delete_comment(comment_id)
    await drain_background_tasks()

    assert session.comments == []
    assert len(open_session.gh.called("delete_review_comment")) == 2


async def test_edit_and_missing_comment(open_session):
    session = await open_session(with_pr=True)
    comment_id = await session.add_comment("Typo?", select("Hello world"))
    await drain_background_tasks()

    await session.edit_comment(comment_id, "Typo here?")
    await drain_background_tasks()

    assert session.comments[0].content == "Typo here?"
    assert open_session.gh.called("update_review_comment")
    with pytest.raises(CommentNotFoundError):
        await session.edit_comment("missing", "x")
    with pytest.raises(CommentNotFoundError):
        await session.reply("missing", "x")


async def test_toggle_reaction_round_trip(open_session):
    session = await open_session(with_pr=True)
    comment_id = await session.add_comment("Typo?", select("Hello world"))
    await drain_background_tasks()

    assert await session.toggle_reaction(comment_id, THUMBS_UP) == {THUMBS_UP: ["u-alice"]}
    await drain_background_tasks()
    assert await session.toggle_reaction(comment_id, THUMBS_UP) == {}
    await drain_background_tasks()

    assert session.comments[0].reactions == {}
    assert len(open_session.gh.called("add_reaction")) == 1
    assert len(open_session.gh.called("list_reactions")) == 1


async def test_resolution_updates_counts(open_session):
    session = await open_session()
    comment_id = await session.add_comment("Typo?", select("Hello world"))
    await session.add_comment("Steps?", select("Install the tool"))

    await session.set_resolution(comment_id, "resolve")
    assert (session.active_comment_count, session.resolved_comment_count) == (1, 1)

    await session.set_resolution(comment_id, "unresolve")
    assert (session.active_comment_count, session.resolved_comment_count) == (2, 0)


async def test_edit_that_removes_anchor_resolves_comment(open_session):
    """Test the orphan sweep runs after an edit removes the anchored text."""
    session = await open_session()
    comment_id = await session.add_comment("Typo?", select("world"))
    assert (session.active_comment_count, session.resolved_comment_count) == (1, 0)

    session.on_content_change(DOC.replace("Hello world", "Hello there"))
    await asyncio.sleep(0.01)
    await drain_background_tasks()

    comment = next(c for c in session.comments if c.id == comment_id)
    assert comment.status == CommentStatus.RESOLVED
    assert (session.active_comment_count, session.resolved_comment_count) == (0, 1)


async def test_switch_branch_reloads_and_filters(open_session, pr):
    session = await open_session(with_pr=True)
    await session.add_comment("Typo?", select("Hello world"))
    await drain_background_tasks()

    session.switch_branch("feature")
    assert session.active_pr is None
    await drain_background_tasks()

    assert session.buffer.content == "Feature\n"
    assert session.comments == []
    assert session.state.current_branch == "feature"


async def test_click_lookup(open_session):
    session = await open_session()
    comment_id = await session.add_comment("Typo?", select("Hello world"))

    assert session.find_comment_for_click("world").id == comment_id
    assert session.find_comment_for_click("Install") is None


async def test_switch_branch_refuses_unsaved_changes(open_session):
    """Test uncommitted edits block a branch switch unless explicitly discarded."""
    session = await open_session()
    session.on_content_change(DOC + "draft\n")

    with pytest.raises(UnsavedChangesError):
        session.switch_branch("feature")
    assert session.state.current_branch == "main"
    assert session.buffer.content == DOC + "draft\n"

    session.switch_branch("feature", discard_changes=True)
    await drain_background_tasks()
    assert session.buffer.content == "Feature\n"
    assert session.buffer.dirty is False
