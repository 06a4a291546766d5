"""Tests for the local comment store."""

import pytest

from docsync.exceptions import CommentNotFoundError
from docsync.models import CommentStatus
from docsync.schemas.comment import CommentDraft
from docsync.services.comment_store import count_by_status, filter_for_branch

REPO = "acme/docs"
PATH = "docs/guide.md"


def draft(author, content="Looks good", branch="main", anchor_text="Hello", parent=None):
    return CommentDraft(
        file_id="sha1",
        author=author,
        content=content,
        anchor_start=0,
        anchor_end=len(anchor_text),
        anchor_text=anchor_text,
        parent_comment_id=parent,
        branch=branch,
    )


async def test_create_sets_defaults(store, alice):
    """Test new comments start active, unsynced and without reactions."""
    comment_id = await store.create(REPO, PATH, draft(alice))
    comment = await store.get(comment_id)

    assert comment.status == CommentStatus.ACTIVE
    assert comment.reactions == {}
    assert comment.remote_comment_id is None
    assert comment.remote_thread_id is None
    assert comment.created_at == comment.updated_at
    assert comment.author.external_username == "alice"


async def test_reply_has_no_anchor_text(store, alice):
    """Test replies drop any anchor text they were given."""
    root = await store.create(REPO, PATH, draft(alice))
    reply = await store.create(REPO, PATH, draft(alice, parent=root))

    assert (await store.get(reply)).anchor_text == ""


async def test_subscribe_delivers_current_and_updates(store, alice):
    """Test subscribers get the current set, then every change."""
    await store.create(REPO, PATH, draft(alice, content="first"))
    seen = []
    unsubscribe = await store.subscribe(REPO, PATH, seen.append)

    assert [c.content for c in seen[-1]] == ["first"]

    await store.create(REPO, PATH, draft(alice, content="second"))
    assert sorted(c.content for c in seen[-1]) == ["first", "second"]

    unsubscribe()
    unsubscribe()
    await store.create(REPO, PATH, draft(alice, content="third"))
    assert len(seen) == 2


async def test_subscriptions_are_per_file(store, alice):
    seen = []
    await store.subscribe(REPO, "other.md", seen.append)
    await store.create(REPO, PATH, draft(alice))

    assert len(seen) == 1
    assert seen[0] == []


async def test_update_patches_fields(store, alice):
    """Test a partial update changes only the given fields."""
    comment_id = await store.create(REPO, PATH, draft(alice))
    updated = await store.update(comment_id, content="Edited", remote_comment_id=42)

    assert updated.content == "Edited"
    assert updated.remote_comment_id == 42
    assert updated.anchor_text == "Hello"
    assert updated.updated_at >= updated.created_at
    assert updated.updated_at.tzinfo == updated.created_at.tzinfo


async def test_update_drops_empty_reactions(store, alice):
    comment_id = await store.create(REPO, PATH, draft(alice))
    updated = await store.update(comment_id, reactions={"\U0001F44D": [], "\U0001F680": ["u1"]})

    assert updated.reactions == {"\U0001F680": ["u1"]}


async def test_update_rejects_unknown_fields(store, alice):
    comment_id = await store.create(REPO, PATH, draft(alice))

    with pytest.raises(ValueError):
        await store.update(comment_id, author_uid="someone-else")


async def test_update_missing_comment(store):
    with pytest.raises(CommentNotFoundError):
        await store.update("missing", content="x")


async def test_delete(store, alice):
    comment_id = await store.create(REPO, PATH, draft(alice))
    await store.delete(comment_id)

    assert await store.get(comment_id) is None
    with pytest.raises(CommentNotFoundError):
        await store.delete(comment_id)


async def test_update_many_resolves(store, alice):
    ids = [await store.create(REPO, PATH, draft(alice)) for _ in range(2)]
    await store.update_many(ids, status=CommentStatus.RESOLVED)

    comments = await store.list_comments(REPO, PATH)
    assert count_by_status(comments, CommentStatus.RESOLVED) == 2


async def test_filter_for_branch_follows_root(store, alice):
    """Test replies are shown exactly when their root is."""
    root = await store.create(REPO, PATH, draft(alice, branch="feature"))
    await store.create(REPO, PATH, draft(alice, branch="main", parent=root))
    other = await store.create(REPO, PATH, draft(alice, branch="main"))

    comments = await store.list_comments(REPO, PATH)

    assert [c.id for c in filter_for_branch(comments, "main")] == [other]
    assert len(filter_for_branch(comments, "feature")) == 2


async def test_counts_include_roots_only(store, alice):
    root = await store.create(REPO, PATH, draft(alice))
    await store.create(REPO, PATH, draft(alice, parent=root))

    comments = await store.list_comments(REPO, PATH)

    assert count_by_status(comments, CommentStatus.ACTIVE) == 1
    assert count_by_status(comments, CommentStatus.RESOLVED) == 0
