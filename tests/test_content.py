from __future__ import annotations

import pytest
from sqlalchemy import func, select

from socialapp.core.errors import NotFoundError, ValidationError
from socialapp.models.post import Comment, Like, Original, Post, Retweet
from socialapp.services import content, engagement


def _count(db, model) -> int:
    return db.scalar(select(func.count()).select_from(model))


def _retweets_count(db, post_id: int) -> int:
    return db.scalar(select(Post.retweets_count).where(Post.id == post_id))


@pytest.fixture()
def alice(make_user):
    return make_user("alice")


@pytest.fixture()
def bob(make_user):
    return make_user("bob")


def test_create_post_strips_and_loads_author(db, alice) -> None:
    post = content.create_post(db, alice.id, "  gm frens  ")

    assert post.content == "gm frens"
    assert post.author.username == "alice"
    assert (post.likes_count, post.retweets_count, post.comments_count) == (0, 0, 0)
    assert post.kind == Original()
    assert post.is_retweet is False
    assert post.search_text == " gm frens "


@pytest.mark.parametrize("text", ["", "   ", "x" * 281])
def test_create_post_rejects_bad_content(db, alice, text) -> None:
    with pytest.raises(ValidationError):
        content.create_post(db, alice.id, text)
    assert _count(db, Post) == 0


def test_create_post_accepts_exactly_280(db, alice) -> None:
    post = content.create_post(db, alice.id, "x" * 280)
    assert len(post.content) == 280


def test_retweet_bumps_original_counter(db, alice, bob) -> None:
    original = content.create_post(db, alice.id, "original thought")

    rt = content.create_retweet(db, bob.id, original.id, "so true")

    assert rt.is_retweet is True
    assert rt.kind == Retweet(original_post_id=original.id)
    assert rt.original_post.id == original.id
    assert rt.original_post.author.username == "alice"
    assert (rt.likes_count, rt.retweets_count, rt.comments_count) == (0, 0, 0)
    assert _retweets_count(db, original.id) == 1


def test_retweet_without_comment_is_allowed(db, alice, bob) -> None:
    original = content.create_post(db, alice.id, "original thought")
    rt = content.create_retweet(db, bob.id, original.id)
    assert rt.content == ""


def test_retweet_of_missing_post_creates_nothing(db, bob) -> None:
    with pytest.raises(NotFoundError) as exc:
        content.create_retweet(db, bob.id, 12345)
    assert exc.value.message == "Original post not found"
    assert _count(db, Post) == 0


def test_comment_increments_counter(db, alice, bob) -> None:
    post = content.create_post(db, alice.id, "thread")

    comment = content.add_comment(db, bob.id, post.id, " first! ")

    assert comment.content == "first!"
    assert comment.author.username == "bob"
    assert db.scalar(select(Post.comments_count).where(Post.id == post.id)) == 1


def test_comment_on_missing_post(db, bob) -> None:
    with pytest.raises(NotFoundError):
        content.add_comment(db, bob.id, 777, "hello?")
    assert _count(db, Comment) == 0


def test_empty_comment_rejected(db, alice) -> None:
    post = content.create_post(db, alice.id, "thread")
    with pytest.raises(ValidationError):
        content.add_comment(db, alice.id, post.id, "   ")


def test_comments_are_threaded_one_level(db, alice, bob) -> None:
    post = content.create_post(db, alice.id, "thread")
    top = content.add_comment(db, bob.id, post.id, "top level")
    reply = content.add_comment(db, alice.id, post.id, "a reply", parent_comment_id=top.id)
    later = content.add_comment(db, alice.id, post.id, "another top level")

    with pytest.raises(ValidationError):
        content.add_comment(db, bob.id, post.id, "too deep", parent_comment_id=reply.id)

    comments = content.get_comments(db, post.id)
    assert [c.id for c in comments] == [later.id, top.id]
    assert [r.id for r in comments[1].replies] == [reply.id]
    assert db.scalar(select(Post.comments_count).where(Post.id == post.id)) == 3


def test_reply_parent_must_belong_to_post(db, alice) -> None:
    first = content.create_post(db, alice.id, "one")
    second = content.create_post(db, alice.id, "two")
    top = content.add_comment(db, alice.id, first.id, "on the first post")

    with pytest.raises(NotFoundError):
        content.add_comment(db, alice.id, second.id, "wrong thread", parent_comment_id=top.id)


def test_delete_requires_ownership_and_hides_existence(db, alice, bob) -> None:
    post = content.create_post(db, alice.id, "mine")

    assert content.delete_post(db, post.id, bob.id) is False
    assert content.delete_post(db, 99999, bob.id) is False
    assert content.find_post_by_id(db, post.id) is not None

    assert content.delete_post(db, post.id, alice.id) is True
    assert content.find_post_by_id(db, post.id) is None


def test_deleting_retweet_decrements_original(db, alice, bob) -> None:
    original = content.create_post(db, alice.id, "original")
    rt = content.create_retweet(db, bob.id, original.id)
    assert _retweets_count(db, original.id) == 1

    assert content.delete_post(db, rt.id, bob.id) is True
    assert _retweets_count(db, original.id) == 0


def test_deleting_original_removes_dependents(db, alice, bob) -> None:
    original = content.create_post(db, alice.id, "original")
    rt = content.create_retweet(db, bob.id, original.id)
    engagement.toggle_like(db, original.id, bob.id)
    engagement.toggle_like(db, rt.id, alice.id)
    content.add_comment(db, bob.id, original.id, "nice")

    assert content.delete_post(db, original.id, alice.id) is True
    db.expire_all()

    assert _count(db, Post) == 0
    assert _count(db, Like) == 0
    assert _count(db, Comment) == 0


def test_length_is_checked_before_trimming(db, alice) -> None:
    with pytest.raises(ValidationError):
        content.create_post(db, alice.id, "x" * 280 + " ")
    assert _count(db, Post) == 0
