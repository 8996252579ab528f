# socialapp/services/engagement.py
"""Engagement ledger: likes and the denormalized counters on posts.

Every counter change is an in-database ``n = n + delta`` issued in the
same transaction as the row it accounts for, so a counter can only drift
through writes that bypass this module. ``recount_counters`` rebuilds the
counters from the source rows when that happens.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import InstrumentedAttribute, Session, aliased

from socialapp.core.errors import NotFoundError
from socialapp.models.post import Comment, Like, Post

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LikeState:
    liked: bool
    like_count: int


@dataclass(frozen=True)
class LikeInfo:
    like_count: int
    user_liked: bool


def require_post(db: Session, post_id: int) -> None:
    if db.execute(select(Post.id).where(Post.id == post_id)).first() is None:
        raise NotFoundError("Post not found")


def adjust_counter(db: Session, post_id: int, column: InstrumentedAttribute, delta: int) -> None:
    db.execute(update(Post).where(Post.id == post_id).values({column: column + delta}))


def _like_count(db: Session, post_id: int) -> int:
    return db.scalar(select(Post.likes_count).where(Post.id == post_id)) or 0


def toggle_like(db: Session, post_id: int, user_id: int) -> LikeState:
    """Like the post if the user hasn't, unlike it if they have.

    The DELETE decides the branch: its row count says whether a like
    existed, so two concurrent toggles can't both see "not liked" and
    both decrement. The count returned is read back inside the same
    transaction after the counter update.
    """
    require_post(db, post_id)

    removed = db.execute(
        delete(Like).where(Like.user_id == user_id, Like.post_id == post_id)
    ).rowcount

    if removed:
        adjust_counter(db, post_id, Post.likes_count, -1)
        state = LikeState(liked=False, like_count=_like_count(db, post_id))
        db.commit()
        logger.debug("post unliked", extra={"post_id": post_id, "user_id": user_id})
        return state

    db.add(Like(user_id=user_id, post_id=post_id))
    try:
        db.flush()
    except IntegrityError:
        # A concurrent request inserted the same like first; it owns the increment
        db.rollback()
        return LikeState(liked=True, like_count=_like_count(db, post_id))

    adjust_counter(db, post_id, Post.likes_count, 1)
    state = LikeState(liked=True, like_count=_like_count(db, post_id))
    db.commit()
    logger.debug("post liked", extra={"post_id": post_id, "user_id": user_id})
    return state


def is_liked_by(db: Session, post_id: int, user_id: int) -> bool:
    return db.execute(
        select(Like.id).where(Like.user_id == user_id, Like.post_id == post_id)
    ).first() is not None


def get_like_info(db: Session, post_id: int, viewer_id: Optional[int] = None) -> LikeInfo:
    like_count = db.scalar(select(Post.likes_count).where(Post.id == post_id))
    if like_count is None:
        raise NotFoundError("Post not found")

    user_liked = is_liked_by(db, post_id, viewer_id) if viewer_id is not None else False
    return LikeInfo(like_count=like_count, user_liked=user_liked)


def liked_post_ids(db: Session, post_ids: Iterable[int], viewer_id: Optional[int]) -> set[int]:
    """Which of ``post_ids`` the viewer has liked, in one round trip."""
    ids = set(post_ids)
    if viewer_id is None or not ids:
        return set()
    return set(
        db.execute(
            select(Like.post_id).where(Like.user_id == viewer_id, Like.post_id.in_(ids))
        ).scalars()
    )


def recount_counters(db: Session, post_ids: Optional[Iterable[int]] = None) -> int:
    """Recompute likes/retweets/comments counters from source rows.

    Returns the number of posts whose stored counters were wrong.
    """
    retweet = aliased(Post)
    actual_likes = select(func.count(Like.id)).where(Like.post_id == Post.id).scalar_subquery()
    actual_retweets = select(func.count(retweet.id)).where(retweet.original_post_id == Post.id).scalar_subquery()
    actual_comments = select(func.count(Comment.id)).where(Comment.post_id == Post.id).scalar_subquery()

    stmt = select(
        Post.id,
        Post.likes_count,
        Post.retweets_count,
        Post.comments_count,
        actual_likes,
        actual_retweets,
        actual_comments,
    )
    if post_ids is not None:
        stmt = stmt.where(Post.id.in_(set(post_ids)))

    repaired = 0
    for pid, likes, retweets, comments, real_likes, real_retweets, real_comments in db.execute(stmt).all():
        if (likes, retweets, comments) == (real_likes, real_retweets, real_comments):
            continue
        db.execute(
            update(Post)
            .where(Post.id == pid)
            .values(likes_count=real_likes, retweets_count=real_retweets, comments_count=real_comments)
        )
        logger.warning(
            "counter drift repaired",
            extra={
                "post_id": pid,
                "likes": [likes, real_likes],
                "retweets": [retweets, real_retweets],
                "comments": [comments, real_comments],
            },
        )
        repaired += 1

    db.commit()
    return repaired
