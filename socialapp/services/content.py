# socialapp/services/content.py
"""Content graph: posts, retweets and threaded comments."""
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from socialapp.core.errors import NotFoundError, ValidationError
from socialapp.models.post import MAX_POST_LENGTH, Comment, Post, Retweet
from socialapp.services.engagement import adjust_counter

logger = logging.getLogger(__name__)


def post_load_options():
    """Author, plus the original post and its author for retweets (one level)."""
    return (
        selectinload(Post.author),
        selectinload(Post.original_post).selectinload(Post.author),
    )


def validate_post_content(content: Optional[str], allow_empty: bool = False) -> str:
    content = content or ""
    if len(content) > MAX_POST_LENGTH:
        raise ValidationError(f"Post content must be {MAX_POST_LENGTH} characters or less")
    content = content.strip()
    if not content and not allow_empty:
        raise ValidationError("Post content is required")
    return content


def find_post_by_id(db: Session, post_id: int) -> Optional[Post]:
    return db.execute(
        select(Post).where(Post.id == post_id).options(*post_load_options())
    ).scalar_one_or_none()


def get_post_or_404(db: Session, post_id: int) -> Post:
    post = find_post_by_id(db, post_id)
    if post is None:
        raise NotFoundError("Post not found")
    return post


def create_post(db: Session, user_id: int, content: str) -> Post:
    post = Post(user_id=user_id, content=validate_post_content(content))
    db.add(post)
    db.commit()
    logger.info("post created", extra={"post_id": post.id, "user_id": user_id})
    return get_post_or_404(db, post.id)


def create_retweet(db: Session, user_id: int, original_post_id: int, content: Optional[str] = None) -> Post:
    """Insert the retweet row and bump the original's counter as one unit."""
    original = db.get(Post, original_post_id)
    if original is None:
        raise NotFoundError("Original post not found")

    retweet = Post(
        user_id=user_id,
        content=validate_post_content(content, allow_empty=True),
        original_post_id=original.id,
    )
    try:
        db.add(retweet)
        db.flush()
        adjust_counter(db, original.id, Post.retweets_count, 1)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("retweet created", extra={"post_id": retweet.id, "original_post_id": original.id, "user_id": user_id})
    return get_post_or_404(db, retweet.id)


def add_comment(
    db: Session,
    user_id: int,
    post_id: int,
    content: str,
    parent_comment_id: Optional[int] = None,
) -> Comment:
    content = (content or "").strip()
    if not content:
        raise ValidationError("Comment content is required")

    if db.get(Post, post_id) is None:
        raise NotFoundError("Post not found")

    if parent_comment_id is not None:
        parent = db.get(Comment, parent_comment_id)
        if parent is None or parent.post_id != post_id:
            raise NotFoundError("Parent comment not found")
        if parent.parent_comment_id is not None:
            raise ValidationError("Replies can only be made to top-level comments")

    comment = Comment(user_id=user_id, post_id=post_id, content=content, parent_comment_id=parent_comment_id)
    try:
        db.add(comment)
        db.flush()
        adjust_counter(db, post_id, Post.comments_count, 1)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("comment added", extra={"comment_id": comment.id, "post_id": post_id, "user_id": user_id})
    return db.execute(
        select(Comment).where(Comment.id == comment.id).options(selectinload(Comment.author))
    ).scalar_one()


def get_comments(db: Session, post_id: int, limit: int = 20, offset: int = 0) -> list[Comment]:
    """Top-level comments, newest first, each with its direct replies."""
    return list(
        db.execute(
            select(Comment)
            .where(Comment.post_id == post_id, Comment.parent_comment_id.is_(None))
            .options(
                selectinload(Comment.author),
                selectinload(Comment.replies).selectinload(Comment.author),
            )
            .order_by(Comment.created_at.desc(), Comment.id.desc())
            .limit(limit)
            .offset(offset)
        ).scalars()
    )


def delete_post(db: Session, post_id: int, requesting_user_id: int) -> bool:
    """Delete the post if the requester owns it.

    A missing post and someone else's post both return False; callers
    must not tell the two apart.
    """
    post = db.execute(
        select(Post).where(Post.id == post_id, Post.user_id == requesting_user_id)
    ).scalar_one_or_none()
    if post is None:
        return False

    try:
        if isinstance(post.kind, Retweet):
            adjust_counter(db, post.kind.original_post_id, Post.retweets_count, -1)
        db.delete(post)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("post deleted", extra={"post_id": post_id, "user_id": requesting_user_id})
    return True
