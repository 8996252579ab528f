# models/post.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import (
    DDL,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Text,
    UniqueConstraint,
    event,
)
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import relationship, validates

from socialapp.database import Base
from socialapp.utils.search_text import build_search_text

MAX_POST_LENGTH = 280


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# === Post kinds ===

@dataclass(frozen=True)
class Original:
    pass


@dataclass(frozen=True)
class Retweet:
    original_post_id: int


PostKind = Original | Retweet


class Post(Base):
    __tablename__ = "posts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False, default="")

    likes_count = Column(Integer, nullable=False, default=0)
    retweets_count = Column(Integer, nullable=False, default=0)
    comments_count = Column(Integer, nullable=False, default=0)

    # Set only on retweets; the retweet row goes away with its original
    original_post_id = Column(Integer, ForeignKey("posts.id", ondelete="CASCADE"), nullable=True, index=True)

    search_text = Column(Text, nullable=False, default="")

    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    author = relationship("User", back_populates="posts")
    original_post = relationship("Post", remote_side=[id], back_populates="retweets")
    retweets = relationship("Post", back_populates="original_post", cascade="all, delete-orphan", passive_deletes=True)
    comments = relationship("Comment", back_populates="post", cascade="all, delete-orphan", passive_deletes=True)
    likes = relationship("Like", back_populates="post", cascade="all, delete-orphan", passive_deletes=True)

    __table_args__ = (
        CheckConstraint("likes_count >= 0", name="ck_posts_likes_count"),
        CheckConstraint("retweets_count >= 0", name="ck_posts_retweets_count"),
        CheckConstraint("comments_count >= 0", name="ck_posts_comments_count"),
        CheckConstraint("original_post_id IS NULL OR original_post_id <> id", name="ck_posts_not_self_retweet"),
    )

    @validates("content")
    def _sync_search_text(self, _key, value):
        self.search_text = build_search_text(value)
        return value

    @hybrid_property
    def is_retweet(self) -> bool:
        return self.original_post_id is not None

    @is_retweet.expression
    def is_retweet(cls):
        return cls.original_post_id.isnot(None)

    @property
    def kind(self) -> PostKind:
        if self.original_post_id is None:
            return Original()
        return Retweet(original_post_id=self.original_post_id)


# GIN index for full-text search; only PostgreSQL has to_tsvector
event.listen(
    Post.__table__,
    "after_create",
    DDL(
        "CREATE INDEX IF NOT EXISTS idx_posts_search_tsv "
        "ON posts USING gin (to_tsvector('english', search_text))"
    ).execute_if(dialect="postgresql"),
)


class Comment(Base):
    __tablename__ = "comments"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    post_id = Column(Integer, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    parent_comment_id = Column(Integer, ForeignKey("comments.id", ondelete="CASCADE"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    author = relationship("User", back_populates="comments")
    post = relationship("Post", back_populates="comments")
    parent = relationship("Comment", remote_side=[id], back_populates="replies")
    replies = relationship(
        "Comment",
        back_populates="parent",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Comment.created_at",
    )


class Like(Base):
    __tablename__ = "likes"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    post_id = Column(Integer, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    user = relationship("User", back_populates="likes")
    post = relationship("Post", back_populates="likes")

    __table_args__ = (UniqueConstraint("user_id", "post_id", name="uq_likes_user_post"),)


Index("ix_posts_user_created", Post.user_id, Post.created_at)
