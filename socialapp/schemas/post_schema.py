# schemas/post_schema.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class PostCreate(BaseModel):
    content: str


class RetweetCreate(BaseModel):
    content: Optional[str] = None


class CommentCreate(BaseModel):
    content: str
    parent_comment_id: Optional[int] = None


# === Authors ===

class AuthorSummary(BaseModel):
    id: int
    username: str
    avatar_url: Optional[str] = None

    model_config = {"from_attributes": True}


class PostAuthor(AuthorSummary):
    email: Optional[str] = None
    wallet_address: Optional[str] = None
    bio: Optional[str] = None


# === Posts ===

class OriginalPostOut(BaseModel):
    id: int
    user_id: int
    content: str
    likes_count: int
    retweets_count: int
    comments_count: int
    is_retweet: bool
    original_post_id: Optional[int] = None
    created_at: datetime
    author: AuthorSummary

    model_config = {"from_attributes": True}


class PostOut(BaseModel):
    """A post flattened for the client.

    Author id/username/wallet are promoted to the top level, and `likes` /
    `retweets` alias the stored counters.
    """
    id: int
    content: str
    likes_count: int
    retweets_count: int
    comments_count: int
    is_retweet: bool
    original_post_id: Optional[int] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    author: PostAuthor
    original_post: Optional[OriginalPostOut] = None

    user_id: int
    username: str
    wallet_address: Optional[str] = None
    likes: int
    retweets: int
    like_count: int
    user_liked: bool = False

    @classmethod
    def from_post(cls, post, user_liked: bool = False) -> "PostOut":
        author = post.author
        return cls(
            id=post.id,
            content=post.content,
            likes_count=post.likes_count,
            retweets_count=post.retweets_count,
            comments_count=post.comments_count,
            is_retweet=post.is_retweet,
            original_post_id=post.original_post_id,
            created_at=post.created_at,
            updated_at=post.updated_at,
            author=PostAuthor.model_validate(author),
            original_post=OriginalPostOut.model_validate(post.original_post) if post.original_post else None,
            user_id=author.id,
            username=author.username,
            wallet_address=author.wallet_address,
            likes=post.likes_count,
            retweets=post.retweets_count,
            like_count=post.likes_count,
            user_liked=user_liked,
        )


class PostListResponse(BaseModel):
    posts: list[PostOut]
    page: int
    limit: int


# === Comments ===

class ReplyOut(BaseModel):
    id: int
    post_id: int
    user_id: int
    content: str
    parent_comment_id: Optional[int] = None
    created_at: datetime
    author: AuthorSummary

    model_config = {"from_attributes": True}


class CommentOut(ReplyOut):
    replies: list[ReplyOut] = []


# === Likes ===

class LikeToggleOut(BaseModel):
    message: str
    liked: bool
    like_count: int


class LikeInfoOut(BaseModel):
    like_count: int
    user_liked: bool
