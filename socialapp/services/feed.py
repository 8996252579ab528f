# socialapp/services/feed.py
"""Feed composer: global feed, home timeline and full-text search."""
from __future__ import annotations

import logging
from typing import Optional, Sequence

from sqlalchemy import and_, func, literal_column, or_, select
from sqlalchemy.orm import Session

from socialapp.core.errors import ValidationError
from socialapp.models.post import Post
from socialapp.models.user import Follow
from socialapp.schemas.post_schema import PostOut
from socialapp.services.content import post_load_options
from socialapp.services.engagement import liked_post_ids
from socialapp.utils.search_text import escape_like, query_tokens, to_tsquery

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 20
# Same text search config as the idx_posts_search_tsv index expression
_TS_CONFIG = literal_column("'english'")


def _newest_first(stmt, limit: int, offset: int):
    return (
        stmt.options(*post_load_options())
        .order_by(Post.created_at.desc(), Post.id.desc())
        .limit(limit)
        .offset(offset)
    )


def get_all_posts(
    db: Session,
    limit: int = DEFAULT_LIMIT,
    offset: int = 0,
    author_id: Optional[int] = None,
) -> list[Post]:
    stmt = select(Post)
    if author_id is not None:
        stmt = stmt.where(Post.user_id == author_id)
    return list(db.execute(_newest_first(stmt, limit, offset)).scalars())


def get_timeline(db: Session, user_id: int, limit: int = DEFAULT_LIMIT, offset: int = 0) -> list[Post]:
    """Posts by the user and by everyone they follow."""
    followees = select(Follow.following_id).where(Follow.follower_id == user_id)
    stmt = select(Post).where(or_(Post.user_id == user_id, Post.user_id.in_(followees)))
    return list(db.execute(_newest_first(stmt, limit, offset)).scalars())


def _search_clause(db: Session, tokens: list[str]):
    if db.get_bind().dialect.name == "postgresql":
        return func.to_tsvector(_TS_CONFIG, Post.search_text).op("@@")(
            func.to_tsquery(_TS_CONFIG, to_tsquery(tokens))
        )

    # Token match on the persisted search_text: every token whole, the last as a prefix
    clauses = [Post.search_text.like(f"% {escape_like(tok)} %", escape="\\") for tok in tokens[:-1]]
    clauses.append(Post.search_text.like(f"% {escape_like(tokens[-1])}%", escape="\\"))
    return and_(*clauses)


def search_posts(db: Session, query: str, limit: int = DEFAULT_LIMIT, offset: int = 0) -> list[Post]:
    if not query or not query.strip():
        raise ValidationError("Search query required")

    tokens = query_tokens(query)
    if not tokens:
        # Nothing left after sanitizing (e.g. a query of only quotes)
        return []

    logger.debug("post search", extra={"tokens": tokens})
    stmt = select(Post).where(_search_clause(db, tokens))
    return list(db.execute(_newest_first(stmt, limit, offset)).scalars())


def enrich_posts(db: Session, posts: Sequence[Post], viewer_id: Optional[int] = None) -> list[PostOut]:
    """Flatten posts into response DTOs with the viewer's like state."""
    liked = liked_post_ids(db, (p.id for p in posts), viewer_id)
    return [PostOut.from_post(p, user_liked=p.id in liked) for p in posts]
