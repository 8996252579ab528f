from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from socialapp.auth.token import get_current_user, get_optional_user
from socialapp.database import get_db
from socialapp.models.user import User
from socialapp.schemas.post_schema import (
    CommentCreate,
    CommentOut,
    LikeInfoOut,
    LikeToggleOut,
    PostCreate,
    PostListResponse,
    RetweetCreate,
)
from socialapp.services import content, engagement, feed
from socialapp.utils.pagination import Page, page_params

router = APIRouter(prefix="/api/posts", tags=["Posts"])


@router.get("", response_model=PostListResponse)
def list_posts(
    timeline: bool = False,
    user_id: Optional[int] = Query(None, alias="userId"),
    paging: Page = Depends(page_params),
    db: Session = Depends(get_db),
    viewer: Optional[User] = Depends(get_optional_user),
):
    if timeline and viewer:
        posts = feed.get_timeline(db, viewer.id, paging.limit, paging.offset)
    else:
        posts = feed.get_all_posts(db, paging.limit, paging.offset, author_id=user_id)

    return PostListResponse(
        posts=feed.enrich_posts(db, posts, viewer.id if viewer else None),
        page=paging.page,
        limit=paging.limit,
    )


@router.post("", status_code=status.HTTP_201_CREATED)
def create_post(
    payload: PostCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    post = content.create_post(db, user.id, payload.content)
    return {"post": feed.enrich_posts(db, [post], user.id)[0]}


@router.get("/search", response_model=PostListResponse)
def search_posts(
    q: str = Query(""),
    paging: Page = Depends(page_params),
    db: Session = Depends(get_db),
    viewer: Optional[User] = Depends(get_optional_user),
):
    if not q.strip():
        raise HTTPException(status_code=400, detail="Search query required")

    posts = feed.search_posts(db, q.strip(), paging.limit, paging.offset)
    return PostListResponse(
        posts=feed.enrich_posts(db, posts, viewer.id if viewer else None),
        page=paging.page,
        limit=paging.limit,
    )


@router.get("/{post_id}")
def get_post(
    post_id: int,
    db: Session = Depends(get_db),
    viewer: Optional[User] = Depends(get_optional_user),
):
    post = content.get_post_or_404(db, post_id)
    return {"post": feed.enrich_posts(db, [post], viewer.id if viewer else None)[0]}


@router.delete("/{post_id}")
def delete_post(
    post_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    if not content.delete_post(db, post_id, user.id):
        raise HTTPException(status_code=404, detail="Post not found or unauthorized")
    return {"message": "Post deleted successfully"}


@router.post("/{post_id}/like", response_model=LikeToggleOut)
def toggle_like(
    post_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    state = engagement.toggle_like(db, post_id, user.id)
    return LikeToggleOut(
        message="Post liked" if state.liked else "Post unliked",
        liked=state.liked,
        like_count=state.like_count,
    )


@router.get("/{post_id}/likes", response_model=LikeInfoOut)
def get_like_info(
    post_id: int,
    db: Session = Depends(get_db),
    viewer: Optional[User] = Depends(get_optional_user),
):
    info = engagement.get_like_info(db, post_id, viewer.id if viewer else None)
    return LikeInfoOut(like_count=info.like_count, user_liked=info.user_liked)


@router.post("/{post_id}/retweet", status_code=status.HTTP_201_CREATED)
def retweet(
    post_id: int,
    payload: Optional[RetweetCreate] = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    post = content.create_retweet(db, user.id, post_id, payload.content if payload else None)
    return {"post": feed.enrich_posts(db, [post], user.id)[0]}


@router.post("/{post_id}/comment", status_code=status.HTTP_201_CREATED)
def add_comment(
    post_id: int,
    payload: CommentCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    comment = content.add_comment(db, user.id, post_id, payload.content, payload.parent_comment_id)
    return {"comment": CommentOut.model_validate(comment)}


@router.get("/{post_id}/comments")
def get_comments(
    post_id: int,
    paging: Page = Depends(page_params),
    db: Session = Depends(get_db),
):
    comments = content.get_comments(db, post_id, paging.limit, paging.offset)
    return {
        "comments": [CommentOut.model_validate(c) for c in comments],
        "page": paging.page,
        "limit": paging.limit,
    }
