from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from socialapp.auth.token import get_current_user, get_optional_user
from socialapp.database import get_db
from socialapp.models.user import User
from socialapp.schemas.user_schema import ProfileUpdate, UserListItem, UserResponse
from socialapp.services import identity
from socialapp.utils.pagination import Page, page_params

router = APIRouter(prefix="/api/users", tags=["User"])


def _profile(db: Session, user_id: int, viewer: Optional[User]) -> dict:
    user = identity.find_by_id(db, user_id, include_stats=True)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    if viewer and viewer.id != user.id:
        user.is_following = identity.is_following(db, viewer.id, user.id)

    return {"user": UserResponse.model_validate(user)}


# Static paths first so they don't get captured by /{user_id}

@router.get("/search")
def search_users(
    q: str = Query(""),
    paging: Page = Depends(page_params),
    db: Session = Depends(get_db),
):
    if not q.strip():
        raise HTTPException(status_code=400, detail="Search query is required")

    users = identity.search_users(db, q, paging.limit, paging.offset)
    return {
        "users": [UserListItem.model_validate(u) for u in users],
        "page": paging.page,
        "limit": paging.limit,
    }


@router.get("/recommendations")
def get_recommendations(
    limit: int = Query(5, ge=1, le=50),
    db: Session = Depends(get_db),
    viewer: Optional[User] = Depends(get_optional_user),
):
    users = identity.get_recommendations(db, viewer.id if viewer else None, limit)
    return {"recommendations": [UserListItem.model_validate(u) for u in users]}


@router.get("/profile/{username}")
def get_profile_by_username(
    username: str,
    db: Session = Depends(get_db),
    viewer: Optional[User] = Depends(get_optional_user),
):
    user = identity.find_by_username(db, username)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return _profile(db, user.id, viewer)


@router.put("/profile")
def update_profile(
    payload: ProfileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    user = identity.update_profile(db, current_user.id, payload.model_dump(exclude_unset=True))
    return {"user": UserResponse.model_validate(user)}


@router.get("/{user_id}")
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    viewer: Optional[User] = Depends(get_optional_user),
):
    return _profile(db, user_id, viewer)


@router.post("/{user_id}/follow")
def follow_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    identity.follow(db, current_user.id, user_id)
    return {"success": True, "message": "Successfully followed user"}


@router.delete("/{user_id}/follow")
def unfollow_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    identity.unfollow(db, current_user.id, user_id)
    return {"success": True, "message": "Successfully unfollowed user"}


@router.get("/{user_id}/following")
def check_following(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return {"isFollowing": identity.is_following(db, current_user.id, user_id)}


@router.get("/{user_id}/followers")
def get_followers(
    user_id: int,
    paging: Page = Depends(page_params),
    db: Session = Depends(get_db),
):
    followers = identity.get_followers(db, user_id, paging.limit, paging.offset)
    return {
        "followers": [UserListItem.model_validate(u) for u in followers],
        "page": paging.page,
        "limit": paging.limit,
    }


@router.get("/{user_id}/following-list")
def get_following(
    user_id: int,
    paging: Page = Depends(page_params),
    db: Session = Depends(get_db),
):
    following = identity.get_following(db, user_id, paging.limit, paging.offset)
    return {
        "following": [UserListItem.model_validate(u) for u in following],
        "page": paging.page,
        "limit": paging.limit,
    }
