# socialapp/services/identity.py
"""Identity store: user records, credentials, wallet identity and the follow graph."""
from __future__ import annotations

import logging
import re
from typing import Any, Optional
from urllib.parse import quote

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from socialapp.auth.passwords import hash_password, verify_password
from socialapp.core.errors import (
    AlreadyFollowingError,
    ConflictError,
    NotFollowingError,
    NotFoundError,
    SelfFollowError,
    ValidationError,
)
from socialapp.models.user import Follow, User
from socialapp.services import wallet
from socialapp.utils.search_text import escape_like

logger = logging.getLogger(__name__)

USERNAME_RE = re.compile(r"^[a-zA-Z0-9_]+$")
MIN_USERNAME_LENGTH = 3
MAX_USERNAME_LENGTH = 50
MIN_PASSWORD_LENGTH = 6
MAX_PASSWORD_BYTES = 72  # bcrypt only looks at the first 72 bytes

PROFILE_FIELDS = ("bio", "avatar_url", "cover_url", "location", "website")


# ---------- Validation ----------

def validate_username(username: str | None) -> str:
    username = (username or "").strip()
    if len(username) < MIN_USERNAME_LENGTH:
        raise ValidationError("Username must be at least 3 characters long")
    if len(username) > MAX_USERNAME_LENGTH:
        raise ValidationError("Username must be 50 characters or less")
    if not USERNAME_RE.match(username):
        raise ValidationError("Username can only contain letters, numbers, and underscores")
    return username


def validate_password(password: str | None) -> str:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError("Password must be at least 6 characters long")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError("Password must be 72 bytes or less")
    return password


# ---------- Users ----------

def create_user(
    db: Session,
    *,
    username: str,
    email: Optional[str] = None,
    password: Optional[str] = None,
    wallet_address: Optional[str] = None,
    bcrypt_rounds: int = 10,
) -> User:
    username = validate_username(username)
    email = (email or "").strip() or None

    if find_by_username(db, username):
        raise ConflictError("Username already exists")
    if email and db.execute(select(User.id).where(User.email == email)).first():
        raise ConflictError("Email already exists")
    if wallet_address and find_by_wallet(db, wallet_address):
        raise ConflictError("Wallet already registered")

    user = User(
        username=username,
        email=email,
        password_hash=hash_password(validate_password(password), bcrypt_rounds) if password is not None else None,
        wallet_address=wallet_address.lower() if wallet_address else None,
        avatar_url=f"https://ui-avatars.com/api/?name={quote(username)}&background=random",
        bio=f"Hey there! I'm {username}",
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race with an identical registration
        db.rollback()
        raise ConflictError("Username or email already exists")
    db.refresh(user)

    logger.info("user created", extra={"user_id": user.id, "wallet": bool(user.wallet_address)})
    return user


def find_by_username(db: Session, username: str) -> Optional[User]:
    return db.execute(select(User).where(User.username == username)).scalar_one_or_none()


def find_by_wallet(db: Session, wallet_address: str) -> Optional[User]:
    return db.execute(
        select(User).where(User.wallet_address == wallet_address.strip().lower())
    ).scalar_one_or_none()


def follow_stats(db: Session, user_id: int) -> tuple[int, int]:
    followers = db.scalar(select(func.count()).select_from(Follow).where(Follow.following_id == user_id))
    following = db.scalar(select(func.count()).select_from(Follow).where(Follow.follower_id == user_id))
    return followers or 0, following or 0


def find_by_id(db: Session, user_id: int, include_stats: bool = False) -> Optional[User]:
    user = db.get(User, user_id)
    if user is None:
        return None
    if include_stats:
        user.followers_count, user.following_count = follow_stats(db, user_id)
    return user


def validate_credential(user: Optional[User], password: str) -> bool:
    if user is None or not user.password_hash:
        return False
    return verify_password(password, user.password_hash)


def authenticate(db: Session, username: str, password: str) -> User:
    user = find_by_username(db, (username or "").strip())
    if not validate_credential(user, password or ""):
        raise ValidationError("Invalid credentials")
    return user


def wallet_login(
    db: Session,
    *,
    address: str,
    signature: str,
    username: Optional[str] = None,
    bcrypt_rounds: int = 10,
) -> tuple[User, bool]:
    """Log in (or sign up) by wallet signature. Returns (user, created)."""
    clean_address = wallet.consume_nonce(db, address, signature)

    user = find_by_wallet(db, clean_address)
    if user:
        db.commit()
        return user, False

    if not username:
        db.rollback()
        raise ValidationError("Username is required for new wallet users")
    try:
        user = create_user(db, username=username, wallet_address=clean_address, bcrypt_rounds=bcrypt_rounds)
    except (ValidationError, ConflictError):
        # Keep the nonce; the wallet can retry with another username
        db.rollback()
        raise
    return user, True


def update_profile(db: Session, user_id: int, updates: dict[str, Any]) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")

    for field in PROFILE_FIELDS:
        if field in updates and updates[field] is not None:
            setattr(user, field, updates[field])

    db.commit()
    return find_by_id(db, user_id, include_stats=True)


def search_users(db: Session, query: str, limit: int = 20, offset: int = 0) -> list[User]:
    pattern = f"%{escape_like(query.strip())}%"
    return list(
        db.execute(
            select(User)
            .where(User.username.ilike(pattern, escape="\\"))
            .order_by(User.username)
            .limit(limit)
            .offset(offset)
        ).scalars()
    )


def get_recommendations(db: Session, viewer_id: Optional[int] = None, limit: int = 5) -> list[User]:
    stmt = select(User).order_by(User.created_at.desc(), User.id.desc()).limit(limit)
    if viewer_id is not None:
        stmt = stmt.where(User.id != viewer_id)
    return list(db.execute(stmt).scalars())


# ---------- Follow graph ----------

def is_following(db: Session, follower_id: int, following_id: int) -> bool:
    return db.execute(
        select(Follow.id).where(Follow.follower_id == follower_id, Follow.following_id == following_id)
    ).first() is not None


def follow(db: Session, follower_id: int, following_id: int) -> Follow:
    if follower_id == following_id:
        raise SelfFollowError()
    if db.get(User, following_id) is None:
        raise NotFoundError("User not found")
    if is_following(db, follower_id, following_id):
        raise AlreadyFollowingError()

    edge = Follow(follower_id=follower_id, following_id=following_id)
    db.add(edge)
    try:
        db.commit()
    except IntegrityError:
        # The unique constraint caught a concurrent identical follow
        db.rollback()
        raise AlreadyFollowingError()

    logger.info("follow", extra={"follower_id": follower_id, "following_id": following_id})
    return edge


def unfollow(db: Session, follower_id: int, following_id: int) -> None:
    result = db.execute(
        delete(Follow).where(Follow.follower_id == follower_id, Follow.following_id == following_id)
    )
    if result.rowcount == 0:
        db.rollback()
        raise NotFollowingError()
    db.commit()
    logger.info("unfollow", extra={"follower_id": follower_id, "following_id": following_id})


def get_followers(db: Session, user_id: int, limit: int = 20, offset: int = 0) -> list[User]:
    return list(
        db.execute(
            select(User)
            .join(Follow, Follow.follower_id == User.id)
            .where(Follow.following_id == user_id)
            .order_by(Follow.created_at.desc(), Follow.id.desc())
            .limit(limit)
            .offset(offset)
        ).scalars()
    )


def get_following(db: Session, user_id: int, limit: int = 20, offset: int = 0) -> list[User]:
    return list(
        db.execute(
            select(User)
            .join(Follow, Follow.following_id == User.id)
            .where(Follow.follower_id == user_id)
            .order_by(Follow.created_at.desc(), Follow.id.desc())
            .limit(limit)
            .offset(offset)
        ).scalars()
    )
