# socialapp/auth/token.py
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, Request, Response, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy.orm import Session

from socialapp.core.config import Settings
from socialapp.database import get_db
from socialapp.models.user import User

security = HTTPBearer(auto_error=False)  # don't auto-fail if no header


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def create_access_token(data: dict, settings: Settings, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRES_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALG)


def set_session_cookie(response: Response, token: str, settings: Settings) -> None:
    max_age = settings.ACCESS_TOKEN_EXPIRES_MINUTES * 60
    samesite = settings.SESSION_COOKIE_SAMESITE
    secure = settings.SESSION_COOKIE_SECURE or (samesite.lower() == "none")

    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=secure,
        samesite=samesite,
        domain=settings.SESSION_COOKIE_DOMAIN,
        max_age=max_age,
        path="/",
    )


def clear_session_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(
        key=settings.SESSION_COOKIE_NAME,
        domain=settings.SESSION_COOKIE_DOMAIN,
        path="/",
    )


def _resolve_user(token: str, db: Session, settings: Settings) -> User:
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALG])
    except ExpiredSignatureError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token expired")
    except JWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    sub = payload.get("sub")
    if sub is None or not str(sub).isdigit():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token payload")

    user = db.get(User, int(sub))
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User no longer exists")
    return user


def _extract_token(request: Request, credentials: HTTPAuthorizationCredentials | None, settings: Settings) -> str | None:
    return credentials.credentials if credentials else request.cookies.get(settings.SESSION_COOKIE_NAME)


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
    credentials: HTTPAuthorizationCredentials = Depends(security),
    settings: Settings = Depends(get_settings),
) -> User:
    """
    Resolve current user from:
      1) Authorization: Bearer <token>
      2) Cookie: settings.SESSION_COOKIE_NAME
    """
    token = _extract_token(request, credentials, settings)
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return _resolve_user(token, db, settings)


def get_optional_user(
    request: Request,
    db: Session = Depends(get_db),
    credentials: HTTPAuthorizationCredentials = Depends(security),
    settings: Settings = Depends(get_settings),
) -> Optional[User]:
    """Same sources as get_current_user, but anonymous (or a bad token) yields None."""
    token = _extract_token(request, credentials, settings)
    if not token:
        return None
    try:
        return _resolve_user(token, db, settings)
    except HTTPException:
        return None
