# schemas/user_schema.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class UserCreate(BaseModel):
    username: str
    password: str
    email: Optional[str] = None


class LoginRequest(BaseModel):
    username: str
    password: str


class WalletLoginRequest(BaseModel):
    address: str
    signature: str
    username: Optional[str] = None


class ProfileUpdate(BaseModel):
    # Limits mirror the users table columns; unknown keys are dropped
    bio: Optional[str] = None
    avatar_url: Optional[str] = Field(None, max_length=512)
    cover_url: Optional[str] = Field(None, max_length=512)
    location: Optional[str] = Field(None, max_length=100)
    website: Optional[str] = Field(None, max_length=200)

    model_config = {"extra": "ignore"}


class UserResponse(BaseModel):
    """Outward-facing user; there is deliberately no password_hash field."""
    id: int
    username: str
    email: Optional[str] = None
    wallet_address: Optional[str] = None
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    cover_url: Optional[str] = None
    location: Optional[str] = None
    website: Optional[str] = None
    created_at: Optional[datetime] = None

    followers_count: Optional[int] = None
    following_count: Optional[int] = None
    is_following: Optional[bool] = None

    model_config = {"from_attributes": True}


class UserListItem(BaseModel):
    id: int
    username: str
    avatar_url: Optional[str] = None
    bio: Optional[str] = None

    model_config = {"from_attributes": True}


class AuthResponse(BaseModel):
    message: str
    user: UserResponse
    access_token: str
    token_type: str = "bearer"
