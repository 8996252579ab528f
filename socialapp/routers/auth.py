from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from socialapp.auth.token import (
    clear_session_cookie,
    create_access_token,
    get_current_user,
    get_settings,
    set_session_cookie,
)
from socialapp.core.config import Settings
from socialapp.database import get_db
from socialapp.models.user import User
from socialapp.schemas.user_schema import (
    AuthResponse,
    LoginRequest,
    UserCreate,
    UserResponse,
    WalletLoginRequest,
)
from socialapp.services import identity, wallet

router = APIRouter(prefix="/api/auth", tags=["Auth"])


def _issue_session(user: User, message: str, response: Response, settings: Settings) -> AuthResponse:
    token = create_access_token(data={"sub": str(user.id)}, settings=settings)
    set_session_cookie(response, token, settings)
    return AuthResponse(message=message, user=UserResponse.model_validate(user), access_token=token)


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(
    payload: UserCreate,
    response: Response,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    user = identity.create_user(
        db,
        username=payload.username,
        email=payload.email,
        password=payload.password,
        bcrypt_rounds=settings.BCRYPT_ROUNDS,
    )
    return _issue_session(user, "User registered successfully", response, settings)


@router.post("/login", response_model=AuthResponse)
def login(
    payload: LoginRequest,
    response: Response,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    user = identity.authenticate(db, payload.username, payload.password)
    return _issue_session(user, "Login successful", response, settings)


@router.get("/nonce")
def get_nonce(address: str, db: Session = Depends(get_db)):
    nonce = wallet.issue_nonce(db, address)
    return {"nonce": nonce, "message": wallet.login_message(nonce)}


@router.post("/wallet-login", response_model=AuthResponse)
def wallet_login(
    payload: WalletLoginRequest,
    response: Response,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    user, created = identity.wallet_login(
        db,
        address=payload.address,
        signature=payload.signature,
        username=payload.username,
        bcrypt_rounds=settings.BCRYPT_ROUNDS,
    )
    message = "Registration successful" if created else "Login successful"
    return _issue_session(user, message, response, settings)


@router.get("/me")
def get_me(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    user = identity.find_by_id(db, current_user.id, include_stats=True)
    return {"user": UserResponse.model_validate(user)}


@router.post("/logout")
def logout(response: Response, settings: Settings = Depends(get_settings)):
    clear_session_cookie(response, settings)
    return {"message": "Logged out successfully"}


@router.post("/refresh", response_model=AuthResponse)
def refresh(
    response: Response,
    current_user: User = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
):
    return _issue_session(current_user, "Token refreshed successfully", response, settings)


@router.get("/verify")
def verify(current_user: User = Depends(get_current_user)):
    return {"valid": True, "user": UserResponse.model_validate(current_user)}
