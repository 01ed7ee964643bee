"""Authentication API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from src.api.dependencies import get_current_user, get_second_factor_satisfied
from src.database import get_db
from src.models.user import User
from src.schemas.auth import (
    AuthResponse,
    SessionResponse,
    TotpVerify,
    UserLogin,
    UserRegister,
    UserResponse,
)
from src.services.auth import (
    authenticate_user,
    create_access_token,
    create_user,
    get_user_by_username,
    verify_totp,
)

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserRegister,
    db: Annotated[Session, Depends(get_db)],
):
    """Register a new user."""
    # Check if user already exists
    existing_user = get_user_by_username(db, user_data.username)
    if existing_user:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username already registered",
        )

    user = create_user(db, user_data.username, user_data.password)

    access_token = create_access_token(user.id, user.username)

    return AuthResponse(
        access_token=access_token,
        user=UserResponse.model_validate(user),
    )


@router.post("/login", response_model=AuthResponse)
async def login(
    credentials: UserLogin,
    db: Annotated[Session, Depends(get_db)],
):
    """Login with username and password.

    Users with a second factor get a token that can browse and order but not
    cancel; they exchange it at ``/totp`` for a fully verified token.
    """
    user = authenticate_user(db, credentials.username, credentials.password)

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    access_token = create_access_token(user.id, user.username)

    return AuthResponse(
        access_token=access_token,
        second_factor_required=user.has_second_factor,
        user=UserResponse.model_validate(user),
    )


@router.post("/totp", response_model=AuthResponse)
async def verify_second_factor(
    body: TotpVerify,
    current_user: Annotated[User, Depends(get_current_user)],
):
    """Verify a TOTP code and issue a token with the second factor satisfied."""
    if not current_user.has_second_factor:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Second factor is not enabled for this user",
        )

    if not verify_totp(current_user, body.code):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid TOTP code",
        )

    access_token = create_access_token(current_user.id, current_user.username, second_factor=True)

    return AuthResponse(
        access_token=access_token,
        user=UserResponse.model_validate(current_user),
    )


@router.get("/me", response_model=SessionResponse)
async def get_me(
    current_user: Annotated[User, Depends(get_current_user)],
    second_factor_satisfied: Annotated[bool, Depends(get_second_factor_satisfied)],
):
    """Get current user information."""
    return SessionResponse(
        id=current_user.id,
        username=current_user.username,
        has_second_factor=current_user.has_second_factor,
        second_factor_satisfied=second_factor_satisfied,
    )


@router.post("/logout")
async def logout(
    current_user: Annotated[User, Depends(get_current_user)],
):
    """Logout (client should discard token)."""
    return {"message": "Logged out successfully"}
