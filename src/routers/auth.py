"""Authentication router for registration, login, tokens and profile."""

import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from src.auth import create_access_token, get_current_user, get_settings, user_from_token
from src.config import Settings
from src.database import get_db
from src.models import User
from src.schemas import (
    AuthResponse,
    ChangePasswordRequest,
    RefreshTokenRequest,
    UserLogin,
    UserRegister,
    UserResponse,
    UserUpdate,
    success_response,
)
from src.services import users

# Configure logging
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _auth_payload(user: User, settings: Settings) -> AuthResponse:
    return AuthResponse(
        user=UserResponse.model_validate(user),
        token=create_access_token(user, settings),
        expires_in=settings.jwt_expires_seconds,
    )


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(
    user_data: UserRegister,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """
    Register a new user and return an access token.

    Args:
        user_data: Registration data
        db: Database session
        settings: Application settings

    Returns:
        dict: Envelope holding the new user and its token

    Raises:
        Conflict: If the email or username is already registered
    """
    user = users.register_user(db, user_data)
    return success_response(_auth_payload(user, settings), "User registered successfully")


@router.post("/login")
def login(
    user_data: UserLogin,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """
    Authenticate by email or username and return a JWT token.

    Raises:
        Unauthenticated: If credentials are invalid or the account is deactivated
    """
    logger.info(f"Login attempt for: {user_data.email_or_username}")
    user = users.authenticate(db, user_data.email_or_username, user_data.password)
    return success_response(_auth_payload(user, settings), "Login successful")


@router.post("/refresh")
def refresh_token(
    request: RefreshTokenRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Exchange a still-valid token of an active user for a fresh one."""
    user = user_from_token(request.token, db, settings)
    logger.info(f"Token refreshed for user: {user.email}")
    return success_response(_auth_payload(user, settings), "Token refreshed successfully")


@router.get("/profile")
def get_profile(current_user: User = Depends(get_current_user)):
    return success_response(UserResponse.model_validate(current_user))


@router.put("/profile")
def update_profile(
    user_data: UserUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Update the authenticated user's profile.

    Raises:
        Conflict: If the new email or username belongs to someone else
    """
    user = users.update_profile(db, current_user, user_data)
    return success_response(UserResponse.model_validate(user), "Profile updated successfully")


@router.post("/change-password")
def change_password(
    request: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Change the authenticated user's password.

    Raises:
        Unauthenticated: If the current password is wrong
    """
    users.change_password(db, current_user, request.current_password, request.new_password)
    return success_response(message="Password changed successfully")
