"""Authentication utilities for JWT and password hashing."""

import logging
from typing import Optional
from datetime import datetime, timedelta
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from src.config import Settings
from src.database import get_db
from src.errors import Forbidden, Unauthenticated
from src.models import User

# Configure logging
logger = logging.getLogger(__name__)

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# HTTP Bearer for JWT authentication; missing headers are reported by us
security = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> Settings:
    """Dependency returning the settings the app was built with."""
    return request.app.state.settings


def _truncate_for_bcrypt(password: str) -> str:
    # Bcrypt has a 72-byte limit
    password_bytes = password.encode('utf-8')[:72]
    return password_bytes.decode('utf-8', errors='ignore')


def hash_password(password: str) -> str:
    """
    Hash a password using bcrypt.

    Bcrypt has a maximum password length of 72 bytes. Passwords longer than
    this are truncated to prevent errors.

    Args:
        password: Plain text password

    Returns:
        str: Hashed password
    """
    logger.debug("Hashing password")
    return pwd_context.hash(_truncate_for_bcrypt(password))


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a password against its hash.

    Args:
        plain_password: Plain text password
        hashed_password: Hashed password to verify against

    Returns:
        bool: True if password matches, False otherwise
    """
    logger.debug("Verifying password")
    return pwd_context.verify(_truncate_for_bcrypt(plain_password), hashed_password)


def create_access_token(user: User, settings: Settings) -> str:
    """
    Create a JWT access token for a user.

    Args:
        user: User the token is issued to
        settings: Settings holding the signing key and lifetime

    Returns:
        str: Encoded JWT token
    """
    now = datetime.utcnow()
    to_encode = {
        "sub": str(user.id),
        "email": user.email,
        "username": user.username,
        "is_admin": user.is_admin,
        "iat": now,
        "exp": now + timedelta(hours=settings.jwt_expires_hours),
    }

    logger.info(f"Creating access token for user: {user.email}")
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str, settings: Settings) -> Optional[dict]:
    """
    Decode and verify a JWT token.

    Args:
        token: JWT token string
        settings: Settings holding the signing key

    Returns:
        Optional[dict]: Decoded token payload or None if invalid or expired
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
        logger.debug("Token decoded successfully")
        return payload
    except JWTError as e:
        logger.warning(f"Token decode error: {e}")
        return None


def user_from_token(token: str, db: Session, settings: Settings) -> User:
    """
    Resolve the active user a token was issued to.

    Raises:
        Unauthenticated: If the token is invalid, the user is gone or deactivated
    """
    payload = decode_token(token, settings)
    if payload is None:
        raise Unauthenticated("Invalid or expired token")

    subject = payload.get("sub")
    try:
        user_id = int(subject)
    except (TypeError, ValueError):
        logger.warning("Token missing subject claim")
        raise Unauthenticated("Invalid or expired token")

    user = db.get(User, user_id)
    if user is None:
        logger.warning(f"User not found for token subject: {user_id}")
        raise Unauthenticated("Invalid or expired token")

    if not user.is_active:
        logger.warning(f"Deactivated user presented a token: {user.email}")
        raise Unauthenticated("Account is deactivated")

    return user


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> User:
    """
    Dependency to get the current authenticated user from JWT token.

    Raises:
        Unauthenticated: If the header is missing or the token is rejected
    """
    if credentials is None:
        raise Unauthenticated("Authorization header is required")

    user = user_from_token(credentials.credentials, db, settings)
    logger.info(f"User authenticated: {user.email}")
    return user


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> Optional[User]:
    """Like :func:`get_current_user` but returns None instead of failing."""
    if credentials is None:
        return None
    try:
        return user_from_token(credentials.credentials, db, settings)
    except Unauthenticated:
        return None


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    """Dependency that only lets admins through."""
    if not current_user.is_admin:
        logger.warning(f"Admin access denied for user: {current_user.email}")
        raise Forbidden("Admin access required")
    return current_user
