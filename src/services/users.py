"""User accounts: registration, credentials, profile and activation."""

import logging
from datetime import datetime
from typing import List, Optional, Tuple
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from src.auth import hash_password, verify_password
from src.errors import Conflict, NotFound, Unauthenticated, ValidationFailed
from src.models import User
from src.schemas import PaginationMeta, UserRegister, UserUpdate
from src.services.common import commit_or_conflict, paginate
from src.utils import sanitize_text

# Configure logging
logger = logging.getLogger(__name__)

EMAIL_TAKEN = "email is already registered"
USERNAME_TAKEN = "username is already taken"


def _email_taken(db: Session, email: str, exclude_id: Optional[int] = None) -> bool:
    query = db.query(User.id).filter(func.lower(User.email) == email.lower())
    if exclude_id:
        query = query.filter(User.id != exclude_id)
    return query.first() is not None


def _username_taken(db: Session, username: str, exclude_id: Optional[int] = None) -> bool:
    query = db.query(User.id).filter(User.username == username)
    if exclude_id:
        query = query.filter(User.id != exclude_id)
    return query.first() is not None


def register_user(db: Session, data: UserRegister) -> User:
    """
    Create a regular (non-admin, active) account.

    Raises:
        Conflict: If the email or username is already in use
    """
    logger.info(f"Registration attempt for email: {data.email}")

    if _email_taken(db, data.email):
        logger.warning(f"Registration failed: Email already exists - {data.email}")
        raise Conflict(EMAIL_TAKEN)

    if _username_taken(db, data.username):
        logger.warning(f"Registration failed: Username already exists - {data.username}")
        raise Conflict(USERNAME_TAKEN)

    user = User(
        first_name=sanitize_text(data.first_name),
        last_name=sanitize_text(data.last_name),
        email=data.email,
        username=data.username,
        password_hash=hash_password(data.password),
        bio=sanitize_text(data.bio),
        avatar=data.avatar or "",
        is_active=True,
        is_admin=False,
    )
    db.add(user)
    commit_or_conflict(db, "email or username is already registered")
    db.refresh(user)

    logger.info(f"User registered successfully: {user.email}")
    return user


def authenticate(db: Session, email_or_username: str, password: str) -> User:
    """
    Check credentials for login.

    Raises:
        Unauthenticated: On unknown user, wrong password or deactivated account
    """
    user = db.query(User).filter(
        or_(func.lower(User.email) == email_or_username.lower(), User.username == email_or_username)
    ).first()

    if not user:
        logger.warning(f"Login failed: User not found - {email_or_username}")
        raise Unauthenticated("invalid credentials")

    if not user.is_active:
        logger.warning(f"Login failed: Account deactivated - {email_or_username}")
        raise Unauthenticated("account is deactivated")

    if not verify_password(password, user.password_hash):
        logger.warning(f"Login failed: Invalid password - {email_or_username}")
        raise Unauthenticated("invalid credentials")

    logger.info(f"User logged in successfully: {user.email}")
    return user


def get_user(db: Session, user_id: int) -> User:
    """
    Load a user by id, active or not.

    Raises:
        NotFound: If the user does not exist
    """
    user = db.get(User, user_id)
    if user is None:
        raise NotFound("user not found")
    return user


def update_profile(db: Session, user: User, data: UserUpdate) -> User:
    """
    Apply a profile update; omitted fields stay as they are.

    Raises:
        Conflict: If the new email or username belongs to another user
    """
    if data.email is not None and data.email != user.email:
        if _email_taken(db, data.email, exclude_id=user.id):
            raise Conflict(EMAIL_TAKEN)
        user.email = data.email

    if data.username is not None and data.username != user.username:
        if _username_taken(db, data.username, exclude_id=user.id):
            raise Conflict(USERNAME_TAKEN)
        user.username = data.username

    if data.first_name is not None:
        user.first_name = sanitize_text(data.first_name)
    if data.last_name is not None:
        user.last_name = sanitize_text(data.last_name)
    if data.bio is not None:
        user.bio = sanitize_text(data.bio)
    if data.avatar is not None:
        user.avatar = data.avatar

    commit_or_conflict(db, "email or username is already registered")
    db.refresh(user)
    logger.info(f"Profile updated for user: {user.email}")
    return user


def change_password(db: Session, user: User, current_password: str, new_password: str):
    """
    Replace a user's password after checking the current one.

    Raises:
        Unauthenticated: If the current password is wrong
        ValidationFailed: If the new password is too short
    """
    if not verify_password(current_password, user.password_hash):
        logger.warning(f"Password change rejected for user: {user.email}")
        raise Unauthenticated("invalid current password")

    if len(new_password) < 8:
        raise ValidationFailed("new password must be at least 8 characters long")

    user.password_hash = hash_password(new_password)
    user.updated_at = datetime.utcnow()
    db.commit()
    logger.info(f"Password changed for user: {user.email}")


def list_users(db: Session, page: int, per_page: int) -> Tuple[List[User], PaginationMeta]:
    """One page of users in id order."""
    return paginate(db.query(User).order_by(User.id), page, per_page)


def set_active(db: Session, user_id: int, active: bool) -> User:
    """Activate or deactivate an account (soft, reversible)."""
    user = get_user(db, user_id)
    user.is_active = active
    db.commit()
    db.refresh(user)
    logger.info(f"User {user.email} {'activated' if active else 'deactivated'}")
    return user


def user_stats(db: Session) -> dict:
    """Total, active and inactive account counts."""
    total = db.query(func.count(User.id)).scalar()
    active = db.query(func.count(User.id)).filter(User.is_active.is_(True)).scalar()
    admins = db.query(func.count(User.id)).filter(User.is_admin.is_(True)).scalar()
    return {
        "total_users": total,
        "active_users": active,
        "inactive_users": total - active,
        "admin_users": admins,
        "regular_users": total - admins,
    }
