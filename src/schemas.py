"""Pydantic schemas for request and response validation."""

import re
from datetime import datetime
from typing import Any, List, Optional
from urllib.parse import urlparse
from pydantic import BaseModel, EmailStr, Field, field_validator

from src.models import CommentStatus, PostStatus

_HEX_COLOR = re.compile(r"^#(?:[0-9a-fA-F]{3}){1,2}$")


def _check_url(value: Optional[str]) -> Optional[str]:
    if value is None or value == "":
        return value
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError("must be a valid URL")
    return value


# Envelope Schemas
class PaginationMeta(BaseModel):
    """Pagination block returned with every list response."""

    page: int
    per_page: int
    total: int
    total_pages: int


def success_response(data: Any = None, message: Optional[str] = None) -> dict:
    """Wrap a payload in the ``{success, message?, data?}`` envelope."""
    body: dict = {"success": True}
    if message is not None:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return body


def paginated_response(data: List[Any], pagination: PaginationMeta, message: Optional[str] = None) -> dict:
    """Wrap a page of items in the ``{success, data, pagination}`` envelope."""
    body: dict = {"success": True}
    if message is not None:
        body["message"] = message
    body["data"] = data
    body["pagination"] = pagination
    return body


def error_response(error: str, details: Any = None) -> dict:
    """Build the failure envelope."""
    body: dict = {"success": False, "error": error}
    if details is not None:
        body["details"] = details
    return body


# Auth Schemas
class UserRegister(BaseModel):
    """Schema for user registration request."""

    first_name: str = Field(min_length=2, max_length=50)
    last_name: str = Field(min_length=2, max_length=50)
    email: EmailStr
    username: str = Field(min_length=3, max_length=30)
    password: str = Field(min_length=8)
    bio: str = Field(default="", max_length=500)
    avatar: Optional[str] = Field(default=None, max_length=255)

    @field_validator('email')
    @classmethod
    def email_length(cls, v: str) -> str:
        """Validate that email fits the column."""
        if len(v) > 100:
            raise ValueError('Email must be at most 100 characters long')
        return v

    @field_validator('username')
    @classmethod
    def username_alphanumeric(cls, v: str) -> str:
        """Validate that username contains only letters and digits."""
        if not v.isalnum() or not v.isascii():
            raise ValueError('Username must contain only alphanumeric characters')
        return v

    @field_validator('avatar')
    @classmethod
    def avatar_url(cls, v: Optional[str]) -> Optional[str]:
        return _check_url(v)


class UserLogin(BaseModel):
    """Schema for user login request (email or username)."""

    email_or_username: str
    password: str

    @field_validator('email_or_username')
    @classmethod
    def identifier_not_empty(cls, v: str) -> str:
        """Validate that the login identifier is not empty."""
        if not v or not v.strip():
            raise ValueError('Email or username cannot be empty')
        return v.strip()

    @field_validator('password')
    @classmethod
    def password_not_empty(cls, v: str) -> str:
        """Validate that password is not empty."""
        if not v or not v.strip():
            raise ValueError('Password cannot be empty')
        return v


class UserUpdate(BaseModel):
    """Schema for profile update request; omitted fields are left unchanged."""

    first_name: Optional[str] = Field(default=None, min_length=2, max_length=50)
    last_name: Optional[str] = Field(default=None, min_length=2, max_length=50)
    email: Optional[EmailStr] = None
    username: Optional[str] = Field(default=None, min_length=3, max_length=30)
    bio: Optional[str] = Field(default=None, max_length=500)
    avatar: Optional[str] = Field(default=None, max_length=255)

    @field_validator('email')
    @classmethod
    def email_length(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and len(v) > 100:
            raise ValueError('Email must be at most 100 characters long')
        return v

    @field_validator('username')
    @classmethod
    def username_alphanumeric(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and (not v.isalnum() or not v.isascii()):
            raise ValueError('Username must contain only alphanumeric characters')
        return v

    @field_validator('avatar')
    @classmethod
    def avatar_url(cls, v: Optional[str]) -> Optional[str]:
        return _check_url(v)


class ChangePasswordRequest(BaseModel):
    """Schema for change password request."""

    current_password: str
    new_password: str = Field(min_length=8)


class RefreshTokenRequest(BaseModel):
    token: str


class UserResponse(BaseModel):
    """Schema for user data returned to clients (no credentials)."""

    id: int
    first_name: str
    last_name: str
    email: str
    username: str
    bio: str
    avatar: str
    is_active: bool
    is_admin: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class AuthorSummary(BaseModel):
    """Public view of a post or comment author."""

    id: int
    username: str
    first_name: str
    last_name: str
    avatar: str

    class Config:
        from_attributes = True


class AuthResponse(BaseModel):
    """Schema for login/registration response."""

    user: UserResponse
    token: str
    token_type: str = "Bearer"
    expires_in: int


# Tag Schemas
class TagCreate(BaseModel):
    """Schema for tag creation request."""

    name: str = Field(min_length=2, max_length=50)
    description: str = Field(default="", max_length=200)
    color: Optional[str] = None

    @field_validator('color')
    @classmethod
    def color_hex(cls, v: Optional[str]) -> Optional[str]:
        """Validate that color is a hex color code."""
        if v and not _HEX_COLOR.match(v):
            raise ValueError('Color must be a valid hex color')
        return v


class TagUpdate(BaseModel):
    """Schema for tag update request."""

    name: Optional[str] = Field(default=None, min_length=2, max_length=50)
    description: Optional[str] = Field(default=None, max_length=200)
    color: Optional[str] = None

    @field_validator('color')
    @classmethod
    def color_hex(cls, v: Optional[str]) -> Optional[str]:
        if v and not _HEX_COLOR.match(v):
            raise ValueError('Color must be a valid hex color')
        return v


class TagResponse(BaseModel):
    id: int
    name: str
    slug: str
    description: str
    color: str
    posts_count: int = 0
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


# Post Schemas
class PostCreate(BaseModel):
    """Schema for post creation request."""

    title: str = Field(min_length=5, max_length=200)
    content: str = Field(min_length=10)
    excerpt: Optional[str] = Field(default=None, max_length=500)
    featured_image: Optional[str] = Field(default=None, max_length=255)
    status: PostStatus = PostStatus.DRAFT
    tag_ids: Optional[List[int]] = None

    @field_validator('featured_image')
    @classmethod
    def featured_image_url(cls, v: Optional[str]) -> Optional[str]:
        return _check_url(v)


class PostUpdate(BaseModel):
    """Schema for post update request.

    ``tag_ids`` replaces the whole tag set when given; an empty list clears it.
    """

    title: Optional[str] = Field(default=None, min_length=5, max_length=200)
    content: Optional[str] = Field(default=None, min_length=10)
    excerpt: Optional[str] = Field(default=None, max_length=500)
    featured_image: Optional[str] = Field(default=None, max_length=255)
    status: Optional[PostStatus] = None
    tag_ids: Optional[List[int]] = None

    @field_validator('featured_image')
    @classmethod
    def featured_image_url(cls, v: Optional[str]) -> Optional[str]:
        return _check_url(v)


class PostListItem(BaseModel):
    """Schema for a post in list responses (no body)."""

    id: int
    title: str
    slug: str
    excerpt: str
    featured_image: str
    status: PostStatus
    view_count: int
    author_id: int
    author: AuthorSummary
    published_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    tags: List[TagResponse] = []
    comments_count: int = 0

    class Config:
        from_attributes = True


class PostResponse(PostListItem):
    """Schema for a single post including its content."""

    content: str


# Comment Schemas
class CommentCreate(BaseModel):
    """Schema for comment creation request."""

    content: str = Field(min_length=1, max_length=1000)
    post_id: int
    parent_id: Optional[int] = None

    @field_validator('content')
    @classmethod
    def content_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError('Content cannot be empty')
        return v


class CommentUpdate(BaseModel):
    """Schema for comment update request."""

    content: Optional[str] = Field(default=None, min_length=1, max_length=1000)
    status: Optional[CommentStatus] = None

    @field_validator('content')
    @classmethod
    def content_not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError('Content cannot be empty')
        return v


class CommentResponse(BaseModel):
    id: int
    content: str
    status: CommentStatus
    author_id: int
    post_id: int
    parent_id: Optional[int] = None
    author: AuthorSummary
    replies: List["CommentResponse"] = []
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


CommentResponse.model_rebuild()
