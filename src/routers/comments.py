"""Comments router: threaded comments on posts."""

import logging
from typing import Optional
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from src.auth import get_current_user, get_optional_user
from src.database import get_db
from src.models import User
from src.schemas import CommentCreate, CommentUpdate, paginated_response, success_response
from src.services import comments

# Configure logging
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/comments", tags=["Comments"])


@router.post("", status_code=status.HTTP_201_CREATED)
def create_comment(
    comment_data: CommentCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Comment on a post or reply to a comment.

    The comment is held for moderation until an admin approves it.

    Raises:
        NotFound: If the post or parent comment does not exist
        ValidationFailed: If the parent comment is on another post
    """
    comment = comments.create_comment(db, current_user, comment_data)
    return success_response(
        comments.to_response(comment),
        "Comment created successfully and is pending approval",
    )


@router.get("/post/{post_id}")
def post_comments(
    post_id: int,
    page: int = 1,
    per_page: int = 10,
    current_user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    """Approved comments of a post the caller can see, as a reply tree."""
    items, meta = comments.comments_for_post(db, post_id, page, per_page, current_user)
    return paginated_response(items, meta)


@router.get("/my-comments")
def my_comments(
    page: int = 1,
    per_page: int = 10,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    items, meta = comments.comments_by_author(db, current_user.id, page, per_page)
    return paginated_response(items, meta)


@router.get("/{comment_id}")
def get_comment(
    comment_id: int,
    current_user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    """
    Get a single comment.

    Pending and rejected comments are only visible to their author and admins.
    """
    comment = comments.get_comment(db, comment_id)
    comments.check_visible(db, comment, current_user)
    return success_response(comments.to_response(comment))


@router.put("/{comment_id}")
def update_comment(
    comment_id: int,
    comment_data: CommentUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Edit a comment (author or admin).

    Editing as a regular user sends the comment back for moderation.
    """
    comment = comments.update_comment(db, current_user, comment_id, comment_data)
    return success_response(comments.to_response(comment), "Comment updated successfully")


@router.delete("/{comment_id}")
def delete_comment(
    comment_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    comments.delete_comment(db, current_user, comment_id)
    return success_response(message="Comment deleted successfully")
