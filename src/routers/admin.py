"""Admin router for user, post, tag and comment management."""

import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from src.auth import get_settings, require_admin
from src.config import Settings
from src.database import get_db
from src.models import PostStatus, User
from src.schemas import (
    PostUpdate,
    TagCreate,
    TagUpdate,
    UserResponse,
    paginated_response,
    success_response,
)
from src.services import comments, posts, stats, tags, users

# Configure logging
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"], dependencies=[Depends(require_admin)])


# Users
@router.get("/users")
def list_users(page: int = 1, per_page: int = 10, db: Session = Depends(get_db)):
    items, meta = users.list_users(db, page, per_page)
    return paginated_response([UserResponse.model_validate(user) for user in items], meta)


@router.get("/users/stats")
def user_stats(db: Session = Depends(get_db)):
    return success_response(users.user_stats(db))


@router.get("/users/{user_id}")
def get_user(user_id: int, db: Session = Depends(get_db)):
    return success_response(UserResponse.model_validate(users.get_user(db, user_id)))


@router.post("/users/{user_id}/activate")
def activate_user(user_id: int, db: Session = Depends(get_db)):
    user = users.set_active(db, user_id, True)
    return success_response(UserResponse.model_validate(user), "User activated successfully")


@router.post("/users/{user_id}/deactivate")
def deactivate_user(user_id: int, db: Session = Depends(get_db)):
    """
    Deactivate an account.

    Deactivated users cannot log in and their existing tokens stop working.
    """
    user = users.set_active(db, user_id, False)
    return success_response(UserResponse.model_validate(user), "User deactivated successfully")


# Posts
@router.get("/posts")
def list_posts(
    page: int = 1,
    per_page: int = 10,
    status_filter: Optional[PostStatus] = Query(default=None, alias="status"),
    author_id: Optional[int] = None,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """List posts of every status, optionally filtered."""
    items, meta = posts.list_posts(db, current_user, page, per_page, status_filter, author_id)
    return paginated_response(items, meta)


@router.get("/posts/{post_id}")
def get_post(post_id: int, db: Session = Depends(get_db)):
    return success_response(posts.to_response(db, posts.get_post(db, post_id)))


@router.put("/posts/{post_id}")
def update_post(
    post_id: int,
    post_data: PostUpdate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    post = posts.update_post(db, current_user, post_id, post_data, settings.strict_tag_assignment)
    return success_response(posts.to_response(db, post), "Post updated successfully")


@router.delete("/posts/{post_id}")
def delete_post(post_id: int, current_user: User = Depends(require_admin), db: Session = Depends(get_db)):
    posts.delete_post(db, current_user, post_id)
    return success_response(message="Post deleted successfully")


@router.post("/posts/{post_id}/publish")
def publish_post(post_id: int, current_user: User = Depends(require_admin), db: Session = Depends(get_db)):
    post = posts.publish_post(db, current_user, post_id)
    return success_response(posts.to_response(db, post), "Post published successfully")


@router.post("/posts/{post_id}/unpublish")
def unpublish_post(post_id: int, current_user: User = Depends(require_admin), db: Session = Depends(get_db)):
    post = posts.unpublish_post(db, current_user, post_id)
    return success_response(posts.to_response(db, post), "Post unpublished successfully")


# Tags
@router.post("/tags", status_code=status.HTTP_201_CREATED)
def create_tag(tag_data: TagCreate, db: Session = Depends(get_db)):
    """
    Create a tag.

    Raises:
        Conflict: If a tag with the same name (any case) exists
    """
    tag = tags.create_tag(db, tag_data)
    return success_response(tags.to_tag_response(tag), "Tag created successfully")


@router.get("/tags/stats")
def tag_stats(db: Session = Depends(get_db)):
    return success_response(tags.tag_stats(db))


@router.put("/tags/{tag_id}")
def update_tag(tag_id: int, tag_data: TagUpdate, db: Session = Depends(get_db)):
    tag = tags.update_tag(db, tag_id, tag_data)
    return success_response(tags.tag_detail(db, tag), "Tag updated successfully")


@router.delete("/tags/{tag_id}")
def delete_tag(tag_id: int, db: Session = Depends(get_db)):
    tags.delete_tag(db, tag_id)
    return success_response(message="Tag deleted successfully")


# Comments
@router.get("/comments/pending")
def pending_comments(page: int = 1, per_page: int = 10, db: Session = Depends(get_db)):
    """Moderation queue, oldest first."""
    items, meta = comments.pending_comments(db, page, per_page)
    return paginated_response(items, meta)


@router.get("/comments/pending/count")
def pending_count(db: Session = Depends(get_db)):
    return success_response({"count": comments.pending_count(db)})


@router.post("/comments/{comment_id}/approve")
def approve_comment(comment_id: int, current_user: User = Depends(require_admin), db: Session = Depends(get_db)):
    comment = comments.approve_comment(db, comment_id, current_user)
    return success_response(comments.to_response(comment), "Comment approved successfully")


@router.post("/comments/{comment_id}/reject")
def reject_comment(comment_id: int, current_user: User = Depends(require_admin), db: Session = Depends(get_db)):
    comment = comments.reject_comment(db, comment_id, current_user)
    return success_response(comments.to_response(comment), "Comment rejected successfully")


# Dashboard
@router.get("/dashboard/stats")
def dashboard_stats(db: Session = Depends(get_db)):
    """Counts of users, posts, comments and tags for the admin dashboard."""
    logger.info("Dashboard stats requested")
    return success_response(stats.dashboard_stats(db))
