"""Posts router: public feeds, single-post reads and author writes."""

import logging
from typing import Optional
from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, status
from sqlalchemy.orm import Session

from src.auth import get_current_user, get_optional_user, get_settings
from src.config import Settings
from src.database import get_db
from src.models import Post, PostStatus, User
from src.schemas import PostCreate, PostUpdate, paginated_response, success_response
from src.services import posts

# Configure logging
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/posts", tags=["Posts"])


def _schedule_view(request: Request, background_tasks: BackgroundTasks, post: Post):
    if post.status == PostStatus.PUBLISHED.value:
        background_tasks.add_task(posts.increment_view_count, request.app.state.session_factory, post.id)


@router.get("")
def list_posts(
    page: int = 1,
    per_page: int = 10,
    status_filter: Optional[PostStatus] = Query(default=None, alias="status"),
    author_id: Optional[int] = None,
    current_user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    """
    List posts, newest first.

    Anonymous and regular callers only see published posts, unless they
    ask for their own posts via ``author_id``.
    """
    items, meta = posts.list_posts(db, current_user, page, per_page, status_filter, author_id)
    return paginated_response(items, meta)


@router.post("", status_code=status.HTTP_201_CREATED)
def create_post(
    post_data: PostCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """
    Create a post authored by the current user.

    Args:
        post_data: Title, content and optional excerpt, image, status and tags
        current_user: Authenticated user
        db: Database session
        settings: Application settings (tag assignment policy)

    Returns:
        dict: Envelope holding the created post
    """
    post = posts.create_post(db, current_user, post_data, settings.strict_tag_assignment)
    return success_response(posts.to_response(db, post), "Post created successfully")


@router.get("/published")
def published_posts(page: int = 1, per_page: int = 10, db: Session = Depends(get_db)):
    items, meta = posts.published_posts(db, page, per_page)
    return paginated_response(items, meta)


@router.get("/search")
def search_posts(q: str = "", page: int = 1, per_page: int = 10, db: Session = Depends(get_db)):
    """Search published posts by title, content or excerpt."""
    items, meta = posts.search_posts(db, q, page, per_page)
    return paginated_response(items, meta)


@router.get("/slug/{slug}")
def get_post_by_slug(
    slug: str,
    request: Request,
    background_tasks: BackgroundTasks,
    current_user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    post = posts.get_post_by_slug(db, slug)
    posts.check_visible(post, current_user)
    _schedule_view(request, background_tasks, post)
    return success_response(posts.to_response(db, post))


@router.get("/author/{author_id}")
def posts_by_author(author_id: int, page: int = 1, per_page: int = 10, db: Session = Depends(get_db)):
    items, meta = posts.posts_by_author(db, author_id, page, per_page)
    return paginated_response(items, meta)


@router.get("/{post_id}")
def get_post(
    post_id: int,
    request: Request,
    background_tasks: BackgroundTasks,
    current_user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    """
    Get a single post by id.

    Reading a published post counts a view once the response is sent.
    Unpublished posts are only visible to their author and admins.
    """
    post = posts.get_post(db, post_id)
    posts.check_visible(post, current_user)
    _schedule_view(request, background_tasks, post)
    return success_response(posts.to_response(db, post))


@router.put("/{post_id}")
def update_post(
    post_id: int,
    post_data: PostUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    post = posts.update_post(db, current_user, post_id, post_data, settings.strict_tag_assignment)
    return success_response(posts.to_response(db, post), "Post updated successfully")


@router.delete("/{post_id}")
def delete_post(
    post_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    posts.delete_post(db, current_user, post_id)
    return success_response(message="Post deleted successfully")


@router.post("/{post_id}/publish")
def publish_post(
    post_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    post = posts.publish_post(db, current_user, post_id)
    return success_response(posts.to_response(db, post), "Post published successfully")


@router.post("/{post_id}/unpublish")
def unpublish_post(
    post_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    post = posts.unpublish_post(db, current_user, post_id)
    return success_response(posts.to_response(db, post), "Post unpublished successfully")
