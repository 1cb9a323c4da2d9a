"""Public tag endpoints."""

import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from src.database import get_db
from src.schemas import paginated_response, success_response
from src.services import posts, tags

# Configure logging
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tags", tags=["Tags"])


@router.get("")
def list_tags(page: int = 1, per_page: int = 10, db: Session = Depends(get_db)):
    """List tags alphabetically, with how many posts use each."""
    items, meta = tags.list_tags(db, page, per_page)
    return paginated_response(items, meta)


@router.get("/all")
def all_tags(db: Session = Depends(get_db)):
    return success_response(tags.all_tags(db))


@router.get("/popular")
def popular_tags(limit: int = 10, db: Session = Depends(get_db)):
    """Tags ranked by published post count."""
    return success_response(tags.popular_tags(db, limit))


@router.get("/slug/{slug}")
def get_tag_by_slug(slug: str, db: Session = Depends(get_db)):
    tag = tags.get_tag_by_slug(db, slug)
    return success_response(tags.tag_detail(db, tag))


@router.get("/{tag_id}")
def get_tag(tag_id: int, db: Session = Depends(get_db)):
    tag = tags.get_tag(db, tag_id)
    return success_response(tags.tag_detail(db, tag))


@router.get("/{tag_id}/posts")
def tag_posts(tag_id: int, page: int = 1, per_page: int = 10, db: Session = Depends(get_db)):
    """Published posts carrying a tag, newest first."""
    tag = tags.get_tag(db, tag_id)
    items, meta = posts.posts_by_tag(db, tag, page, per_page)
    return paginated_response(items, meta)
