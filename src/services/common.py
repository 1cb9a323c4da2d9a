"""Shared persistence helpers for the service layer."""

import logging
from typing import Any, List, Sequence, Tuple
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Query, Session

from src.errors import Conflict
from src.schemas import PaginationMeta
from src.utils import normalize_pagination, total_pages

# Configure logging
logger = logging.getLogger(__name__)


def commit_or_conflict(db: Session, conflict_message: str):
    """
    Commit the session, turning a uniqueness violation into a Conflict.

    Check-then-insert slug/name assignment can race with a concurrent
    request; the unique constraints in the schema are what finally decide.

    Raises:
        Conflict: If the commit violated a unique constraint
    """
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"Integrity error on commit: {e.orig}")
        raise Conflict(conflict_message)


def paginate(query: Query, page: int, per_page: int, options: Sequence[Any] = ()) -> Tuple[List[Any], PaginationMeta]:
    """
    Run ``query`` for one page.

    Args:
        query: Ordered query to page through
        page: Requested page (clamped to >= 1)
        per_page: Requested page size (clamped to 1..100, default 10)
        options: Loader options applied to the item query only

    Returns:
        Tuple of the page items and its pagination metadata
    """
    page, per_page = normalize_pagination(page, per_page)
    total = query.order_by(None).count()
    items = query.options(*options).offset((page - 1) * per_page).limit(per_page).all()

    meta = PaginationMeta(
        page=page,
        per_page=per_page,
        total=total,
        total_pages=total_pages(total, per_page),
    )
    return items, meta
