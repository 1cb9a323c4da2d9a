"""Tags: unique name/slug management, counts and tag resolution for posts."""

import logging
from typing import Dict, Iterable, List, Optional, Tuple
from sqlalchemy import func
from sqlalchemy.orm import Session

from src.errors import Conflict, NotFound, ValidationFailed
from src.models import DEFAULT_TAG_COLOR, Post, PostStatus, Tag, post_tags
from src.schemas import PaginationMeta, TagCreate, TagResponse, TagUpdate
from src.services.common import commit_or_conflict, paginate
from src.utils import generate_slug, sanitize_text, unique_slug

# Configure logging
logger = logging.getLogger(__name__)

TAG_SLUG_MAX_LENGTH = 50
POPULAR_DEFAULT_LIMIT = 10
POPULAR_MAX_LIMIT = 50
NAME_TAKEN = "tag name is already taken"
TAG_CONFLICT = "tag name or slug is already taken"


def _name_taken(db: Session, name: str, exclude_id: Optional[int] = None) -> bool:
    query = db.query(Tag.id).filter(func.lower(Tag.name) == name.lower())
    if exclude_id:
        query = query.filter(Tag.id != exclude_id)
    return query.first() is not None


def _slug_taken(db: Session, slug: str, exclude_id: Optional[int] = None) -> bool:
    query = db.query(Tag.id).filter(Tag.slug == slug)
    if exclude_id:
        query = query.filter(Tag.id != exclude_id)
    return query.first() is not None


def _tag_slug(name: str) -> str:
    return generate_slug(name, max_length=TAG_SLUG_MAX_LENGTH) or "tag"


def post_counts(db: Session, tag_ids: Iterable[int], published_only: bool = False) -> Dict[int, int]:
    """Number of posts attached to each tag, keyed by tag id."""
    tag_ids = list(tag_ids)
    if not tag_ids:
        return {}

    query = db.query(post_tags.c.tag_id, func.count(post_tags.c.post_id)).filter(
        post_tags.c.tag_id.in_(tag_ids)
    )
    if published_only:
        query = query.join(Post, Post.id == post_tags.c.post_id).filter(
            Post.status == PostStatus.PUBLISHED.value
        )
    return dict(query.group_by(post_tags.c.tag_id).all())


def to_tag_response(tag: Tag, posts_count: int = 0) -> TagResponse:
    """Serialize a tag with a precomputed post count."""
    response = TagResponse.model_validate(tag)
    response.posts_count = posts_count
    return response


def create_tag(db: Session, data: TagCreate) -> Tag:
    """
    Create a tag with a unique name and a unique slug derived from it.

    Raises:
        Conflict: If the name is already taken (case-insensitive)
    """
    name = sanitize_text(data.name)
    logger.info(f"Creating tag: {name}")

    if _name_taken(db, name):
        logger.warning(f"Tag creation failed: name already taken - {name}")
        raise Conflict(NAME_TAKEN)

    slug = unique_slug(_tag_slug(name), lambda candidate: _slug_taken(db, candidate))

    tag = Tag(
        name=name,
        slug=slug,
        description=sanitize_text(data.description),
        color=data.color or DEFAULT_TAG_COLOR,
    )
    db.add(tag)
    commit_or_conflict(db, TAG_CONFLICT)
    db.refresh(tag)

    logger.info(f"Tag created: {tag.id} ({tag.slug})")
    return tag


def get_tag(db: Session, tag_id: int) -> Tag:
    """
    Load a tag by id.

    Raises:
        NotFound: If the tag does not exist
    """
    tag = db.get(Tag, tag_id)
    if tag is None:
        raise NotFound("tag not found")
    return tag


def get_tag_by_slug(db: Session, slug: str) -> Tag:
    """
    Load a tag by slug.

    Raises:
        NotFound: If no tag has this slug
    """
    tag = db.query(Tag).filter(Tag.slug == slug).first()
    if tag is None:
        raise NotFound("tag not found")
    return tag


def tag_detail(db: Session, tag: Tag) -> TagResponse:
    """Tag with the number of published posts carrying it."""
    counts = post_counts(db, [tag.id], published_only=True)
    return to_tag_response(tag, counts.get(tag.id, 0))


def update_tag(db: Session, tag_id: int, data: TagUpdate) -> Tag:
    """
    Update a tag.

    A rename re-derives the slug; if that slug already belongs to another
    tag the old slug is kept.

    Raises:
        NotFound: If the tag does not exist
        Conflict: If the new name is taken by another tag
    """
    tag = get_tag(db, tag_id)

    if data.name is not None:
        name = sanitize_text(data.name)
        if name != tag.name:
            if _name_taken(db, name, exclude_id=tag.id):
                logger.warning(f"Tag update failed: name already taken - {name}")
                raise Conflict(NAME_TAKEN)
            tag.name = name

            new_slug = _tag_slug(name)
            if new_slug != tag.slug:
                if _slug_taken(db, new_slug, exclude_id=tag.id):
                    logger.info(f"Slug {new_slug} is taken, tag {tag.id} keeps {tag.slug}")
                else:
                    tag.slug = new_slug

    if data.description is not None:
        tag.description = sanitize_text(data.description)

    if data.color:
        tag.color = data.color

    commit_or_conflict(db, TAG_CONFLICT)
    db.refresh(tag)
    logger.info(f"Tag {tag.id} updated")
    return tag


def delete_tag(db: Session, tag_id: int):
    """Delete a tag after detaching it from every post."""
    tag = get_tag(db, tag_id)
    tag.posts.clear()
    db.flush()
    db.delete(tag)
    db.commit()
    logger.info(f"Tag {tag_id} deleted")


def list_tags(db: Session, page: int, per_page: int) -> Tuple[List[TagResponse], PaginationMeta]:
    """One page of tags by name, each with the number of posts linked to it."""
    tags, meta = paginate(db.query(Tag).order_by(Tag.name.asc()), page, per_page)
    counts = post_counts(db, [tag.id for tag in tags])
    return [to_tag_response(tag, counts.get(tag.id, 0)) for tag in tags], meta


def all_tags(db: Session) -> List[TagResponse]:
    """Every tag by name, each with the number of posts linked to it."""
    tags = db.query(Tag).order_by(Tag.name.asc()).all()
    counts = post_counts(db, [tag.id for tag in tags])
    return [to_tag_response(tag, counts.get(tag.id, 0)) for tag in tags]


def popular_tags(db: Session, limit: int = POPULAR_DEFAULT_LIMIT) -> List[TagResponse]:
    """
    Tags ordered by how many published posts use them.

    Args:
        limit: Number of tags (outside 1..50 falls back to 10)

    Returns:
        List[TagResponse]: Tags with at least one published post
    """
    if limit <= 0 or limit > POPULAR_MAX_LIMIT:
        limit = POPULAR_DEFAULT_LIMIT

    posts_count = func.count(post_tags.c.post_id).label("posts_count")
    rows = (
        db.query(Tag, posts_count)
        .join(post_tags, post_tags.c.tag_id == Tag.id)
        .join(Post, Post.id == post_tags.c.post_id)
        .filter(Post.status == PostStatus.PUBLISHED.value)
        .group_by(Tag.id)
        .having(func.count(post_tags.c.post_id) > 0)
        .order_by(posts_count.desc(), Tag.name.asc())
        .limit(limit)
        .all()
    )
    return [to_tag_response(tag, count) for tag, count in rows]


def tag_stats(db: Session) -> dict:
    """
    Tag usage figures for the admin dashboard.

    Returns:
        dict: Totals, used/unused counts, average usage and the top five tags
    """
    tags = all_tags(db)
    used = [tag for tag in tags if tag.posts_count > 0]
    total_usages = sum(tag.posts_count for tag in used)
    return {
        "total_tags": len(tags),
        "tags_with_posts": len(used),
        "tags_without_posts": len(tags) - len(used),
        "total_tag_usages": total_usages,
        "average_posts_per_tag": total_usages / len(used) if used else 0,
        "popular_tags": popular_tags(db, 5),
    }


def resolve_tags(db: Session, tag_ids: List[int], strict: bool) -> List[Tag]:
    """
    Look up the tags a post should carry.

    Args:
        tag_ids: Requested tag ids (duplicates ignored)
        strict: Reject unknown ids instead of skipping them

    Returns:
        List[Tag]: The tags that exist

    Raises:
        ValidationFailed: In strict mode, if any id does not exist
    """
    wanted = set(tag_ids)
    if not wanted:
        return []

    tags = db.query(Tag).filter(Tag.id.in_(wanted)).all()
    missing = sorted(wanted - {tag.id for tag in tags})

    if missing:
        if strict:
            raise ValidationFailed("unknown tag ids", details={"tag_ids": missing})
        logger.warning(f"Ignoring unknown tag ids: {missing}")

    return tags
