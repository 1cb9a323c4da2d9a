"""Posts: slugs, publication state, ownership, listings and view counts."""

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple
from sqlalchemy import func, or_, update
from sqlalchemy.orm import Session, joinedload, selectinload, sessionmaker

from src.errors import Forbidden, NotFound, ValidationFailed
from src.models import Comment, CommentStatus, Post, PostStatus, Tag, User, post_tags
from src.schemas import PaginationMeta, PostCreate, PostListItem, PostResponse, PostUpdate
from src.services.common import commit_or_conflict, paginate
from src.services.tags import resolve_tags
from src.utils import extract_excerpt, generate_slug, sanitize_text, unique_slug

# Configure logging
logger = logging.getLogger(__name__)

SLUG_TAKEN = "post slug is already taken"

_LOAD_OPTIONS = (joinedload(Post.author), selectinload(Post.tags))


def _slug_taken(db: Session, slug: str, exclude_id: Optional[int] = None) -> bool:
    query = db.query(Post.id).filter(Post.slug == slug)
    if exclude_id:
        query = query.filter(Post.id != exclude_id)
    return query.first() is not None


def _post_slug(title: str) -> str:
    return generate_slug(title) or "post"


def can_manage(post: Post, user: Optional[User]) -> bool:
    """Authors manage their own posts; admins manage every post."""
    return user is not None and (user.is_admin or post.author_id == user.id)


def _check_owner(post: Post, user: User, action: str):
    if not can_manage(post, user):
        logger.warning(f"User {user.id} tried to {action} post {post.id} owned by {post.author_id}")
        raise Forbidden(f"you can only {action} your own posts")


def _apply_status(post: Post, status: PostStatus):
    """Move a post to ``status``; the first publish stamps ``published_at``."""
    post.status = status.value
    if status == PostStatus.PUBLISHED and post.published_at is None:
        post.published_at = datetime.utcnow()


def comment_counts(db: Session, post_ids: Iterable[int]) -> Dict[int, int]:
    """Approved comment count per post id."""
    post_ids = list(post_ids)
    if not post_ids:
        return {}
    rows = (
        db.query(Comment.post_id, func.count(Comment.id))
        .filter(Comment.post_id.in_(post_ids), Comment.status == CommentStatus.APPROVED.value)
        .group_by(Comment.post_id)
        .all()
    )
    return dict(rows)


def to_response(db: Session, post: Post) -> PostResponse:
    """
    Serialize a post with its content and approved comment count.

    Args:
        db: Database session
        post: Post to serialize

    Returns:
        PostResponse: Post with author, tags and comments_count
    """
    response = PostResponse.model_validate(post)
    response.comments_count = comment_counts(db, [post.id]).get(post.id, 0)
    return response


def to_list_items(db: Session, posts: List[Post]) -> List[PostListItem]:
    """Serialize posts for list responses, counting approved comments in one query."""
    counts = comment_counts(db, [post.id for post in posts])
    items = []
    for post in posts:
        item = PostListItem.model_validate(post)
        item.comments_count = counts.get(post.id, 0)
        items.append(item)
    return items


def create_post(db: Session, author: User, data: PostCreate, strict_tags: bool = False) -> Post:
    """
    Create a post owned by ``author``.

    The slug is derived from the title and disambiguated with a numeric
    suffix. An empty excerpt is generated from the content.

    Raises:
        ValidationFailed: In strict tag mode, if a tag id does not exist
        Conflict: If a concurrent request took the same slug
    """
    title = sanitize_text(data.title)
    logger.info(f"Creating post '{title}' for user {author.id}")

    tags = resolve_tags(db, data.tag_ids or [], strict_tags)
    slug = unique_slug(_post_slug(title), lambda candidate: _slug_taken(db, candidate))

    excerpt = sanitize_text(data.excerpt) if data.excerpt else ""
    if not excerpt:
        excerpt = extract_excerpt(data.content)

    post = Post(
        title=title,
        slug=slug,
        content=data.content,
        excerpt=excerpt,
        featured_image=data.featured_image or "",
        author_id=author.id,
        view_count=0,
    )
    _apply_status(post, data.status)
    post.tags = tags

    db.add(post)
    commit_or_conflict(db, SLUG_TAKEN)
    db.refresh(post)

    logger.info(f"Post created: {post.id} ({post.slug})")
    return post


def get_post(db: Session, post_id: int) -> Post:
    """
    Load a post with its author and tags.

    Args:
        db: Database session
        post_id: Post id

    Returns:
        Post: The post, whatever its status

    Raises:
        NotFound: If the post does not exist
    """
    post = db.query(Post).options(*_LOAD_OPTIONS).filter(Post.id == post_id).first()
    if post is None:
        raise NotFound("post not found")
    return post


def get_post_by_slug(db: Session, slug: str) -> Post:
    """
    Load a post by slug.

    Raises:
        NotFound: If no post has this slug
    """
    post = db.query(Post).options(*_LOAD_OPTIONS).filter(Post.slug == slug).first()
    if post is None:
        raise NotFound("post not found")
    return post


def check_visible(post: Post, viewer: Optional[User]):
    """
    Hide unpublished posts from everyone but their author and admins.

    Raises:
        NotFound: If ``viewer`` may not see the post
    """
    if post.status != PostStatus.PUBLISHED.value and not can_manage(post, viewer):
        raise NotFound("post not found")


def update_post(db: Session, user: User, post_id: int, data: PostUpdate, strict_tags: bool = False) -> Post:
    """
    Update a post; only fields present in ``data`` change.

    A new title re-derives the slug, but a slug already used by another
    post leaves the current slug in place. ``tag_ids`` replaces the tag set.

    Raises:
        NotFound: If the post does not exist
        Forbidden: If ``user`` is neither the author nor an admin
        ValidationFailed: In strict tag mode, if a tag id does not exist
    """
    post = get_post(db, post_id)
    _check_owner(post, user, "update")

    tags = None
    if data.tag_ids is not None:
        tags = resolve_tags(db, data.tag_ids, strict_tags)

    if data.title is not None:
        title = sanitize_text(data.title)
        if title != post.title:
            post.title = title
            new_slug = _post_slug(title)
            if new_slug != post.slug:
                if _slug_taken(db, new_slug, exclude_id=post.id):
                    logger.info(f"Slug {new_slug} is taken, post {post.id} keeps {post.slug}")
                else:
                    post.slug = new_slug

    if data.content is not None:
        post.content = data.content

    if data.excerpt:
        post.excerpt = sanitize_text(data.excerpt)
    elif data.content is not None or data.excerpt == "":
        post.excerpt = extract_excerpt(post.content)

    if data.featured_image is not None:
        post.featured_image = data.featured_image

    if data.status is not None:
        _apply_status(post, data.status)

    if tags is not None:
        post.tags = tags

    commit_or_conflict(db, SLUG_TAKEN)
    db.refresh(post)
    logger.info(f"Post {post.id} updated by user {user.id}")
    return post


def delete_post(db: Session, user: User, post_id: int):
    """
    Hard-delete a post together with its comments and tag links.

    Raises:
        NotFound: If the post does not exist
        Forbidden: If ``user`` is neither the author nor an admin
    """
    post = get_post(db, post_id)
    _check_owner(post, user, "delete")

    db.query(Comment).filter(Comment.post_id == post.id).delete(synchronize_session=False)
    post.tags = []
    db.delete(post)
    db.commit()
    logger.info(f"Post {post_id} deleted by user {user.id}")


def publish_post(db: Session, user: User, post_id: int) -> Post:
    """
    Publish a post; the first publish stamps ``published_at``.

    Raises:
        NotFound: If the post does not exist
        Forbidden: If ``user`` is neither the author nor an admin
    """
    post = get_post(db, post_id)
    _check_owner(post, user, "publish")
    _apply_status(post, PostStatus.PUBLISHED)
    db.commit()
    db.refresh(post)
    logger.info(f"Post {post.id} published")
    return post


def unpublish_post(db: Session, user: User, post_id: int) -> Post:
    """Return a post to draft; ``published_at`` is kept."""
    post = get_post(db, post_id)
    _check_owner(post, user, "unpublish")
    _apply_status(post, PostStatus.DRAFT)
    db.commit()
    db.refresh(post)
    logger.info(f"Post {post.id} unpublished")
    return post


def _published(query):
    return query.filter(Post.status == PostStatus.PUBLISHED.value)


def _newest_published_first(query):
    return query.order_by(Post.published_at.desc(), Post.id.desc())


def list_posts(
    db: Session,
    viewer: Optional[User],
    page: int,
    per_page: int,
    status: Optional[PostStatus] = None,
    author_id: Optional[int] = None,
) -> Tuple[List[PostListItem], PaginationMeta]:
    """
    General post listing, newest first.

    Admins may see every status. Other callers see published posts only,
    except when they list their own posts by ``author_id``.
    """
    query = db.query(Post)

    if author_id is not None:
        query = query.filter(Post.author_id == author_id)

    if status is not None:
        query = query.filter(Post.status == status.value)

    sees_all = viewer is not None and (viewer.is_admin or viewer.id == author_id)
    if not sees_all:
        query = _published(query)

    query = query.order_by(Post.created_at.desc(), Post.id.desc())
    posts, meta = paginate(query, page, per_page, options=_LOAD_OPTIONS)
    return to_list_items(db, posts), meta


def published_posts(db: Session, page: int, per_page: int) -> Tuple[List[PostListItem], PaginationMeta]:
    """Public feed: published posts whose publish time has passed."""
    query = _published(db.query(Post)).filter(Post.published_at <= datetime.utcnow())
    posts, meta = paginate(_newest_published_first(query), page, per_page, options=_LOAD_OPTIONS)
    return to_list_items(db, posts), meta


def posts_by_author(db: Session, author_id: int, page: int, per_page: int) -> Tuple[List[PostListItem], PaginationMeta]:
    """Published posts of one author, newest first."""
    query = _published(db.query(Post)).filter(Post.author_id == author_id)
    posts, meta = paginate(_newest_published_first(query), page, per_page, options=_LOAD_OPTIONS)
    return to_list_items(db, posts), meta


def posts_by_tag(db: Session, tag: Tag, page: int, per_page: int) -> Tuple[List[PostListItem], PaginationMeta]:
    """Published posts carrying ``tag``, newest first."""
    query = (
        _published(db.query(Post))
        .join(post_tags, post_tags.c.post_id == Post.id)
        .filter(post_tags.c.tag_id == tag.id)
    )
    posts, meta = paginate(_newest_published_first(query), page, per_page, options=_LOAD_OPTIONS)
    return to_list_items(db, posts), meta


def search_posts(db: Session, q: str, page: int, per_page: int) -> Tuple[List[PostListItem], PaginationMeta]:
    """
    Case-insensitive substring search over title, content and excerpt.

    Raises:
        ValidationFailed: If the query is blank
    """
    q = (q or "").strip()
    if not q:
        raise ValidationFailed("search query is required")

    needle = q.lower()
    query = _published(db.query(Post)).filter(
        or_(
            func.lower(Post.title).contains(needle, autoescape=True),
            func.lower(Post.content).contains(needle, autoescape=True),
            func.lower(Post.excerpt).contains(needle, autoescape=True),
        )
    )
    logger.info(f"Searching posts for: {q}")
    posts, meta = paginate(_newest_published_first(query), page, per_page, options=_LOAD_OPTIONS)
    return to_list_items(db, posts), meta


def increment_view_count(session_factory: sessionmaker, post_id: int):
    """
    Add one to a post's view counter in its own session.

    Runs after the response has been sent, so failures are only logged.
    """
    db = session_factory()
    try:
        db.execute(
            update(Post).where(Post.id == post_id).values(view_count=Post.view_count + 1)
        )
        db.commit()
    except Exception as e:
        logger.error(f"Failed to increment view count for post {post_id}: {e}")
        db.rollback()
    finally:
        db.close()


def post_stats(db: Session) -> dict:
    """Post counts in total and per status."""
    rows = dict(db.query(Post.status, func.count(Post.id)).group_by(Post.status).all())
    return {
        "total_posts": sum(rows.values()),
        "published_posts": rows.get(PostStatus.PUBLISHED.value, 0),
        "draft_posts": rows.get(PostStatus.DRAFT.value, 0),
        "archived_posts": rows.get(PostStatus.ARCHIVED.value, 0),
    }
