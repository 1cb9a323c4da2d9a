"""Comments: threaded replies and the moderation workflow."""

import logging
from collections import defaultdict
from typing import Dict, List, Optional, Tuple
from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from src.errors import Forbidden, NotFound, ValidationFailed
from src.models import Comment, CommentStatus, Post, PostStatus, User
from src.schemas import CommentCreate, CommentResponse, CommentUpdate, PaginationMeta
from src.services.common import paginate
from src.services.posts import can_manage, check_visible as check_post_visible
from src.utils import sanitize_text

# Configure logging
logger = logging.getLogger(__name__)

_LOAD_OPTIONS = (joinedload(Comment.author),)


def to_response(comment: Comment) -> CommentResponse:
    """Serialize a comment (without replies)."""
    return CommentResponse.model_validate(comment)


def _check_owner(comment: Comment, user: User, action: str):
    if not user.is_admin and comment.author_id != user.id:
        logger.warning(f"User {user.id} tried to {action} comment {comment.id} owned by {comment.author_id}")
        raise Forbidden(f"you can only {action} your own comments")


def create_comment(db: Session, author: User, data: CommentCreate) -> Comment:
    """
    Add a comment or reply. New comments always wait for moderation.

    Raises:
        NotFound: If the post or the parent comment does not exist
        ValidationFailed: If the parent comment belongs to another post
    """
    if db.get(Post, data.post_id) is None:
        raise NotFound("post not found")

    if data.parent_id is not None:
        parent = db.get(Comment, data.parent_id)
        if parent is None:
            raise NotFound("parent comment not found")
        if parent.post_id != data.post_id:
            logger.warning(f"Reply to comment {parent.id} targets post {data.post_id}, parent is on post {parent.post_id}")
            raise ValidationFailed("parent comment belongs to a different post")

    comment = Comment(
        content=sanitize_text(data.content),
        author_id=author.id,
        post_id=data.post_id,
        parent_id=data.parent_id,
        status=CommentStatus.PENDING.value,
    )
    db.add(comment)
    db.commit()
    db.refresh(comment)

    logger.info(f"Comment {comment.id} created on post {comment.post_id} by user {author.id}")
    return comment


def get_comment(db: Session, comment_id: int) -> Comment:
    """
    Load a comment with its author.

    Raises:
        NotFound: If the comment does not exist
    """
    comment = db.query(Comment).options(*_LOAD_OPTIONS).filter(Comment.id == comment_id).first()
    if comment is None:
        raise NotFound("comment not found")
    return comment


def check_visible(db: Session, comment: Comment, viewer: Optional[User]):
    """
    Hide unmoderated comments, and comments on hidden posts, from the public.

    The comment's author and admins always see it.

    Raises:
        NotFound: If ``viewer`` may not see the comment
    """
    if viewer is not None and (viewer.is_admin or comment.author_id == viewer.id):
        return

    if comment.status != CommentStatus.APPROVED.value:
        raise NotFound("comment not found")

    post = db.get(Post, comment.post_id)
    if post is None or (post.status != PostStatus.PUBLISHED.value and not can_manage(post, viewer)):
        raise NotFound("comment not found")


def update_comment(db: Session, user: User, comment_id: int, data: CommentUpdate) -> Comment:
    """
    Edit a comment.

    A content edit by a non-admin sends the comment back to ``pending``.
    Only admins may set ``status``; it is ignored for everyone else.

    Raises:
        NotFound: If the comment does not exist
        Forbidden: If ``user`` is neither the author nor an admin
    """
    comment = get_comment(db, comment_id)
    _check_owner(comment, user, "update")

    if data.content is not None:
        comment.content = sanitize_text(data.content)
        if not user.is_admin:
            comment.status = CommentStatus.PENDING.value

    if user.is_admin and data.status is not None:
        comment.status = data.status.value

    db.commit()
    db.refresh(comment)
    logger.info(f"Comment {comment.id} updated by user {user.id}")
    return comment


def _subtree_ids(db: Session, root_id: int) -> List[int]:
    ids = [root_id]
    frontier = [root_id]
    while frontier:
        children = [row[0] for row in db.query(Comment.id).filter(Comment.parent_id.in_(frontier)).all()]
        ids.extend(children)
        frontier = children
    return ids


def delete_comment(db: Session, user: User, comment_id: int):
    """
    Delete a comment and every reply beneath it.

    Raises:
        NotFound: If the comment does not exist
        Forbidden: If ``user`` is neither the author nor an admin
    """
    comment = get_comment(db, comment_id)
    _check_owner(comment, user, "delete")

    ids = _subtree_ids(db, comment.id)
    db.query(Comment).filter(Comment.id.in_(ids)).delete(synchronize_session=False)
    db.commit()
    logger.info(f"Comment {comment_id} deleted with {len(ids) - 1} replies by user {user.id}")


def _with_replies(comment: Comment, children: Dict[int, List[Comment]]) -> CommentResponse:
    response = to_response(comment)
    response.replies = [_with_replies(child, children) for child in children.get(comment.id, [])]
    return response


def comments_for_post(
    db: Session,
    post_id: int,
    page: int,
    per_page: int,
    viewer: Optional[User] = None,
) -> Tuple[List[CommentResponse], PaginationMeta]:
    """
    Approved top-level comments of a post (newest first), each carrying its
    approved replies (oldest first) nested to any depth.

    Raises:
        NotFound: If the post does not exist or ``viewer`` may not see it
    """
    post = db.get(Post, post_id)
    if post is None:
        raise NotFound("post not found")
    check_post_visible(post, viewer)

    approved = CommentStatus.APPROVED.value
    query = (
        db.query(Comment)
        .filter(Comment.post_id == post_id, Comment.parent_id.is_(None), Comment.status == approved)
        .order_by(Comment.created_at.desc(), Comment.id.desc())
    )
    top_level, meta = paginate(query, page, per_page, options=_LOAD_OPTIONS)

    replies = (
        db.query(Comment)
        .options(*_LOAD_OPTIONS)
        .filter(Comment.post_id == post_id, Comment.parent_id.isnot(None), Comment.status == approved)
        .order_by(Comment.created_at.asc(), Comment.id.asc())
        .all()
    )
    children: Dict[int, List[Comment]] = defaultdict(list)
    for reply in replies:
        children[reply.parent_id].append(reply)

    return [_with_replies(comment, children) for comment in top_level], meta


def comments_by_author(db: Session, author_id: int, page: int, per_page: int) -> Tuple[List[CommentResponse], PaginationMeta]:
    """All comments written by a user, any status, newest first."""
    query = (
        db.query(Comment)
        .filter(Comment.author_id == author_id)
        .order_by(Comment.created_at.desc(), Comment.id.desc())
    )
    comments, meta = paginate(query, page, per_page, options=_LOAD_OPTIONS)
    return [to_response(comment) for comment in comments], meta


def pending_comments(db: Session, page: int, per_page: int) -> Tuple[List[CommentResponse], PaginationMeta]:
    """Moderation queue, oldest first."""
    query = (
        db.query(Comment)
        .filter(Comment.status == CommentStatus.PENDING.value)
        .order_by(Comment.created_at.asc(), Comment.id.asc())
    )
    comments, meta = paginate(query, page, per_page, options=_LOAD_OPTIONS)
    return [to_response(comment) for comment in comments], meta


def pending_count(db: Session) -> int:
    """Number of comments waiting for moderation."""
    return db.query(func.count(Comment.id)).filter(Comment.status == CommentStatus.PENDING.value).scalar()


def set_status(db: Session, comment_id: int, status: CommentStatus, moderator: Optional[User] = None) -> Comment:
    """
    Moderate a comment.

    Raises:
        NotFound: If the comment does not exist
    """
    comment = get_comment(db, comment_id)
    comment.status = status.value
    db.commit()
    db.refresh(comment)
    who = f" by user {moderator.id}" if moderator else ""
    logger.info(f"Comment {comment.id} marked {status.value}{who}")
    return comment


def approve_comment(db: Session, comment_id: int, moderator: Optional[User] = None) -> Comment:
    return set_status(db, comment_id, CommentStatus.APPROVED, moderator)


def reject_comment(db: Session, comment_id: int, moderator: Optional[User] = None) -> Comment:
    return set_status(db, comment_id, CommentStatus.REJECTED, moderator)


def comment_stats(db: Session) -> dict:
    """Comment counts in total and per moderation status."""
    rows = dict(db.query(Comment.status, func.count(Comment.id)).group_by(Comment.status).all())
    return {
        "total_comments": sum(rows.values()),
        "pending_comments": rows.get(CommentStatus.PENDING.value, 0),
        "approved_comments": rows.get(CommentStatus.APPROVED.value, 0),
        "rejected_comments": rows.get(CommentStatus.REJECTED.value, 0),
    }
