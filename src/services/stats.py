"""Admin dashboard figures."""

from sqlalchemy import distinct, func
from sqlalchemy.orm import Session

from src.models import Tag, post_tags
from src.services.comments import comment_stats
from src.services.posts import post_stats
from src.services.users import user_stats


def dashboard_stats(db: Session) -> dict:
    """
    Figures for the admin dashboard.

    Returns:
        dict: User, post, comment and tag sections keyed by area
    """
    users = user_stats(db)
    posts = post_stats(db)
    comments = comment_stats(db)

    return {
        "users": {
            "total": users["total_users"],
            "active": users["active_users"],
            "inactive": users["inactive_users"],
        },
        "posts": {
            "total": posts["total_posts"],
            "published": posts["published_posts"],
            "draft": posts["draft_posts"],
            "archived": posts["archived_posts"],
        },
        "comments": {
            "total": comments["total_comments"],
            "pending": comments["pending_comments"],
            "approved": comments["approved_comments"],
            "rejected": comments["rejected_comments"],
        },
        "tags": {
            "total": db.query(func.count(Tag.id)).scalar(),
            "used": db.query(func.count(distinct(post_tags.c.tag_id))).scalar(),
        },
    }
