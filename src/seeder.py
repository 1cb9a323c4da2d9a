"""Load sample users, tags, posts and comments for local development.

Usage:
    python -m src.seeder [--force]
"""

import argparse
import logging
from typing import Dict, List, Optional
from sqlalchemy import func
from sqlalchemy.orm import Session, sessionmaker

from src.config import load_settings
from src.database import create_db_engine, create_session_factory, init_db, seed_default_tags
from src.models import Comment, Post, PostStatus, Tag, User
from src.schemas import CommentCreate, PostCreate, TagCreate, UserRegister
from src.services import comments, posts, tags, users

logger = logging.getLogger(__name__)

SAMPLE_PASSWORD = "password123"

SAMPLE_USERS = [
    {"first_name": "John", "last_name": "Doe", "email": "john.doe@example.com", "username": "johndoe",
     "bio": "Software developer writing about web development and new tools."},
    {"first_name": "Jane", "last_name": "Smith", "email": "jane.smith@example.com", "username": "janesmith",
     "bio": "Front-end developer with an eye for UI and UX design."},
    {"first_name": "Mike", "last_name": "Johnson", "email": "mike.johnson@example.com", "username": "mikej",
     "bio": "Backend developer working on distributed systems."},
]

SAMPLE_TAGS = [
    {"name": "Python", "description": "Posts about the Python language", "color": "#3776AB"},
    {"name": "DevOps", "description": "Deployment, automation and infrastructure", "color": "#0EA5E9"},
]

SAMPLE_POSTS = [
    {
        "author": "johndoe",
        "title": "Getting Started with FastAPI",
        "content": "<p>FastAPI builds APIs from type hints.</p> This post walks through routing, "
                   "dependency injection and request validation with a small example service.",
        "status": PostStatus.PUBLISHED,
        "tags": ["Python", "Tutorial"],
    },
    {
        "author": "janesmith",
        "title": "Designing Readable Forms",
        "content": "Good forms ask for as little as possible, explain every error next to the field "
                   "that caused it and keep the primary action easy to find.",
        "status": PostStatus.PUBLISHED,
        "tags": ["Lifestyle", "Opinion"],
    },
    {
        "author": "mikej",
        "title": "Small Team DevOps Habits",
        "content": "Automate the deploy first, then the rollback. Keep one dashboard that everyone "
                   "reads and alert only on symptoms users would notice.",
        "status": PostStatus.PUBLISHED,
        "tags": ["DevOps", "Technology"],
    },
    {
        "author": "johndoe",
        "title": "Notes on Database Indexes",
        "content": "Draft notes on composite indexes, covering indexes and when the planner "
                   "decides to ignore them.",
        "status": PostStatus.DRAFT,
        "tags": ["Technology"],
    },
]

SAMPLE_COMMENTS = [
    {"post": "Getting Started with FastAPI", "author": "janesmith", "content": "Clear walkthrough, thanks!"},
    {"post": "Getting Started with FastAPI", "author": "mikej", "content": "How do you structure larger apps?",
     "reply": {"author": "johndoe", "content": "One router per area and a service layer underneath."}},
    {"post": "Small Team DevOps Habits", "author": "johndoe", "content": "Alerting on symptoms changed our on-call."},
]


def has_sample_data(db: Session) -> bool:
    """True when the database holds more than the admin account and default tags."""
    user_count = db.query(func.count(User.id)).scalar()
    post_count = db.query(func.count(Post.id)).scalar()
    return user_count > 1 or post_count > 0


def _seed_users(db: Session) -> Dict[str, User]:
    created = {}
    for data in SAMPLE_USERS:
        user = db.query(User).filter(User.username == data["username"]).first()
        if user is None:
            user = users.register_user(db, UserRegister(password=SAMPLE_PASSWORD, **data))
            logger.info(f"Created user: {user.username} ({user.email})")
        created[user.username] = user
    return created


def _seed_tags(db: Session) -> Dict[str, Tag]:
    for data in SAMPLE_TAGS:
        if db.query(Tag).filter(func.lower(Tag.name) == data["name"].lower()).first() is None:
            tag = tags.create_tag(db, TagCreate(**data))
            logger.info(f"Created tag: {tag.name}")
    return {tag.name: tag for tag in db.query(Tag).all()}


def _seed_posts(db: Session, authors: Dict[str, User], tag_map: Dict[str, Tag]) -> Dict[str, Post]:
    created = {}
    for data in SAMPLE_POSTS:
        tag_ids = [tag_map[name].id for name in data["tags"] if name in tag_map]
        post = posts.create_post(
            db,
            authors[data["author"]],
            PostCreate(title=data["title"], content=data["content"], status=data["status"], tag_ids=tag_ids),
        )
        logger.info(f"Created post: {post.title} ({post.slug})")
        created[post.title] = post
    return created


def _seed_comments(db: Session, authors: Dict[str, User], post_map: Dict[str, Post]) -> List[Comment]:
    created = []
    for data in SAMPLE_COMMENTS:
        post = post_map[data["post"]]
        comment = comments.create_comment(
            db, authors[data["author"]], CommentCreate(post_id=post.id, content=data["content"])
        )
        comments.approve_comment(db, comment.id)
        created.append(comment)

        reply = data.get("reply")
        if reply:
            child = comments.create_comment(
                db,
                authors[reply["author"]],
                CommentCreate(post_id=post.id, parent_id=comment.id, content=reply["content"]),
            )
            comments.approve_comment(db, child.id)
            created.append(child)
    logger.info(f"Created {len(created)} comments")
    return created


def run_seeder(session_factory: sessionmaker, force: bool = False) -> bool:
    """
    Load the sample data set.

    Args:
        session_factory: Session factory for the target database
        force: Seed even if the database already holds data

    Returns:
        bool: True if data was written, False if seeding was skipped
    """
    db = session_factory()
    try:
        if not force and has_sample_data(db):
            logger.info("Sample data already exists. Use --force to reseed.")
            return False

        logger.info("Starting database seeding...")
        authors = _seed_users(db)
        tag_map = _seed_tags(db)
        post_map = _seed_posts(db, authors, tag_map)
        _seed_comments(db, authors, post_map)
        logger.info("Database seeding completed successfully")
        return True
    finally:
        db.close()


def main(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(description="Seed the blog database with sample data")
    parser.add_argument("--force", action="store_true", help="Seed even if data already exists")
    args = parser.parse_args(argv)

    settings = load_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )

    engine = create_db_engine(settings.database_url)
    init_db(engine)
    session_factory = create_session_factory(engine)
    seed_default_tags(session_factory)
    run_seeder(session_factory, force=args.force)


if __name__ == "__main__":
    main()
