"""Database configuration and session management."""

import logging
from typing import Iterator
from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from src.config import Settings
from src.models import Base, Tag, User

# Configure logging
logger = logging.getLogger(__name__)

DEFAULT_TAGS = [
    {"name": "Technology", "slug": "technology", "description": "Posts about technology and programming", "color": "#3B82F6"},
    {"name": "Lifestyle", "slug": "lifestyle", "description": "Posts about lifestyle and personal experiences", "color": "#10B981"},
    {"name": "Tutorial", "slug": "tutorial", "description": "Educational and how-to posts", "color": "#F59E0B"},
    {"name": "News", "slug": "news", "description": "Latest news and updates", "color": "#EF4444"},
    {"name": "Opinion", "slug": "opinion", "description": "Personal opinions and thoughts", "color": "#8B5CF6"},
]


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(database_url: str) -> Engine:
    """
    Create the SQLAlchemy engine for a database URL.

    SQLite connections get foreign key enforcement switched on; in-memory
    SQLite shares a single connection so every session sees the same data.

    Args:
        database_url: SQLAlchemy database URL

    Returns:
        Engine: Configured engine
    """
    logger.info(f"Database URL: {database_url}")

    if not database_url.startswith("sqlite"):
        return create_engine(database_url, pool_pre_ping=True)

    kwargs = {"connect_args": {"check_same_thread": False}}  # Needed for SQLite
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        kwargs["poolclass"] = StaticPool

    engine = create_engine(database_url, **kwargs)
    event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    """Create session factory bound to ``engine``."""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(engine: Engine):
    """Initialize the database by creating all tables."""
    logger.info("Initializing database tables...")
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created successfully")


def seed_admin_user(session_factory: sessionmaker, settings: Settings):
    """
    Create the admin account from settings on startup.

    Creates a user with:
    - Email: ADMIN_EMAIL
    - Username: ADMIN_USERNAME (default "admin")
    - Password: ADMIN_PASSWORD

    Only creates if neither the email nor the username exists yet.
    """
    # Import here to avoid circular import
    from src.auth import hash_password

    logger.info("Checking admin user seed...")

    if not settings.admin_email:
        logger.warning("ADMIN_EMAIL not configured, skipping admin user seed")
        return

    if not settings.admin_password:
        logger.warning("ADMIN_PASSWORD not configured, skipping admin user seed")
        return

    logger.info(f"Attempting to seed admin user: {settings.admin_email}")

    db = session_factory()
    try:
        existing_user = db.query(User).filter(
            (User.email == settings.admin_email) | (User.username == settings.admin_username)
        ).first()

        if existing_user:
            logger.info(f"Admin user already exists: {existing_user.email}")
            return

        admin_user = User(
            first_name="Admin",
            last_name="User",
            email=settings.admin_email,
            username=settings.admin_username,
            password_hash=hash_password(settings.admin_password),
            bio="Default administrator account",
            is_active=True,
            is_admin=True,
        )

        db.add(admin_user)
        db.commit()

        logger.info(f"Admin user created successfully: {settings.admin_email}")

    except Exception as e:
        logger.error(f"Failed to seed admin user: {e}")
        db.rollback()
    finally:
        db.close()


def seed_default_tags(session_factory: sessionmaker):
    """Create the default tag set, skipping tags whose slug already exists."""
    db = session_factory()
    try:
        for tag_data in DEFAULT_TAGS:
            if db.query(Tag).filter(Tag.slug == tag_data["slug"]).first():
                continue
            db.add(Tag(**tag_data))
            logger.info(f"Created default tag: {tag_data['name']}")
        db.commit()
    except Exception as e:
        logger.error(f"Failed to seed default tags: {e}")
        db.rollback()
    finally:
        db.close()


def get_db(request: Request) -> Iterator[Session]:
    """
    Dependency function to get database session.

    The session factory lives on the application state, set up by
    ``create_app``.

    Yields:
        Session: SQLAlchemy database session
    """
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
