"""Application settings loaded from the environment."""

import os
import logging
from typing import List, Optional
from dotenv import load_dotenv

# Configure logging
logger = logging.getLogger(__name__)


def _env_bool(name: str, default: bool) -> bool:
    """Read a boolean flag; unset or blank means ``default``, "1"/"true"/"yes"/"on" mean True."""
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """Runtime configuration for the blog API.

    Values are passed in explicitly (tests do this) or read from the
    environment by :func:`load_settings`.
    """

    def __init__(
        self,
        jwt_secret_key: str,
        database_url: str = "sqlite:///./blog.db",
        name_app: str = "BlogAPI",
        jwt_expires_hours: int = 24,
        cors_origins: Optional[List[str]] = None,
        strict_tag_assignment: bool = False,
        admin_email: Optional[str] = None,
        admin_username: Optional[str] = None,
        admin_password: Optional[str] = None,
        seed_default_tags: bool = True,
        log_level: str = "INFO",
        log_file: Optional[str] = None,
    ):
        if not jwt_secret_key:
            raise ValueError("JWT_SECRET_KEY must be set in .env file")

        self.jwt_secret_key = jwt_secret_key
        self.jwt_algorithm = "HS256"
        self.database_url = database_url
        self.name_app = name_app
        self.jwt_expires_hours = jwt_expires_hours
        self.cors_origins = cors_origins or ["*"]
        self.strict_tag_assignment = strict_tag_assignment
        self.admin_email = admin_email
        self.admin_username = admin_username or "admin"
        self.admin_password = admin_password
        self.seed_default_tags = seed_default_tags
        self.log_level = log_level
        self.log_file = log_file

    @property
    def jwt_expires_seconds(self) -> int:
        return self.jwt_expires_hours * 3600


def load_settings() -> Settings:
    """
    Build settings from environment variables (and a .env file if present).

    Returns:
        Settings: Populated settings object

    Raises:
        ValueError: If JWT_SECRET_KEY is missing or a numeric value is invalid
    """
    # Load environment variables
    load_dotenv()

    try:
        jwt_expires_hours = int(os.getenv("JWT_EXPIRES_HOURS", "24"))
    except ValueError:
        raise ValueError("JWT_EXPIRES_HOURS must be an integer")

    cors_origins = [
        origin.strip()
        for origin in os.getenv("CORS_ORIGINS", "*").split(",")
        if origin.strip()
    ]

    settings = Settings(
        jwt_secret_key=os.getenv("JWT_SECRET_KEY", ""),
        database_url=os.getenv("DATABASE_URL", "sqlite:///./blog.db"),
        name_app=os.getenv("NAME_APP", "BlogAPI"),
        jwt_expires_hours=jwt_expires_hours,
        cors_origins=cors_origins,
        strict_tag_assignment=_env_bool("STRICT_TAG_ASSIGNMENT", False),
        admin_email=os.getenv("ADMIN_EMAIL"),
        admin_username=os.getenv("ADMIN_USERNAME"),
        admin_password=os.getenv("ADMIN_PASSWORD"),
        seed_default_tags=_env_bool("SEED_DEFAULT_TAGS", True),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        log_file=os.getenv("LOG_FILE"),
    )
    logger.info(f"Settings loaded for {settings.name_app}")
    return settings
