"""Text helpers: slugs, excerpts, whitespace cleanup and pagination math."""

import re
import math
from typing import Callable, Tuple

SLUG_MAX_LENGTH = 100
EXCERPT_MAX_LENGTH = 200
DEFAULT_PER_PAGE = 10
MAX_PER_PAGE = 100

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_HTML_TAG = re.compile(r"<[^>]*>")
_WHITESPACE = re.compile(r"\s+")
_SLUG_FORMAT = re.compile(r"^[a-z0-9]+(-[a-z0-9]+)*$")


def generate_slug(text: str, max_length: int = SLUG_MAX_LENGTH) -> str:
    """
    Create a URL-friendly slug from a title or name.

    Lowercases, collapses every run of non-alphanumeric characters into a
    single hyphen and trims hyphens from both ends. Slugs longer than
    ``max_length`` are cut back to the last hyphen boundary when the cut
    would otherwise split a word.

    Args:
        text: Human-readable source text
        max_length: Maximum slug length

    Returns:
        str: The slug (may be empty if ``text`` has no alphanumerics)
    """
    slug = _NON_ALNUM.sub("-", text.lower()).strip("-")

    if len(slug) > max_length:
        cut = slug[:max_length]
        # Cut landed inside a word: back off to the previous boundary
        if slug[max_length] != "-" and "-" in cut:
            cut = cut[:cut.rfind("-")]
        slug = cut.strip("-")

    return slug


def unique_slug(candidate: str, is_taken: Callable[[str], bool]) -> str:
    """
    Append ``-1``, ``-2``, ... to ``candidate`` until ``is_taken`` says no.

    Args:
        candidate: Base slug
        is_taken: Predicate reporting whether a slug is already in use

    Returns:
        str: First free slug
    """
    slug = candidate
    counter = 1
    while is_taken(slug):
        slug = f"{candidate}-{counter}"
        counter += 1
    return slug


def is_valid_slug(slug: str) -> bool:
    """Check that a slug is lowercase alphanumerics joined by single hyphens."""
    return bool(slug) and bool(_SLUG_FORMAT.match(slug))


def sanitize_text(text: str) -> str:
    """Collapse runs of whitespace to one space and trim the ends."""
    return _WHITESPACE.sub(" ", text or "").strip()


def truncate_text(text: str, max_length: int) -> str:
    """
    Truncate text at the last space before ``max_length`` and add an ellipsis.

    Args:
        text: Text to shorten
        max_length: Maximum number of characters kept before the ellipsis

    Returns:
        str: Original text if short enough, otherwise truncated text + "..."
    """
    if len(text) <= max_length:
        return text

    last_space = text.rfind(" ", 0, max_length)
    if last_space == -1:
        last_space = max_length

    return text[:last_space] + "..."


def extract_excerpt(content: str, max_length: int = EXCERPT_MAX_LENGTH) -> str:
    """Build an excerpt from post content: strip tags, normalize, truncate."""
    plain_text = _HTML_TAG.sub("", content or "")
    return truncate_text(sanitize_text(plain_text), max_length)


def normalize_pagination(page: int, per_page: int) -> Tuple[int, int]:
    """Clamp page to >= 1 and per_page to 1..100 (non-positive -> default)."""
    if page < 1:
        page = 1
    if per_page < 1:
        per_page = DEFAULT_PER_PAGE
    if per_page > MAX_PER_PAGE:
        per_page = MAX_PER_PAGE
    return page, per_page


def total_pages(total: int, per_page: int) -> int:
    """Number of pages needed for ``total`` records (ceiling division)."""
    if total <= 0:
        return 0
    return math.ceil(total / per_page)
