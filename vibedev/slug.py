"""Slug generation and lookup.

Slugs are lowercase ASCII alphanumerics joined by single dashes. A
collision with an existing slug is resolved by appending ``-2``, ``-3``,
and so on. The store's unique constraint is the final arbiter: when two
writers race for the same candidate, the loser retries exactly once with a
freshly computed suffix.

Example:
    >>> slugify_title("  Hello, World!  ")
    'hello-world'
    >>> await ensure_unique_slug(gateway, "foo")  # foo and foo-2 taken
    'foo-3'
"""

import re
from collections.abc import Awaitable, Callable
from typing import Optional, TypeVar

from sqlmodel import SQLModel
from tenacity import retry, retry_if_exception_type, stop_after_attempt

from vibedev.config import SLUG_MAX_ATTEMPTS_LIMIT, SLUG_MAX_LENGTH_LIMIT, settings
from vibedev.errors import SlugConflictError, StoreError, UniqueViolationError
from vibedev.interfaces import DataGateway
from vibedev.logging import logger
from vibedev.models import ProjectRow
from vibedev.repository import Filters

T = TypeVar("T", bound=SQLModel)

FALLBACK_SLUG = "project"
MAX_SLUG_LENGTH = SLUG_MAX_LENGTH_LIMIT + len(f"-{SLUG_MAX_ATTEMPTS_LIMIT + 1}")

_INVALID_CHARS = re.compile(r"[^a-z0-9\s]")
_WHITESPACE = re.compile(r"\s+")
_EDGE_DASHES = re.compile(r"^-+|-+$")
_TRAILING_DASHES = re.compile(r"-+$")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_VALID_SLUG = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")


def slugify_title(text: str, max_len: int | None = None, fallback: str = FALLBACK_SLUG) -> str:
    """Turn a title into a URL slug.

    Steps: trim and lowercase, drop everything except ``a-z``, ``0-9`` and
    whitespace, collapse whitespace runs into one dash, strip edge dashes,
    then truncate to ``max_len`` and strip any dash left at the end.

    Args:
        text: Title to convert
        max_len: Maximum slug length (defaults to settings.slug_max_length,
            capped at SLUG_MAX_LENGTH_LIMIT)
        fallback: Returned when nothing survives the cleanup

    Returns:
        Slug, never empty

    Example:
        >>> slugify_title("My  Cool App 2.0")
        'my-cool-app-20'
        >>> slugify_title("!!!")
        'project'
    """
    max_len = settings.slug_max_length if max_len is None else max_len
    max_len = min(max_len, SLUG_MAX_LENGTH_LIMIT)
    base = text.strip().lower()
    base = _INVALID_CHARS.sub("", base)
    base = _WHITESPACE.sub("-", base)
    base = _EDGE_DASHES.sub("", base)
    if len(base) > max_len:
        base = _TRAILING_DASHES.sub("", base[:max_len])
    return base or fallback


def slugify_tag(name: str) -> str:
    """Slug for a tag name: runs of non-alphanumerics become one dash.

    Example:
        >>> slugify_tag("Next.js & React")
        'next-js-react'
    """
    return _NON_ALNUM.sub("-", name.strip().lower()).strip("-")


def is_valid_slug(slug: str | None) -> bool:
    """Check slug format and length.

    Example:
        >>> is_valid_slug("my-app")
        True
        >>> is_valid_slug("-bad-")
        False
    """
    if not slug:
        return False
    return bool(_VALID_SLUG.match(slug)) and len(slug) <= MAX_SLUG_LENGTH


async def ensure_unique_slug(
    gateway: DataGateway,
    base: str,
    exclude_id: Optional[str] = None,
    model: type[SQLModel] = ProjectRow,
    max_attempts: int | None = None,
) -> str:
    """Find the first free slug among ``base``, ``base-2``, ``base-3``, ...

    Args:
        gateway: Data gateway
        base: Base slug (already slugified)
        exclude_id: Entity whose own slug does not count as taken
        model: Table holding the slugs
        max_attempts: Candidates checked before giving up
            (defaults to settings.slug_max_attempts)

    Returns:
        The first free candidate; after ``max_attempts`` taken candidates,
        or a store error, the current candidate is returned unchecked and
        the unique constraint decides on insert
    """
    max_attempts = settings.slug_max_attempts if max_attempts is None else max_attempts
    slug = base
    attempt = 1
    while True:
        try:
            rows = await gateway.select(model, Filters.where(slug=slug), limit=1)
        except StoreError as exc:
            logger.error(f"Error checking slug uniqueness for {slug}: {exc}")
            return slug

        if not rows or (exclude_id is not None and rows[0].id == exclude_id):
            return slug

        attempt += 1
        slug = f"{base}-{attempt}"
        if attempt > max_attempts:
            logger.warning(f"Slug collision detection exceeded {max_attempts} attempts for {base}")
            return slug


async def insert_with_unique_slug(
    gateway: DataGateway,
    base: str,
    build: Callable[[str], T],
    model: type[SQLModel] = ProjectRow,
) -> T:
    """Insert a row under a unique slug, retrying once on a slug race.

    Args:
        gateway: Data gateway
        base: Base slug
        build: Builds the row for a chosen slug
        model: Table holding the slugs

    Returns:
        The inserted row

    Raises:
        SlugConflictError: If the slug was taken concurrently twice in a row
        UniqueViolationError: If some other unique constraint rejected the row
    """

    @retry(
        reraise=True,
        stop=stop_after_attempt(2),
        retry=retry_if_exception_type(SlugConflictError),
    )
    async def _runner() -> T:
        slug = await ensure_unique_slug(gateway, base, model=model)
        try:
            return await gateway.insert(build(slug))
        except UniqueViolationError as exc:
            taken = await gateway.count(model, Filters.where(slug=slug))
            if taken:
                logger.warning(f"Slug {slug} taken concurrently, retrying")
                raise SlugConflictError("Could not reserve a unique slug, please try again") from exc
            raise

    return await _runner()


async def get_id_by_slug(
    gateway: DataGateway, slug: str, model: type[SQLModel] = ProjectRow
) -> Optional[str]:
    """Resolve a slug to an entity ID, or None for invalid or unknown slugs."""
    if not is_valid_slug(slug):
        return None
    try:
        rows = await gateway.select(model, Filters.where(slug=slug), limit=1)
    except StoreError as exc:
        logger.error(f"Error getting ID by slug {slug}: {exc}")
        return None
    return rows[0].id if rows else None


__all__ = [
    "FALLBACK_SLUG",
    "MAX_SLUG_LENGTH",
    "slugify_title",
    "slugify_tag",
    "is_valid_slug",
    "ensure_unique_slug",
    "insert_with_unique_slug",
    "get_id_by_slug",
]
