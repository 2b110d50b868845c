"""VibeDev - engagement and community backend for a developer showcase.

This package provides deduplicated view counting, like toggling, trending
listings and profile statistics, together with projects, blog posts,
comments, events, admin boards and analytics on top of SQLite.

Example:
    >>> from vibedev import VibeDevApp
    >>> import asyncio
    >>>
    >>> async def main():
    ...     with VibeDevApp() as app:
    ...         cards = await app.projects.fetch_projects_with_sorting("trending")
    ...         result = await app.as_user("alice").likes.toggle_like(cards[0]["id"])
    >>>
    >>> asyncio.run(main())
"""

from vibedev.app import VibeDevApp
from vibedev.config import EntityKind, Role, SortMode, settings
from vibedev.database import DatabaseManager
from vibedev.errors import (
    ActionResult,
    AuthorizationError,
    InputValidationError,
    NotFoundError,
    StoreError,
    VibeDevError,
)
from vibedev.gateway import SQLGateway
from vibedev.identity import AnonymousIdentity, CurrentUser, StaticIdentity
from vibedev.models import (
    CommentRow,
    EventRow,
    LikeRow,
    PostRow,
    ProjectRow,
    UserRow,
    ViewRow,
)

__version__ = "0.1.0"

__all__ = [
    # Main components
    "VibeDevApp",
    "DatabaseManager",
    "SQLGateway",
    # Configuration
    "settings",
    "EntityKind",
    "Role",
    "SortMode",
    # Identity
    "CurrentUser",
    "StaticIdentity",
    "AnonymousIdentity",
    # Errors
    "ActionResult",
    "VibeDevError",
    "InputValidationError",
    "AuthorizationError",
    "NotFoundError",
    "StoreError",
    # SQLModel tables
    "UserRow",
    "ProjectRow",
    "PostRow",
    "CommentRow",
    "EventRow",
    "LikeRow",
    "ViewRow",
]
