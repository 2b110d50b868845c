"""Type definitions for VibeDev.

This module provides TypedDict definitions for the dictionaries returned
by the read operations, providing IDE autocomplete, type checking, and
clear documentation of data structures.

Reference:
    - PEP 589 TypedDict: https://peps.python.org/pep-0589/

Example:
    >>> from vibedev.types import LikeStatus
    >>> status: LikeStatus = {"total_likes": 3, "is_liked": False}
"""

from typing import Generic, NotRequired, Optional, Required, TypedDict, TypeVar

T = TypeVar("T")


# =============================================================================
# Engagement Types
# =============================================================================


class LikeStatus(TypedDict):
    """Like state of one entity for the current caller.

    Attributes:
        total_likes: Number of likes on the entity
        is_liked: Whether the signed-in caller liked it (False when anonymous)
    """

    total_likes: int
    is_liked: bool


class ProfileStats(TypedDict):
    """Aggregate counts shown on a profile page.

    Attributes:
        projects: Projects authored by the user
        posts: Published blog posts authored by the user
        likes: Likes received on the user's projects
        views: Views on the user's projects and published posts
    """

    projects: int
    posts: int
    likes: int
    views: int


class AuthorData(TypedDict, total=False):
    """Author summary embedded in cards and comments."""

    id: Required[str]
    username: NotRequired[Optional[str]]
    display_name: Required[str]
    avatar_url: NotRequired[Optional[str]]
    role: NotRequired[Optional[int]]


# =============================================================================
# Content Types
# =============================================================================


class ProjectCard(TypedDict, total=False):
    """Project with author and engagement counts.

    Attributes:
        id: Project ID
        slug: URL slug
        title: Project title
        category: Category key
        created_at: ISO8601 UTC timestamp used for newest-first ordering
        likes_count: Likes used by top/trending ordering
        views_count: Recorded views
        comments_count: Comments on the project
        author: Author summary
    """

    id: Required[str]
    slug: Required[str]
    title: Required[str]
    description: NotRequired[str]
    tagline: NotRequired[Optional[str]]
    category: NotRequired[str]
    website_url: NotRequired[Optional[str]]
    image_url: NotRequired[Optional[str]]
    favicon_url: NotRequired[Optional[str]]
    tags: NotRequired[list[str]]
    author_id: NotRequired[str]
    is_featured: NotRequired[bool]
    created_at: Required[str]
    updated_at: NotRequired[str]
    likes_count: Required[int]
    views_count: NotRequired[int]
    comments_count: NotRequired[int]
    author: NotRequired[Optional[AuthorData]]


class CommentData(TypedDict):
    """Comment normalized for display."""

    id: str
    content: str
    created_at: str
    is_guest: bool
    author: Optional[AuthorData]


class CategoryOption(TypedDict):
    """Option for category pickers and filters."""

    value: str
    label: str


# =============================================================================
# Analytics Types
# =============================================================================


class PlatformStats(TypedDict):
    total_users: int
    total_projects: int
    total_posts: int
    total_comments: int
    total_views: int
    total_likes: int
    new_users_today: int
    new_projects_today: int
    new_posts_today: int
    views_today: int


class TrendingItem(TypedDict):
    """Row of a most-viewed list."""

    id: str
    title: str
    slug: str
    views: int
    likes: int
    author: str
    created_at: str


class TimeSeriesPoint(TypedDict):
    date: str
    views: int
    likes: int
    comments: int


class ModerationStats(TypedDict):
    pending: int
    reviewed: int
    dismissed: int
    total: int


class UserStats(TypedDict):
    projects: int
    posts: int
    comments: int
    likes_given: int


# =============================================================================
# Pagination
# =============================================================================


class Page(TypedDict, Generic[T]):
    """One page of an admin list.

    Attributes:
        items: Rows on this page
        total: Rows matching the filters across all pages
        page: 1-based page number
        page_size: Fixed page size
    """

    items: list[T]
    total: int
    page: int
    page_size: int


__all__ = [
    "LikeStatus",
    "ProfileStats",
    "AuthorData",
    "ProjectCard",
    "CommentData",
    "CategoryOption",
    "PlatformStats",
    "TimeSeriesPoint",
    "TrendingItem",
    "ModerationStats",
    "UserStats",
    "Page",
]
