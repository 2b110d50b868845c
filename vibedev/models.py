"""Data models for VibeDev.

SQLModel tables for persistence. Timestamps are stored as ISO8601 UTC
strings (see :func:`vibedev.utils.format_iso`) and view days as
``YYYY-MM-DD`` strings.

Models are organized into three sections:
1. Accounts and reference data (users, categories, tags)
2. Content (projects, blog posts, events, comments)
3. Engagement rows (views, likes, comment reports) and link tables

Engagement tables reference exactly one of a project or a post. The
uniqueness rules the counters rely on are table constraints:

    - views: one row per (entity, session, day)
    - likes: one row per (entity, user)
    - comment reports: one row per (comment, reporter)
"""

from typing import Any, Optional

from sqlalchemy import JSON, CheckConstraint, Column, UniqueConstraint
from sqlmodel import Field, SQLModel

from vibedev.config import EntityKind, EventStatus, PostStatus, ReportStatus, Role
from vibedev.utils import new_id, utc_now_iso

ONE_ENTITY = (
    "(project_id IS NOT NULL AND post_id IS NULL) OR "
    "(project_id IS NULL AND post_id IS NOT NULL)"
)

# =============================================================================
# Section 1: Accounts and Reference Data
# =============================================================================


class UserRow(SQLModel, table=True):
    """Persisted user profile.

    Attributes:
        id: Opaque user ID (primary key)
        username: Unique handle used in profile URLs
        display_name: Display name
        avatar_url: Avatar image URL
        bio: Short biography
        location: Free-form location
        website: Personal site URL
        role: 0 admin, 1 moderator, 2 user
        is_suspended: Whether the account is suspended
        suspension_reason: Reason recorded by the admin who suspended the user
        suspended_at: ISO8601 UTC suspension timestamp
        joined_at: ISO8601 UTC creation timestamp
        updated_at: ISO8601 UTC last update timestamp
    """

    __tablename__ = "users"

    id: str = Field(default_factory=new_id, primary_key=True)
    username: str = Field(unique=True, index=True)
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    website: Optional[str] = None
    role: int = Field(default=int(Role.USER), index=True)
    is_suspended: bool = Field(default=False)
    suspension_reason: Optional[str] = None
    suspended_at: Optional[str] = None
    joined_at: str = Field(default_factory=utc_now_iso, index=True)
    updated_at: str = Field(default_factory=utc_now_iso)

    @property
    def name(self) -> str:
        return self.display_name or self.username


class CategoryRow(SQLModel, table=True):
    """Project category reference data.

    Attributes:
        name: Category key (primary key), stored on projects
        display_name: Human-readable label
        description: Optional description
        icon: Icon identifier
        color: Badge color
        sort_order: Position in option lists
        is_active: Inactive categories are hidden and rejected on create
    """

    __tablename__ = "categories"

    name: str = Field(primary_key=True)
    display_name: str
    description: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    sort_order: int = Field(default=0, index=True)
    is_active: bool = Field(default=True)
    created_at: str = Field(default_factory=utc_now_iso)


class TagRow(SQLModel, table=True):
    """Blog post tag."""

    __tablename__ = "tags"

    id: str = Field(default_factory=new_id, primary_key=True)
    name: str = Field(unique=True)
    slug: str = Field(unique=True, index=True)
    created_at: str = Field(default_factory=utc_now_iso)


# =============================================================================
# Section 2: Content
# =============================================================================


class ProjectRow(SQLModel, table=True):
    """Persisted showcase project.

    Attributes:
        id: Opaque project ID (primary key)
        slug: Unique URL slug, never changed after creation
        title: Project title
        description: Long description
        tagline: One-line pitch
        category: Category key (see CategoryRow)
        website_url: Project website
        image_url: Screenshot or cover image
        favicon_url: Favicon of the project website
        tags: Ordered list of free-form tags
        author_id: FK to users.id
        is_featured: Featured flag controlled by admins
        created_at: ISO8601 UTC creation timestamp (indexed)
        updated_at: ISO8601 UTC last update timestamp
    """

    __tablename__ = "projects"

    id: str = Field(default_factory=new_id, primary_key=True)
    slug: str = Field(unique=True, index=True)
    title: str
    description: str
    tagline: Optional[str] = None
    category: str = Field(index=True)
    website_url: Optional[str] = None
    image_url: Optional[str] = None
    favicon_url: Optional[str] = None
    tags: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    author_id: str = Field(foreign_key="users.id", index=True)
    is_featured: bool = Field(default=False, index=True)
    created_at: str = Field(default_factory=utc_now_iso, index=True)
    updated_at: str = Field(default_factory=utc_now_iso)


class PostRow(SQLModel, table=True):
    """Persisted blog post.

    Attributes:
        id: Opaque post ID (primary key)
        slug: Unique URL slug, stable across edits
        title: Post title
        content: Serialized rich-text JSON document
        excerpt: Short summary
        cover_image: Cover image URL
        author_id: FK to users.id
        status: draft, published or archived
        featured: Featured flag controlled by admins
        read_time_minutes: Estimated reading time
        published_at: ISO8601 UTC publication timestamp
        created_at: ISO8601 UTC creation timestamp
        updated_at: ISO8601 UTC last update timestamp
    """

    __tablename__ = "posts"

    id: str = Field(default_factory=new_id, primary_key=True)
    slug: str = Field(unique=True, index=True)
    title: str
    content: str
    excerpt: Optional[str] = None
    cover_image: Optional[str] = None
    author_id: str = Field(foreign_key="users.id", index=True)
    status: str = Field(default=PostStatus.DRAFT.value, index=True)
    featured: bool = Field(default=False)
    read_time_minutes: int = Field(default=1)
    published_at: Optional[str] = Field(default=None, index=True)
    created_at: str = Field(default_factory=utc_now_iso, index=True)
    updated_at: str = Field(default_factory=utc_now_iso)


class PostTagLink(SQLModel, table=True):
    """Many-to-many link between posts and tags."""

    __tablename__ = "post_tags"

    post_id: str = Field(primary_key=True, foreign_key="posts.id")
    tag_id: str = Field(primary_key=True, foreign_key="tags.id")


class EventRow(SQLModel, table=True):
    """Community calendar event.

    Attributes:
        id: Opaque event ID (primary key)
        slug: Unique URL slug
        name: Event name
        description: Event description
        category: Free-form category (e.g., "hackathon", "meetup")
        location: Venue or "Online"
        starts_at: ISO8601 UTC start
        ends_at: ISO8601 UTC end (optional)
        url: External registration link
        cover_image: Cover image URL
        status: pending or approved
        submitted_by: FK to users.id
        reviewed_by: Admin who approved the event
        created_at: ISO8601 UTC submission timestamp
    """

    __tablename__ = "events"

    id: str = Field(default_factory=new_id, primary_key=True)
    slug: str = Field(unique=True, index=True)
    name: str
    description: str
    category: str = Field(index=True)
    location: str
    starts_at: str = Field(index=True)
    ends_at: Optional[str] = None
    url: Optional[str] = None
    cover_image: Optional[str] = None
    status: str = Field(default=EventStatus.PENDING.value, index=True)
    submitted_by: str = Field(foreign_key="users.id")
    reviewed_by: Optional[str] = None
    created_at: str = Field(default_factory=utc_now_iso)


class CommentRow(SQLModel, table=True):
    """Comment on a project or a post.

    Attributes:
        id: Opaque comment ID (primary key)
        project_id: FK to projects.id when commenting on a project
        post_id: FK to posts.id when commenting on a post
        user_id: FK to users.id for registered authors
        author_name: Name given by guest authors
        content: Comment text
        created_at: ISO8601 UTC creation timestamp (indexed)
    """

    __tablename__ = "comments"
    __table_args__ = (CheckConstraint(ONE_ENTITY, name="ck_comments_one_entity"),)

    id: str = Field(default_factory=new_id, primary_key=True)
    project_id: Optional[str] = Field(default=None, foreign_key="projects.id", index=True)
    post_id: Optional[str] = Field(default=None, foreign_key="posts.id", index=True)
    user_id: Optional[str] = Field(default=None, foreign_key="users.id", index=True)
    author_name: Optional[str] = None
    content: str
    created_at: str = Field(default_factory=utc_now_iso, index=True)


# =============================================================================
# Section 3: Engagement Rows
# =============================================================================


class ViewRow(SQLModel, table=True):
    """One recorded view of a project or a post.

    Rows without a session ID never collide, since NULLs are distinct in
    unique constraints.

    Attributes:
        id: Opaque row ID (primary key)
        project_id: Viewed project, if any
        post_id: Viewed post, if any
        user_id: Signed-in viewer, if any
        session_id: Client session identifier
        view_date: UTC calendar day (``YYYY-MM-DD``)
        created_at: ISO8601 UTC timestamp
    """

    __tablename__ = "views"
    __table_args__ = (
        UniqueConstraint("project_id", "session_id", "view_date", name="uq_views_project_session_day"),
        UniqueConstraint("post_id", "session_id", "view_date", name="uq_views_post_session_day"),
        CheckConstraint(ONE_ENTITY, name="ck_views_one_entity"),
    )

    id: str = Field(default_factory=new_id, primary_key=True)
    project_id: Optional[str] = Field(default=None, foreign_key="projects.id", index=True)
    post_id: Optional[str] = Field(default=None, foreign_key="posts.id", index=True)
    user_id: Optional[str] = Field(default=None, foreign_key="users.id")
    session_id: Optional[str] = None
    view_date: str = Field(index=True)
    created_at: str = Field(default_factory=utc_now_iso, index=True)


class LikeRow(SQLModel, table=True):
    """One user's like of a project or a post.

    Attributes:
        id: Opaque row ID (primary key)
        project_id: Liked project, if any
        post_id: Liked post, if any
        user_id: FK to users.id
        created_at: ISO8601 UTC timestamp
    """

    __tablename__ = "likes"
    __table_args__ = (
        UniqueConstraint("project_id", "user_id", name="uq_likes_project_user"),
        UniqueConstraint("post_id", "user_id", name="uq_likes_post_user"),
        CheckConstraint(ONE_ENTITY, name="ck_likes_one_entity"),
    )

    id: str = Field(default_factory=new_id, primary_key=True)
    project_id: Optional[str] = Field(default=None, foreign_key="projects.id", index=True)
    post_id: Optional[str] = Field(default=None, foreign_key="posts.id", index=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    created_at: str = Field(default_factory=utc_now_iso, index=True)


class CommentReportRow(SQLModel, table=True):
    """A user's report of an abusive comment.

    Attributes:
        id: Opaque row ID (primary key)
        comment_id: FK to comments.id
        reporter_id: FK to users.id
        reason: Free-form reason
        status: pending, reviewed or dismissed
        reviewed_by: Admin who handled the report
        reviewed_at: ISO8601 UTC review timestamp
        created_at: ISO8601 UTC timestamp
    """

    __tablename__ = "comment_reports"
    __table_args__ = (
        UniqueConstraint("comment_id", "reporter_id", name="uq_reports_comment_reporter"),
    )

    id: str = Field(default_factory=new_id, primary_key=True)
    comment_id: str = Field(foreign_key="comments.id", index=True)
    reporter_id: str = Field(foreign_key="users.id")
    reason: str
    status: str = Field(default=ReportStatus.PENDING.value, index=True)
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[str] = None
    created_at: str = Field(default_factory=utc_now_iso)


def entity_fields(kind: EntityKind, entity_id: str) -> dict[str, Any]:
    """Foreign-key fields for an engagement row targeting ``entity_id``.

    Example:
        >>> entity_fields(EntityKind.POST, "p-1")
        {'post_id': 'p-1'}
    """
    return {kind.column: entity_id}


__all__ = [
    "UserRow",
    "CategoryRow",
    "TagRow",
    "ProjectRow",
    "PostRow",
    "PostTagLink",
    "EventRow",
    "CommentRow",
    "ViewRow",
    "LikeRow",
    "CommentReportRow",
    "entity_fields",
]
