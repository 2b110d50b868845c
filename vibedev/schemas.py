"""Input validation schemas.

Pydantic models for action inputs and admin list queries. Validation
happens before any store access; :func:`validate` converts pydantic
errors into :class:`vibedev.errors.InputValidationError`.

List queries are lenient: unrecognized filter values fall back to
``"all"`` and invalid page numbers fall back to 1, mirroring how list
pages treat hand-edited query strings.
"""

import json
from datetime import date, datetime
from typing import Any, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from vibedev.errors import InputValidationError

M = TypeVar("M", bound=BaseModel)

PAGE_SIZE = 20
MIN_POST_CONTENT_LENGTH = 100


def validate(model: type[M], data: dict[str, Any] | BaseModel) -> M:
    """Validate raw input against a schema.

    Args:
        model: Schema class
        data: Raw input dictionary (or an already-built schema instance)

    Returns:
        Validated schema instance

    Raises:
        InputValidationError: With a ``Validation failed: ...`` message
    """
    if isinstance(data, model):
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump(exclude_unset=True)
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        messages = []
        for error in exc.errors():
            location = ".".join(str(part) for part in error["loc"])
            messages.append(f"{location}: {error['msg']}" if location else error["msg"])
        raise InputValidationError(f"Validation failed: {', '.join(messages)}") from exc


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


# =============================================================================
# Projects
# =============================================================================


class ProjectForm(BaseModel):
    """New project submission."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1, max_length=5000)
    category: str = Field(min_length=1)
    tagline: Optional[str] = Field(default=None, max_length=200)
    website_url: Optional[str] = None
    image_url: Optional[str] = None
    favicon_url: Optional[str] = None
    tags: list[str] = Field(default_factory=list)

    @field_validator("tagline", "website_url", "image_url", "favicon_url", mode="before")
    @classmethod
    def _optional_text(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @field_validator("tags", mode="before")
    @classmethod
    def _clean_tags(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.split(",")
        if isinstance(v, list):
            return [t.strip() for t in v if isinstance(t, str) and t.strip()]
        return v


class ProjectUpdate(BaseModel):
    """Partial project update. The slug is not updatable."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=5000)
    category: Optional[str] = None
    tagline: Optional[str] = Field(default=None, max_length=200)
    website_url: Optional[str] = None
    image_url: Optional[str] = None
    favicon_url: Optional[str] = None
    tags: Optional[list[str]] = None
    is_featured: Optional[bool] = None

    def changes(self) -> dict[str, Any]:
        """Fields explicitly provided by the caller."""
        return self.model_dump(exclude_unset=True)


# =============================================================================
# Blog Posts and Tags
# =============================================================================


class PostForm(BaseModel):
    """New blog post."""

    model_config = ConfigDict(extra="ignore")

    title: str = Field(min_length=5, max_length=200)
    content: dict[str, Any]
    excerpt: Optional[str] = Field(default=None, max_length=500)
    cover_image: Optional[str] = None
    tags: list[str] = Field(default_factory=list)

    @field_validator("title", mode="before")
    @classmethod
    def _strip_title(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("content")
    @classmethod
    def _content_long_enough(cls, v: dict[str, Any]) -> dict[str, Any]:
        if len(json.dumps(v)) < MIN_POST_CONTENT_LENGTH:
            raise ValueError("Content is too short")
        return v


class PostUpdate(BaseModel):
    """Partial blog post update. The slug is not updatable."""

    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = Field(default=None, min_length=5, max_length=200)
    content: Optional[dict[str, Any]] = None
    excerpt: Optional[str] = Field(default=None, max_length=500)
    cover_image: Optional[str] = None
    status: Optional[Literal["draft", "published", "archived"]] = None
    featured: Optional[bool] = None
    tags: Optional[list[str]] = None

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class TagName(BaseModel):
    name: str = Field(min_length=1, max_length=50)

    @field_validator("name", mode="before")
    @classmethod
    def _strip(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v


# =============================================================================
# Comments and Events
# =============================================================================


class CommentForm(BaseModel):
    """New comment from a user or a guest."""

    content: str = Field(max_length=5000)
    guest_name: Optional[str] = Field(default=None, max_length=50)

    @field_validator("content", mode="before")
    @classmethod
    def _content(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip()
            if len(v) < 2:
                raise ValueError("Comment too short (minimum 2 characters)")
        return v

    @field_validator("guest_name", mode="before")
    @classmethod
    def _guest(cls, v: Any) -> Any:
        v = _blank_to_none(v)
        return v.strip() if isinstance(v, str) else v


class EventForm(BaseModel):
    """Calendar event submission."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    name: str = Field(min_length=3, max_length=200)
    description: str = Field(min_length=10, max_length=5000)
    category: str = Field(min_length=1)
    location: str = Field(min_length=1, max_length=200)
    starts_at: datetime
    ends_at: Optional[datetime] = None
    url: Optional[str] = None
    cover_image: Optional[str] = None
    slug: Optional[str] = None

    @field_validator("url", "cover_image", "slug", mode="before")
    @classmethod
    def _optional_text(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @field_validator("ends_at")
    @classmethod
    def _ends_after_start(cls, v: Optional[datetime], info: Any) -> Optional[datetime]:
        starts_at = info.data.get("starts_at")
        if v is not None and starts_at is not None and v < starts_at:
            raise ValueError("End must not be before start")
        return v


# =============================================================================
# Admin List Queries
# =============================================================================


class ListQuery(BaseModel):
    """Shared list query fields: search text and 1-based page."""

    model_config = ConfigDict(extra="ignore")

    search: Optional[str] = Field(default=None, max_length=100)
    page: int = 1

    @field_validator("search", mode="before")
    @classmethod
    def _search(cls, v: Any) -> Any:
        v = _blank_to_none(v)
        return v.strip() if isinstance(v, str) else v

    @field_validator("page", mode="before")
    @classmethod
    def _page(cls, v: Any) -> int:
        try:
            page = int(v)
        except (TypeError, ValueError):
            return 1
        return page if page >= 1 else 1

    @property
    def offset(self) -> int:
        return (self.page - 1) * PAGE_SIZE


def _choice(value: Any, allowed: tuple[str, ...]) -> str:
    return value if isinstance(value, str) and value in allowed else "all"


def _iso_day(value: Any) -> Optional[date]:
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value)
        except ValueError:
            return None
    return None


class ProjectListQuery(ListQuery):
    status: str = "all"
    category: str = "all"
    date_from: Optional[date] = None
    date_to: Optional[date] = None

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, v: Any) -> str:
        return _choice(v, ("all", "featured", "regular"))

    @field_validator("category", mode="before")
    @classmethod
    def _category(cls, v: Any) -> str:
        return v if isinstance(v, str) and v.strip() else "all"

    @field_validator("date_from", "date_to", mode="before")
    @classmethod
    def _dates(cls, v: Any) -> Optional[date]:
        return _iso_day(v)


class UserListQuery(ListQuery):
    role: str = "all"
    status: str = "all"

    @field_validator("role", mode="before")
    @classmethod
    def _role(cls, v: Any) -> str:
        return _choice(v, ("all", "admin", "moderator", "user"))

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, v: Any) -> str:
        return _choice(v, ("all", "active", "suspended"))


class PostListQuery(ListQuery):
    status: str = "all"

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, v: Any) -> str:
        return _choice(v, ("all", "draft", "published", "archived"))


class ReportListQuery(ListQuery):
    status: str = "pending"

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, v: Any) -> str:
        if v is None:
            return "pending"
        return _choice(v, ("all", "pending", "reviewed", "dismissed"))


class RoleChange(BaseModel):
    role: int = Field(ge=0, le=2)


class SuspensionReason(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=500)


__all__ = [
    "PAGE_SIZE",
    "validate",
    "ProjectForm",
    "ProjectUpdate",
    "PostForm",
    "PostUpdate",
    "TagName",
    "CommentForm",
    "EventForm",
    "ListQuery",
    "ProjectListQuery",
    "UserListQuery",
    "PostListQuery",
    "ReportListQuery",
    "RoleChange",
    "SuspensionReason",
]
