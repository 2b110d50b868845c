"""Admin dashboard boards.

Every operation requires the caller to be an admin (role 0). Lists take a
lenient query (unknown filter values fall back to "all", bad pages to 1)
and return a :class:`~vibedev.types.Page` of fixed size.
"""

import asyncio
from datetime import UTC, date, datetime, time
from typing import Any, Literal, Optional

from sqlmodel import SQLModel

from vibedev.authors import load_authors
from vibedev.categories import CategoryService
from vibedev.comments import normalize_comment
from vibedev.config import EntityKind, ReportStatus, Role
from vibedev.engagement import count_by_column, engagement_counts
from vibedev.errors import InputValidationError, NotFoundError, StoreError, UniqueViolationError, server_action
from vibedev.identity import require_admin
from vibedev.interfaces import DataGateway, IdentityProvider
from vibedev.logging import logger
from vibedev.models import (
    CommentReportRow,
    CommentRow,
    LikeRow,
    PostRow,
    PostTagLink,
    ProjectRow,
    TagRow,
    UserRow,
)
from vibedev.outcome import gather_outcomes
from vibedev.posts import apply_post_update, delete_post_cascade
from vibedev.projects import delete_project_cascade, project_card
from vibedev.repository import Filters
from vibedev.schemas import (
    PAGE_SIZE,
    PostListQuery,
    PostUpdate,
    ProjectListQuery,
    ProjectUpdate,
    ReportListQuery,
    RoleChange,
    SuspensionReason,
    TagName,
    UserListQuery,
    validate,
)
from vibedev.slug import slugify_tag
from vibedev.types import ModerationStats, Page, UserStats
from vibedev.utils import day_start_iso, format_iso, utc_now_iso

ROLE_FILTERS = {"admin": Role.ADMIN, "moderator": Role.MODERATOR, "user": Role.USER}
ReportAction = Literal["delete", "dismiss", "warn"]


def day_end_iso(day: date) -> str:
    """ISO timestamp for the last microsecond of ``day`` (UTC)."""
    return format_iso(datetime.combine(day, time.max, tzinfo=UTC))


class AdminService:
    """Admin boards for projects, users, posts, tags and comment reports.

    Args:
        gateway: Data gateway
        identity: Identity provider; must resolve to an admin
        categories: Category service for validating project categories
    """

    def __init__(self, gateway: DataGateway, identity: IdentityProvider, categories: CategoryService):
        self.gateway = gateway
        self.identity = identity
        self.categories = categories

    async def _page(
        self,
        model: type[SQLModel],
        filters: Filters,
        page: int,
        offset: int,
        order_by: str,
    ) -> tuple[list[Any], int]:
        rows, total = await asyncio.gather(
            self.gateway.select(model, filters, order_by=order_by, descending=True, limit=PAGE_SIZE, offset=offset),
            self.gateway.count(model, filters),
        )
        logger.debug(f"Admin list {model.__tablename__} page {page}: {len(rows)} of {total}")
        return list(rows), total

    # =========================================================================
    # Projects
    # =========================================================================

    async def list_projects(self, query: dict[str, Any] | ProjectListQuery | None = None) -> Page[dict]:
        """Projects newest first with author and engagement counts."""
        await require_admin(self.identity)
        q = validate(ProjectListQuery, query or {})
        filters = Filters()
        if q.status != "all":
            filters.eq["is_featured"] = q.status == "featured"
        if q.category != "all":
            filters.eq["category"] = q.category
        if q.date_from:
            filters.gte["created_at"] = day_start_iso(q.date_from)
        if q.date_to:
            filters.lte["created_at"] = day_end_iso(q.date_to)
        if q.search:
            filters.search = (("title", "description"), q.search)

        projects, total = await self._page(ProjectRow, filters, q.page, q.offset, "created_at")
        counts, authors = await gather_outcomes(
            engagement_counts(self.gateway, EntityKind.PROJECT, [p.id for p in projects]),
            load_authors(self.gateway, [p.author_id for p in projects]),
            defaults=({}, {}),
            labels=("counts", "authors"),
        )
        items = [project_card(p, counts.value.get(p.id), authors.value.get(p.author_id)) for p in projects]
        return {"items": items, "total": total, "page": q.page, "page_size": PAGE_SIZE}

    @server_action("admin_update_project")
    async def update_project(self, project_id: str, changes: dict[str, Any] | ProjectUpdate) -> dict:
        await require_admin(self.identity)
        values = validate(ProjectUpdate, changes).changes()
        if "category" in values and not await self.categories.is_valid_category(values["category"]):
            raise InputValidationError("Invalid category")
        values["updated_at"] = utc_now_iso()
        if not await self.gateway.update(ProjectRow, Filters.where(id=project_id), values):
            raise NotFoundError("Project not found or no changes applied")
        return {"project_id": project_id}

    @server_action("admin_delete_project")
    async def delete_project(self, project_id: str) -> dict:
        await require_admin(self.identity)
        await delete_project_cascade(self.gateway, project_id)
        return {"project_id": project_id}

    @server_action("toggle_project_featured")
    async def toggle_project_featured(self, project_id: str, featured: Optional[bool] = None) -> dict:
        """Set the featured flag, or flip it when ``featured`` is None."""
        await require_admin(self.identity)
        project = await self.gateway.get(ProjectRow, project_id)
        if project is None:
            raise NotFoundError("Project not found")
        value = (not project.is_featured) if featured is None else featured
        await self.gateway.update(
            ProjectRow, Filters.where(id=project_id), {"is_featured": value, "updated_at": utc_now_iso()}
        )
        return {"project_id": project_id, "is_featured": value}

    async def get_project_categories(self) -> list[str]:
        await require_admin(self.identity)
        return [c.name for c in await self.categories.get_categories()]

    # =========================================================================
    # Users
    # =========================================================================

    async def list_users(self, query: dict[str, Any] | UserListQuery | None = None) -> Page[dict]:
        """Users by join date, newest first, with activity counts."""
        await require_admin(self.identity)
        q = validate(UserListQuery, query or {})
        filters = Filters()
        if q.role != "all":
            filters.eq["role"] = int(ROLE_FILTERS[q.role])
        if q.status != "all":
            filters.eq["is_suspended"] = q.status == "suspended"
        if q.search:
            filters.search = (("username", "display_name"), q.search)

        users, total = await self._page(UserRow, filters, q.page, q.offset, "joined_at")
        ids = [u.id for u in users]
        projects, posts, comments, likes = await gather_outcomes(
            count_by_column(self.gateway, ProjectRow, "author_id", ids),
            count_by_column(self.gateway, PostRow, "author_id", ids),
            count_by_column(self.gateway, CommentRow, "user_id", ids),
            count_by_column(self.gateway, LikeRow, "user_id", ids),
            defaults=({}, {}, {}, {}),
            labels=("projects", "posts", "comments", "likes"),
        )
        items = []
        for user in users:
            row = user.model_dump()
            row["stats"] = {
                "projects": projects.value.get(user.id, 0),
                "posts": posts.value.get(user.id, 0),
                "comments": comments.value.get(user.id, 0),
                "likes_given": likes.value.get(user.id, 0),
            }
            items.append(row)
        return {"items": items, "total": total, "page": q.page, "page_size": PAGE_SIZE}

    @server_action("update_user_role")
    async def update_user_role(self, user_id: str, role: int) -> dict:
        await require_admin(self.identity)
        change = validate(RoleChange, {"role": role})
        updated = await self.gateway.update(
            UserRow, Filters.where(id=user_id), {"role": change.role, "updated_at": utc_now_iso()}
        )
        if not updated:
            raise NotFoundError("User not found")
        logger.info(f"👤 User {user_id} role set to {Role(change.role).name.lower()}")
        return {"user_id": user_id, "role": change.role}

    @server_action("suspend_user")
    async def suspend_user(self, user_id: str, reason: Optional[str] = None) -> dict:
        await require_admin(self.identity)
        data = validate(SuspensionReason, {"reason": reason})
        return await self._set_suspension(user_id, True, data.reason)

    @server_action("unsuspend_user")
    async def unsuspend_user(self, user_id: str) -> dict:
        await require_admin(self.identity)
        return await self._set_suspension(user_id, False, None)

    async def _set_suspension(self, user_id: str, suspended: bool, reason: Optional[str]) -> dict:
        now = utc_now_iso()
        updated = await self.gateway.update(
            UserRow,
            Filters.where(id=user_id),
            {
                "is_suspended": suspended,
                "suspension_reason": reason if suspended else None,
                "suspended_at": now if suspended else None,
                "updated_at": now,
            },
        )
        if not updated:
            raise NotFoundError("User not found")
        logger.info(f"👤 User {user_id} {'suspended' if suspended else 'reinstated'}")
        return {"user_id": user_id, "is_suspended": suspended}

    async def get_user_stats(self, user_id: str) -> UserStats:
        await require_admin(self.identity)
        projects, posts, comments, likes = await asyncio.gather(
            self.gateway.count(ProjectRow, Filters.where(author_id=user_id)),
            self.gateway.count(PostRow, Filters.where(author_id=user_id)),
            self.gateway.count(CommentRow, Filters.where(user_id=user_id)),
            self.gateway.count(LikeRow, Filters.where(user_id=user_id)),
        )
        return {"projects": projects, "posts": posts, "comments": comments, "likes_given": likes}

    # =========================================================================
    # Posts
    # =========================================================================

    async def list_posts(self, query: dict[str, Any] | PostListQuery | None = None) -> Page[dict]:
        """Posts of every status, newest first, without their content."""
        await require_admin(self.identity)
        q = validate(PostListQuery, query or {})
        filters = Filters()
        if q.status != "all":
            filters.eq["status"] = q.status
        if q.search:
            filters.search = (("title", "excerpt"), q.search)

        posts, total = await self._page(PostRow, filters, q.page, q.offset, "created_at")
        authors = await load_authors(self.gateway, [p.author_id for p in posts])
        items = []
        for post in posts:
            row = post.model_dump(exclude={"content"})
            row["author"] = authors.get(post.author_id)
            items.append(row)
        return {"items": items, "total": total, "page": q.page, "page_size": PAGE_SIZE}

    @server_action("admin_update_post")
    async def update_post(self, post_id: str, changes: dict[str, Any] | PostUpdate) -> dict:
        admin = await require_admin(self.identity)
        update = validate(PostUpdate, changes)
        post = await self.gateway.get(PostRow, post_id)
        if post is None:
            raise NotFoundError("Post not found")
        await apply_post_update(self.gateway, post, update, admin)
        return {"post_id": post_id, "slug": post.slug}

    @server_action("admin_delete_post")
    async def delete_post(self, post_id: str) -> dict:
        await require_admin(self.identity)
        await delete_post_cascade(self.gateway, post_id)
        return {"post_id": post_id}

    @server_action("toggle_post_featured")
    async def toggle_post_featured(self, post_id: str, featured: Optional[bool] = None) -> dict:
        await require_admin(self.identity)
        post = await self.gateway.get(PostRow, post_id)
        if post is None:
            raise NotFoundError("Post not found")
        value = (not post.featured) if featured is None else featured
        await self.gateway.update(PostRow, Filters.where(id=post_id), {"featured": value, "updated_at": utc_now_iso()})
        return {"post_id": post_id, "featured": value}

    # =========================================================================
    # Tags
    # =========================================================================

    async def list_tags(self) -> list[TagRow]:
        await require_admin(self.identity)
        return list(await self.gateway.select(TagRow, order_by="name"))

    @server_action("create_tag")
    async def create_tag(self, name: str) -> dict:
        await require_admin(self.identity)
        tag = validate(TagName, {"name": name})
        slug = slugify_tag(tag.name)
        if not slug:
            raise InputValidationError("Validation failed: name: Tag name must contain letters or digits")
        try:
            row = await self.gateway.insert(TagRow(name=tag.name, slug=slug))
        except UniqueViolationError as exc:
            raise InputValidationError("Tag already exists") from exc
        return {"tag_id": row.id, "slug": row.slug}

    @server_action("delete_tag")
    async def delete_tag(self, tag_id: str) -> dict:
        await require_admin(self.identity)
        await self.gateway.delete(PostTagLink, Filters.where(tag_id=tag_id))
        if not await self.gateway.delete(TagRow, Filters.where(id=tag_id)):
            raise NotFoundError("Tag not found")
        return {"tag_id": tag_id}

    # =========================================================================
    # Comment Reports
    # =========================================================================

    async def list_reports(self, query: dict[str, Any] | ReportListQuery | None = None) -> Page[dict]:
        """Comment reports newest first, each with its comment and reporter."""
        await require_admin(self.identity)
        q = validate(ReportListQuery, query or {})
        filters = Filters()
        if q.status != "all":
            filters.eq["status"] = q.status

        reports, total = await self._page(CommentReportRow, filters, q.page, q.offset, "created_at")
        comment_ids = [r.comment_id for r in reports]
        comments = (
            {c.id: c for c in await self.gateway.select(CommentRow, Filters(in_={"id": comment_ids}))}
            if comment_ids
            else {}
        )
        users = await load_authors(
            self.gateway,
            [r.reporter_id for r in reports] + [c.user_id for c in comments.values()],
        )

        items = []
        for report in reports:
            row = report.model_dump()
            comment = comments.get(report.comment_id)
            row["comment"] = normalize_comment(comment, users.get(comment.user_id)) if comment else None
            row["entity_kind"] = (
                (EntityKind.PROJECT if comment.project_id else EntityKind.POST).value if comment else None
            )
            row["entity_id"] = (comment.project_id or comment.post_id) if comment else None
            row["reporter"] = users.get(report.reporter_id)
            items.append(row)
        return {"items": items, "total": total, "page": q.page, "page_size": PAGE_SIZE}

    @server_action("admin_delete_comment")
    async def delete_comment(self, comment_id: str) -> dict:
        """Delete a comment together with all reports against it."""
        await require_admin(self.identity)
        await self._delete_comment(comment_id)
        return {"comment_id": comment_id}

    async def _delete_comment(self, comment_id: str) -> None:
        await self.gateway.delete(CommentReportRow, Filters.where(comment_id=comment_id))
        if not await self.gateway.delete(CommentRow, Filters.where(id=comment_id)):
            raise StoreError("Comment could not be deleted")
        logger.info(f"🗑️ Comment {comment_id} deleted by admin")

    @server_action("dismiss_report")
    async def dismiss_report(self, report_id: str) -> dict:
        admin = await require_admin(self.identity)
        await self._review(report_id, ReportStatus.DISMISSED, admin.id)
        return {"report_id": report_id, "status": ReportStatus.DISMISSED.value}

    @server_action("take_action_on_report")
    async def take_action_on_report(self, report_id: str, action: ReportAction) -> dict:
        """Resolve a report.

        ``delete`` removes the comment and, with it, every report against
        it. ``warn`` marks the report reviewed. ``dismiss`` dismisses it.
        """
        admin = await require_admin(self.identity)
        if action not in ("delete", "dismiss", "warn"):
            raise InputValidationError(f"Unknown action: {action}")
        report = await self.gateway.get(CommentReportRow, report_id)
        if report is None:
            raise NotFoundError("Report not found")

        if action == "delete":
            await self._delete_comment(report.comment_id)
            return {"report_id": report_id, "action": action}
        status = ReportStatus.DISMISSED if action == "dismiss" else ReportStatus.REVIEWED
        await self._review(report_id, status, admin.id)
        return {"report_id": report_id, "action": action, "status": status.value}

    async def _review(self, report_id: str, status: ReportStatus, admin_id: str) -> None:
        updated = await self.gateway.update(
            CommentReportRow,
            Filters.where(id=report_id),
            {"status": status.value, "reviewed_by": admin_id, "reviewed_at": utc_now_iso()},
        )
        if not updated:
            raise NotFoundError("Report not found")

    async def get_moderation_stats(self) -> ModerationStats:
        await require_admin(self.identity)
        pending, reviewed, dismissed = await asyncio.gather(
            *(
                self.gateway.count(CommentReportRow, Filters.where(status=status.value))
                for status in (ReportStatus.PENDING, ReportStatus.REVIEWED, ReportStatus.DISMISSED)
            )
        )
        return {
            "pending": pending,
            "reviewed": reviewed,
            "dismissed": dismissed,
            "total": pending + reviewed + dismissed,
        }


__all__ = ["AdminService", "day_end_iso"]
