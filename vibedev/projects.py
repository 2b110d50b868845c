"""Showcase projects.

Creating, editing, deleting and reading projects, plus the sorted
listings used by the home page. Deletion removes dependent comments
(and their reports), likes and views before the project row; these are
independent statements, so a failure part-way leaves the earlier
deletions applied.
"""

import asyncio
from typing import Any, Optional

from vibedev.authors import author_summary, load_authors
from vibedev.categories import CategoryService
from vibedev.config import EntityKind, SortMode, settings
from vibedev.engagement import engagement_counts
from vibedev.errors import AuthorizationError, InputValidationError, NotFoundError, StoreError, server_action
from vibedev.identity import CurrentUser, require_user
from vibedev.interfaces import DataGateway, IdentityProvider
from vibedev.likes import LikeService
from vibedev.logging import logger
from vibedev.models import CommentReportRow, CommentRow, LikeRow, ProjectRow, UserRow, ViewRow
from vibedev.outcome import gather_outcomes
from vibedev.ranking import parse_sort_mode, sort_projects
from vibedev.repository import Filters
from vibedev.schemas import ProjectForm, ProjectUpdate, validate
from vibedev.slug import get_id_by_slug, insert_with_unique_slug, slugify_title
from vibedev.types import ProjectCard
from vibedev.utils import utc_now_iso
from vibedev.views import ViewCounter


async def delete_project_cascade(gateway: DataGateway, project_id: str) -> None:
    """Delete a project after its comments, reports, likes and views.

    Raises:
        NotFoundError: If the project does not exist
        StoreError: If a cleanup step or the final delete fails
    """
    if await gateway.get(ProjectRow, project_id) is None:
        raise NotFoundError("Project not found")

    by_project = Filters.where(project_id=project_id)
    comment_ids = [c.id for c in await gateway.select(CommentRow, by_project)]
    if comment_ids:
        await gateway.delete(CommentReportRow, Filters(in_={"comment_id": comment_ids}))

    results = await asyncio.gather(
        gateway.delete(CommentRow, by_project),
        gateway.delete(LikeRow, by_project),
        gateway.delete(ViewRow, by_project),
        return_exceptions=True,
    )
    for label, result in zip(("comments", "likes", "views"), results):
        if isinstance(result, BaseException):
            logger.error(f"Failed to delete {label} of project {project_id}: {result}")
            raise StoreError(f"Failed to delete project {label}") from result
        logger.debug(f"Deleted {result} {label} of project {project_id}")

    deleted = await gateway.delete(ProjectRow, Filters.where(id=project_id))
    if not deleted:
        raise StoreError("Project could not be deleted")
    logger.info(f"🗑️ Project {project_id} deleted")


def project_card(project: ProjectRow, counts: dict[str, int] | None = None, author: Any = None) -> ProjectCard:
    card = project.model_dump()
    card.update({"likes_count": 0, "views_count": 0, "comments_count": 0})
    card.update(counts or {})
    card["author"] = author
    return card


class ProjectService:
    """Project actions and reads.

    Args:
        gateway: Data gateway
        identity: Identity provider for the caller
        categories: Category service used to validate categories
        views: View counter used for view tracking
        likes: Like service used for listing like counts
    """

    def __init__(
        self,
        gateway: DataGateway,
        identity: IdentityProvider,
        categories: CategoryService,
        views: ViewCounter,
        likes: LikeService,
    ):
        self.gateway = gateway
        self.identity = identity
        self.categories = categories
        self.views = views
        self.likes = likes

    async def _owned_project(self, project_id: str) -> tuple[ProjectRow, CurrentUser]:
        user = await require_user(self.identity)
        project = await self.gateway.get(ProjectRow, project_id)
        if project is None:
            raise NotFoundError("Project not found")
        if project.author_id != user.id and not user.is_admin:
            raise AuthorizationError("Not authorized")
        return project, user

    # =========================================================================
    # Mutations
    # =========================================================================

    @server_action("create_project")
    async def create_project(self, form: dict[str, Any] | ProjectForm) -> dict:
        """Create a project under a unique slug.

        Returns:
            ActionResult with ``project_id`` and ``slug``
        """
        data = validate(ProjectForm, form)
        user = await require_user(self.identity, "You must be logged in to submit a project")
        if not await self.categories.is_valid_category(data.category):
            raise InputValidationError("Invalid category")

        def build(slug: str) -> ProjectRow:
            return ProjectRow(slug=slug, author_id=user.id, **data.model_dump())

        project = await insert_with_unique_slug(self.gateway, slugify_title(data.title), build)
        logger.info(f"✅ Project {project.slug} created by {user.username}")
        return {"project_id": project.id, "slug": project.slug}

    @server_action("update_project")
    async def update_project(self, project_id: str, changes: dict[str, Any] | ProjectUpdate) -> dict:
        """Update an owned project. The slug never changes."""
        update = validate(ProjectUpdate, changes)
        project, user = await self._owned_project(project_id)
        values = update.changes()
        if "is_featured" in values and not user.is_admin:
            raise AuthorizationError("Only admins can feature projects")
        if "category" in values and not await self.categories.is_valid_category(values["category"]):
            raise InputValidationError("Invalid category")

        for key, value in values.items():
            setattr(project, key, value)
        project.updated_at = utc_now_iso()
        await self.gateway.save(project)
        return {"project_id": project.id, "slug": project.slug}

    @server_action("delete_project")
    async def delete_project(self, project_id: str) -> dict:
        """Delete an owned project together with its engagement rows."""
        await self._owned_project(project_id)
        await delete_project_cascade(self.gateway, project_id)
        return {"project_id": project_id}

    # =========================================================================
    # Reads
    # =========================================================================

    async def get_project_id_by_slug(self, slug: str) -> Optional[str]:
        return await get_id_by_slug(self.gateway, slug, ProjectRow)

    async def get_project(self, id_or_slug: str) -> Optional[ProjectCard]:
        """Project with author and engagement counts, by id or slug."""
        project = await self.gateway.get(ProjectRow, id_or_slug)
        if project is None:
            project_id = await self.get_project_id_by_slug(id_or_slug)
            if project_id is None:
                return None
            project = await self.gateway.get(ProjectRow, project_id)
            if project is None:
                return None

        author, counts = await gather_outcomes(
            self.gateway.get(UserRow, project.author_id),
            engagement_counts(self.gateway, EntityKind.PROJECT, [project.id]),
            defaults=(None, {}),
            labels=("author", "counts"),
        )
        return project_card(project, counts.value.get(project.id), author_summary(author.value))

    async def fetch_projects_with_sorting(
        self,
        sort: SortMode | str = SortMode.NEWEST,
        category: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[ProjectCard]:
        """Latest projects, optionally by category, in listing order.

        The newest ``limit`` projects are fetched, then reordered in memory
        by the requested mode.
        """
        mode = parse_sort_mode(sort)
        limit = limit or settings.trending_fetch_limit
        filters = Filters()
        if category and category != "all":
            filters.eq["category"] = category

        try:
            projects = await self.gateway.select(
                ProjectRow, filters, order_by="created_at", descending=True, limit=limit
            )
        except StoreError as exc:
            logger.error(f"Error fetching projects: {exc}")
            return []

        ids = [p.id for p in projects]
        like_status, authors = await gather_outcomes(
            self.likes.get_batch_like_status(ids, EntityKind.PROJECT),
            load_authors(self.gateway, [p.author_id for p in projects]),
            defaults=({}, {}),
            labels=("likes", "authors"),
        )
        cards = [
            project_card(
                p,
                {"likes_count": like_status.value.get(p.id, {}).get("total_likes", 0)},
                authors.value.get(p.author_id),
            )
            for p in projects
        ]
        return sort_projects(cards, mode)

    def track_view(self, project_id: str, session_id: Optional[str] = None, user_id: Optional[str] = None):
        """Record a project view in the background."""
        return self.views.track_view(EntityKind.PROJECT, project_id, session_id, user_id)


__all__ = ["ProjectService", "delete_project_cascade", "project_card"]
