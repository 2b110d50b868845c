"""Profile pages: per-user stats and project lists.

Stats are count-only queries. A user with no projects and no published
posts gets zeros without any engagement queries being issued. Otherwise
likes and views are counted concurrently, and a failing count
contributes zero instead of failing the page.
"""

from typing import Optional

from vibedev.config import EntityKind, PostStatus, settings
from vibedev.engagement import engagement_counts
from vibedev.errors import ProcedureUnavailableError, StoreError
from vibedev.gateway import USER_PROJECTS_WITH_STATS
from vibedev.interfaces import DataGateway
from vibedev.logging import logger
from vibedev.models import LikeRow, PostRow, ProjectRow, UserRow, ViewRow
from vibedev.outcome import gather_outcomes
from vibedev.repository import Filters
from vibedev.types import ProfileStats, ProjectCard

ZERO_STATS: ProfileStats = {"projects": 0, "posts": 0, "likes": 0, "views": 0}


class ProfileService:
    """Reads backing the public profile page.

    Args:
        gateway: Data gateway
    """

    def __init__(self, gateway: DataGateway):
        self.gateway = gateway

    async def get_user(self, username: str) -> Optional[UserRow]:
        try:
            rows = await self.gateway.select(UserRow, Filters.where(username=username), limit=1)
        except StoreError as exc:
            logger.error(f"Error fetching user {username}: {exc}")
            return None
        return rows[0] if rows else None

    async def get_profile_stats(self, username: str) -> ProfileStats:
        """Projects, published posts, likes received and views received.

        Args:
            username: Profile username

        Returns:
            Counts; zeros for unknown users
        """
        user = await self.get_user(username)
        if user is None:
            return dict(ZERO_STATS)

        by_author = Filters.where(author_id=user.id)
        published = Filters.where(author_id=user.id, status=PostStatus.PUBLISHED.value)
        projects, posts = await gather_outcomes(
            self.gateway.count(ProjectRow, by_author),
            self.gateway.count(PostRow, published),
            defaults=(0, 0),
            labels=("projects", "posts"),
        )
        if projects.value == 0 and posts.value == 0:
            return dict(ZERO_STATS)

        project_ids, post_ids = await gather_outcomes(
            self._ids(ProjectRow, by_author, projects.value),
            self._ids(PostRow, published, posts.value),
            defaults=([], []),
            labels=("project_ids", "post_ids"),
        )

        likes, project_views, post_views = await gather_outcomes(
            self._count_in(LikeRow, EntityKind.PROJECT, project_ids.value),
            self._count_in(ViewRow, EntityKind.PROJECT, project_ids.value),
            self._count_in(ViewRow, EntityKind.POST, post_ids.value),
            defaults=(0, 0, 0),
            labels=("likes", "project_views", "post_views"),
        )
        return {
            "projects": projects.value,
            "posts": posts.value,
            "likes": likes.value,
            "views": project_views.value + post_views.value,
        }

    async def _ids(self, model, filters: Filters, expected: int) -> list[str]:
        if not expected:
            return []
        return [row.id for row in await self.gateway.select(model, filters)]

    async def _count_in(self, model, kind: EntityKind, ids: list[str]) -> int:
        if not ids:
            return 0
        return await self.gateway.count(model, Filters(in_={kind.column: ids}))

    async def get_user_projects(self, username: str, limit: Optional[int] = None) -> list[ProjectCard]:
        """Latest projects of a user with like, view and comment counts.

        Uses the stats stored procedure when installed, otherwise falls back
        to a user lookup, a project query and batched count queries.
        """
        limit = limit or settings.profile_projects_limit
        try:
            return await self.gateway.call_procedure(
                USER_PROJECTS_WITH_STATS, username=username, limit=limit
            )
        except ProcedureUnavailableError as exc:
            logger.warning(f"Stats procedure not available, falling back to regular queries: {exc}")
        except StoreError as exc:
            logger.warning(f"Stats procedure failed, falling back to regular queries: {exc}")
        return await self._user_projects_fallback(username, limit)

    async def _user_projects_fallback(self, username: str, limit: int) -> list[ProjectCard]:
        user = await self.get_user(username)
        if user is None:
            return []
        try:
            projects = await self.gateway.select(
                ProjectRow,
                Filters.where(author_id=user.id),
                order_by="created_at",
                descending=True,
                limit=limit,
            )
        except StoreError as exc:
            logger.error(f"Error fetching projects for {username}: {exc}")
            return []
        if not projects:
            return []

        counts = await engagement_counts(self.gateway, EntityKind.PROJECT, [p.id for p in projects])
        cards: list[ProjectCard] = []
        for project in projects:
            card = project.model_dump()
            card.update(counts.get(project.id, {"likes_count": 0, "views_count": 0, "comments_count": 0}))
            cards.append(card)
        return cards


__all__ = ["ProfileService", "ZERO_STATS"]
