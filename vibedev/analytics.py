"""Platform analytics for the admin dashboard.

All reads are count queries or small scans run concurrently. "Today"
means the current UTC calendar day.
"""

from collections import Counter
from datetime import date, timedelta
from typing import Optional

from vibedev.authors import load_authors
from vibedev.config import EntityKind, PostStatus, settings
from vibedev.engagement import count_by_entity
from vibedev.identity import require_admin
from vibedev.interfaces import DataGateway, IdentityProvider
from vibedev.models import CommentRow, LikeRow, PostRow, ProjectRow, UserRow, ViewRow
from vibedev.outcome import gather_outcomes
from vibedev.repository import Filters
from vibedev.types import PlatformStats, TimeSeriesPoint, TrendingItem
from vibedev.utils import day_start_iso, today_utc, utc_now

UNKNOWN_AUTHOR = "Unknown"


class AnalyticsService:
    """Admin-only platform analytics.

    Args:
        gateway: Data gateway
        identity: Identity provider; must resolve to an admin
    """

    def __init__(self, gateway: DataGateway, identity: IdentityProvider):
        self.gateway = gateway
        self.identity = identity

    async def get_platform_stats(self) -> PlatformStats:
        """Totals and today's activity; a failed count reports zero."""
        await require_admin(self.identity)
        today = today_utc()
        since = day_start_iso(utc_now().date())
        count = self.gateway.count

        outcomes = await gather_outcomes(
            count(UserRow),
            count(ProjectRow),
            count(PostRow),
            count(CommentRow),
            count(ViewRow),
            count(LikeRow),
            count(UserRow, Filters(gte={"joined_at": since})),
            count(ProjectRow, Filters(gte={"created_at": since})),
            count(PostRow, Filters(gte={"created_at": since})),
            count(ViewRow, Filters.where(view_date=today)),
            defaults=(0,) * 10,
        )
        keys = (
            "total_users",
            "total_projects",
            "total_posts",
            "total_comments",
            "total_views",
            "total_likes",
            "new_users_today",
            "new_projects_today",
            "new_posts_today",
            "views_today",
        )
        return dict(zip(keys, (o.value for o in outcomes)))

    async def get_most_viewed_projects(self, limit: int = 10) -> list[TrendingItem]:
        """Most viewed among the most recent projects.

        Only the latest ``settings.most_viewed_scan_limit`` projects are
        considered.
        """
        await require_admin(self.identity)
        projects = await self.gateway.select(
            ProjectRow, order_by="created_at", descending=True, limit=settings.most_viewed_scan_limit
        )
        return await self._ranked(EntityKind.PROJECT, projects, limit)

    async def get_most_viewed_posts(self, limit: int = 10) -> list[TrendingItem]:
        """Most viewed among the most recently published posts."""
        await require_admin(self.identity)
        posts = await self.gateway.select(
            PostRow,
            Filters.where(status=PostStatus.PUBLISHED.value),
            order_by="published_at",
            descending=True,
            limit=settings.most_viewed_scan_limit,
        )
        return await self._ranked(EntityKind.POST, posts, limit)

    async def _ranked(self, kind: EntityKind, rows, limit: int) -> list[TrendingItem]:
        if not rows:
            return []
        ids = [row.id for row in rows]
        views, likes, authors = await gather_outcomes(
            count_by_entity(self.gateway, ViewRow, kind, ids),
            count_by_entity(self.gateway, LikeRow, kind, ids),
            load_authors(self.gateway, [row.author_id for row in rows]),
            defaults=({}, {}, {}),
            labels=("views", "likes", "authors"),
        )
        items: list[TrendingItem] = []
        for row in rows:
            author = authors.value.get(row.author_id)
            items.append(
                {
                    "id": row.id,
                    "title": row.title,
                    "slug": row.slug,
                    "views": views.value.get(row.id, 0),
                    "likes": likes.value.get(row.id, 0),
                    "author": author["display_name"] if author else UNKNOWN_AUTHOR,
                    "created_at": row.created_at,
                }
            )
        items.sort(key=lambda item: item["views"], reverse=True)
        return items[:limit]

    async def get_analytics_time_series(
        self, days: int = 30, end: Optional[str] = None
    ) -> list[TimeSeriesPoint]:
        """Daily views, likes and comments for the last ``days`` days.

        Args:
            days: Window length, ending with ``end`` inclusive
            end: Last day as ``YYYY-MM-DD`` (defaults to today, UTC)

        Returns:
            One point per day, oldest first, zero-filled
        """
        await require_admin(self.identity)
        days = max(days, 1)
        last = utc_now().date() if end is None else date.fromisoformat(end)
        first = last - timedelta(days=days - 1)
        dates = [(first + timedelta(days=i)).isoformat() for i in range(days)]
        since = day_start_iso(first)
        until = day_start_iso(last + timedelta(days=1))

        views, likes, comments = await gather_outcomes(
            self.gateway.select(ViewRow, Filters(gte={"view_date": dates[0]}, lte={"view_date": dates[-1]})),
            self.gateway.select(LikeRow, Filters(gte={"created_at": since})),
            self.gateway.select(CommentRow, Filters(gte={"created_at": since})),
            defaults=([], [], []),
            labels=("views", "likes", "comments"),
        )
        view_days = Counter(v.view_date for v in views.value)
        like_days = Counter(like.created_at[:10] for like in likes.value if like.created_at < until)
        comment_days = Counter(c.created_at[:10] for c in comments.value if c.created_at < until)
        return [
            {"date": day, "views": view_days[day], "likes": like_days[day], "comments": comment_days[day]}
            for day in dates
        ]


__all__ = ["AnalyticsService"]
