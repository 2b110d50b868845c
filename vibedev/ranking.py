"""Project listing order.

``newest`` orders by creation time. ``top`` and ``trending`` both order by
like count with the newer project first on ties; trending has no recency
decay.
"""

from collections.abc import Iterable
from typing import Any

from vibedev.config import SortMode


def parse_sort_mode(value: SortMode | str | None) -> SortMode:
    """Coerce a query-string value into a SortMode, defaulting to newest."""
    try:
        return SortMode(value)
    except ValueError:
        return SortMode.NEWEST


def _by_likes(project: dict[str, Any]) -> tuple[int, str]:
    return project.get("likes_count") or 0, project.get("created_at") or ""


def _by_created(project: dict[str, Any]) -> str:
    return project.get("created_at") or ""


def sort_projects(projects: Iterable[dict[str, Any]], mode: SortMode | str) -> list[dict[str, Any]]:
    """Return projects ordered for a listing.

    Args:
        projects: Project dictionaries carrying ``created_at`` (ISO8601)
            and, for like-based modes, ``likes_count``
        mode: newest, top or trending

    Returns:
        New list in display order; the input is not modified

    Example:
        >>> sort_projects([{"created_at": "2024-01-01", "likes_count": 1},
        ...                {"created_at": "2024-01-02", "likes_count": 1}], "top")[0]["created_at"]
        '2024-01-02'
    """
    mode = parse_sort_mode(mode)
    if mode == SortMode.NEWEST:
        return sorted(projects, key=_by_created, reverse=True)
    return sorted(projects, key=_by_likes, reverse=True)


__all__ = ["parse_sort_mode", "sort_projects"]
