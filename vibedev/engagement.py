"""Batched engagement counts.

Per-row counts for listings are computed with one "in" query per
engagement table instead of one count query per row.
"""

from collections.abc import Sequence

from sqlmodel import SQLModel

from vibedev.config import EntityKind
from vibedev.interfaces import DataGateway
from vibedev.models import CommentRow, LikeRow, ViewRow
from vibedev.outcome import gather_outcomes
from vibedev.repository import Filters
from vibedev.utils import unique_preserving_order


async def count_by_entity(
    gateway: DataGateway,
    model: type[SQLModel],
    kind: EntityKind,
    entity_ids: Sequence[str],
) -> dict[str, int]:
    """Count rows of ``model`` per entity with a single query.

    Args:
        gateway: Data gateway
        model: LikeRow, ViewRow or CommentRow
        kind: Entity kind selecting the foreign-key column
        entity_ids: Entities to count for (duplicates ignored)

    Returns:
        Mapping of every requested id to its count (0 when absent)
    """
    return await count_by_column(gateway, model, kind.column, entity_ids)


async def count_by_column(
    gateway: DataGateway,
    model: type[SQLModel],
    column: str,
    values: Sequence[str],
) -> dict[str, int]:
    """Count rows of ``model`` per value of ``column`` with a single query."""
    keys = unique_preserving_order(list(values))
    if not keys:
        return {}
    rows = await gateway.select(model, Filters(in_={column: keys}))
    counts = dict.fromkeys(keys, 0)
    for row in rows:
        counts[getattr(row, column)] += 1
    return counts


async def engagement_counts(
    gateway: DataGateway,
    kind: EntityKind,
    entity_ids: Sequence[str],
) -> dict[str, dict[str, int]]:
    """Likes, views and comments per entity.

    Each table is queried concurrently; a failing table contributes zeros.

    Returns:
        Mapping id -> ``{"likes_count", "views_count", "comments_count"}``
    """
    ids = unique_preserving_order(list(entity_ids))
    if not ids:
        return {}
    likes, views, comments = await gather_outcomes(
        count_by_entity(gateway, LikeRow, kind, ids),
        count_by_entity(gateway, ViewRow, kind, ids),
        count_by_entity(gateway, CommentRow, kind, ids),
        defaults=({}, {}, {}),
        labels=("likes_count", "views_count", "comments_count"),
    )
    return {
        entity_id: {
            "likes_count": likes.value.get(entity_id, 0),
            "views_count": views.value.get(entity_id, 0),
            "comments_count": comments.value.get(entity_id, 0),
        }
        for entity_id in ids
    }


__all__ = ["count_by_column", "count_by_entity", "engagement_counts"]
