"""Deduplicated view counter.

A view is recorded at most once per (entity, session, UTC day). The
store's unique constraint does the deduplication: a rejected insert means
the view was already counted and is treated as success. View recording
never fails the caller; store errors are logged and counted.
"""

import asyncio
from typing import Optional

from vibedev.config import EntityKind
from vibedev.errors import StoreError, UniqueViolationError
from vibedev.interfaces import DataGateway
from vibedev.logging import entity_context, logger
from vibedev.metrics import views_recorded_total
from vibedev.models import ViewRow, entity_fields
from vibedev.repository import Filters
from vibedev.tasks import spawn
from vibedev.utils import today_utc


class ViewCounter:
    """Records and counts views.

    Args:
        gateway: Data gateway
    """

    def __init__(self, gateway: DataGateway):
        self.gateway = gateway

    async def record_view(
        self,
        kind: EntityKind,
        entity_id: str,
        session_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> None:
        """Record one view for today.

        Views without a session are always inserted.

        Args:
            kind: Entity kind
            entity_id: Viewed project or post
            session_id: Client session identifier
            user_id: Signed-in viewer, if any
        """
        kind = EntityKind(kind)
        row = ViewRow(
            **entity_fields(kind, entity_id),
            session_id=session_id,
            user_id=user_id,
            view_date=today_utc(),
        )
        with entity_context(kind, entity_id):
            try:
                await self.gateway.insert(row)
            except UniqueViolationError:
                views_recorded_total.labels(kind=kind.value, outcome="duplicate").inc()
                logger.debug(f"View already recorded today for {kind.value} {entity_id}")
                return
            except StoreError as exc:
                views_recorded_total.labels(kind=kind.value, outcome="error").inc()
                logger.error(f"Error recording view for {kind.value} {entity_id}: {exc}")
                return
        views_recorded_total.labels(kind=kind.value, outcome="recorded").inc()

    def track_view(
        self,
        kind: EntityKind,
        entity_id: str,
        session_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> asyncio.Task[None]:
        """Record a view in a detached task without waiting for it."""
        return spawn(
            self.record_view(kind, entity_id, session_id, user_id),
            name=f"record_view:{EntityKind(kind).value}",
        )

    async def count_views(self, kind: EntityKind, entity_id: str) -> int:
        """Total views recorded for one entity."""
        return await self.gateway.count(ViewRow, Filters.where(**entity_fields(EntityKind(kind), entity_id)))


__all__ = ["ViewCounter"]
