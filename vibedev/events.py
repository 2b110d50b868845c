"""Community event calendar.

Any signed-in user may submit an event; it stays pending until an admin
approves it. Rejected submissions are deleted.
"""

from typing import Any, Optional

from vibedev.config import EventStatus
from vibedev.errors import InputValidationError, StoreError, server_action
from vibedev.identity import require_admin, require_user
from vibedev.interfaces import DataGateway, IdentityProvider
from vibedev.logging import logger
from vibedev.models import EventRow
from vibedev.repository import Filters
from vibedev.schemas import EventForm, validate
from vibedev.slug import insert_with_unique_slug, is_valid_slug, slugify_title
from vibedev.utils import format_iso, utc_now_iso


class EventService:
    """Event submission, approval and listing.

    Args:
        gateway: Data gateway
        identity: Identity provider for the caller
    """

    def __init__(self, gateway: DataGateway, identity: IdentityProvider):
        self.gateway = gateway
        self.identity = identity

    @server_action("submit_event")
    async def submit_event(self, form: dict[str, Any] | EventForm) -> dict:
        """Submit an event for review.

        A supplied slug must be well formed and is used as given; otherwise
        one is derived from the event name.
        """
        data = validate(EventForm, form)
        user = await require_user(self.identity, "You must be logged in to submit an event")
        if data.slug is not None and not is_valid_slug(data.slug):
            raise InputValidationError("Validation failed: slug: Invalid slug format")

        def build(slug: str) -> EventRow:
            return EventRow(
                slug=slug,
                name=data.name,
                description=data.description,
                category=data.category,
                location=data.location,
                starts_at=format_iso(data.starts_at),
                ends_at=format_iso(data.ends_at),
                url=data.url,
                cover_image=data.cover_image,
                submitted_by=user.id,
            )

        try:
            if data.slug is not None:
                event = await self.gateway.insert(build(data.slug))
            else:
                base = slugify_title(data.name, fallback="event")
                event = await insert_with_unique_slug(self.gateway, base, build, model=EventRow)
        except StoreError as exc:
            logger.error(f"Error submitting event {data.name}: {exc}")
            raise StoreError("Failed to submit event") from exc
        logger.info(f"📅 Event {event.slug} submitted by {user.username}")
        return {"event_id": event.id, "slug": event.slug}

    async def get_events(
        self,
        category: Optional[str] = None,
        upcoming: bool = False,
        sort: str = "nearest",
    ) -> list[EventRow]:
        """Approved events.

        Args:
            category: Category filter; ``None`` or ``"all"`` for every category
            upcoming: Only events starting now or later
            sort: ``nearest`` (start ascending) or ``latest`` (newest submissions)
        """
        filters = Filters.where(status=EventStatus.APPROVED.value)
        if category and category != "all":
            filters.eq["category"] = category
        if upcoming:
            filters.gte["starts_at"] = utc_now_iso()
        latest = sort == "latest"
        try:
            return list(
                await self.gateway.select(
                    EventRow,
                    filters,
                    order_by="created_at" if latest else "starts_at",
                    descending=latest,
                )
            )
        except StoreError as exc:
            logger.error(f"Error fetching events: {exc}")
            return []

    async def get_event_by_slug(self, slug: str) -> Optional[EventRow]:
        if not slug or not slug.strip():
            return None
        slug = slug.strip().lower()
        if len(slug) > 200:
            return None
        rows = await self.gateway.select(EventRow, Filters.where(slug=slug), limit=1)
        return rows[0] if rows else None

    async def get_related_events(self, category: str, exclude_id: str, limit: int = 3) -> list[EventRow]:
        """Other approved events in the same category."""
        rows = await self.gateway.select(
            EventRow,
            Filters.where(category=category, status=EventStatus.APPROVED.value),
            order_by="starts_at",
        )
        return [row for row in rows if row.id != exclude_id][:limit]

    # =========================================================================
    # Admin review
    # =========================================================================

    async def get_pending_events(self) -> list[EventRow]:
        """Events awaiting approval, newest submissions first."""
        await require_admin(self.identity)
        return list(
            await self.gateway.select(
                EventRow,
                Filters.where(status=EventStatus.PENDING.value),
                order_by="created_at",
                descending=True,
            )
        )

    @server_action("approve_event")
    async def approve_event(self, event_id: str) -> dict:
        admin = await require_admin(self.identity)
        if not event_id:
            raise InputValidationError("Invalid event ID")
        try:
            updated = await self.gateway.update(
                EventRow,
                Filters.where(id=event_id),
                {"status": EventStatus.APPROVED.value, "reviewed_by": admin.id},
            )
        except StoreError as exc:
            raise StoreError("Failed to approve event") from exc
        if not updated:
            raise StoreError("Event could not be approved")
        logger.info(f"✅ Event {event_id} approved by {admin.username}")
        return {"event_id": event_id}

    @server_action("reject_event")
    async def reject_event(self, event_id: str) -> dict:
        admin = await require_admin(self.identity)
        if not event_id:
            raise InputValidationError("Invalid event ID")
        try:
            deleted = await self.gateway.delete(EventRow, Filters.where(id=event_id))
        except StoreError as exc:
            raise StoreError("Failed to reject event") from exc
        if not deleted:
            raise StoreError("Event could not be rejected")
        logger.info(f"🗑️ Event {event_id} rejected by {admin.username}")
        return {"event_id": event_id}


__all__ = ["EventService"]
