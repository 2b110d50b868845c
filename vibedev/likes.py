"""Like toggling and like status.

A user likes an entity at most once; the store's (entity, user) unique
constraint enforces this. Toggling reads the current state and then
deletes or inserts. When a concurrent toggle inserted first, the unique
violation on our insert means the entity is already liked, which is the
state the caller asked for.
"""

from collections.abc import Sequence
from typing import Optional

from vibedev.config import EntityKind
from vibedev.errors import StoreError, UniqueViolationError, server_action
from vibedev.identity import require_user
from vibedev.interfaces import DataGateway, IdentityProvider
from vibedev.logging import entity_context, logger
from vibedev.metrics import batch_size, like_toggles_total
from vibedev.models import LikeRow, entity_fields
from vibedev.outcome import gather_outcomes
from vibedev.repository import Filters
from vibedev.types import LikeStatus
from vibedev.utils import unique_preserving_order

LIKE_LOGIN_REQUIRED = "You must be logged in to like"


class LikeService:
    """Like toggle and like status lookups.

    Args:
        gateway: Data gateway
        identity: Identity provider for the caller
    """

    def __init__(self, gateway: DataGateway, identity: IdentityProvider):
        self.gateway = gateway
        self.identity = identity

    @server_action("toggle_like")
    async def toggle_like(self, entity_id: str, kind: EntityKind = EntityKind.PROJECT) -> dict:
        """Like the entity if not liked by the caller, otherwise unlike it.

        Returns:
            ActionResult with ``data["is_liked"]`` holding the new state
        """
        kind = EntityKind(kind)
        user = await require_user(self.identity, LIKE_LOGIN_REQUIRED)
        key = Filters.where(**entity_fields(kind, entity_id), user_id=user.id)

        with entity_context(kind, entity_id):
            try:
                existing = await self.gateway.select(LikeRow, key, limit=1)
                if existing:
                    await self.gateway.delete(LikeRow, key)
                    is_liked = False
                else:
                    try:
                        await self.gateway.insert(
                            LikeRow(**entity_fields(kind, entity_id), user_id=user.id)
                        )
                    except UniqueViolationError:
                        logger.debug(f"Like for {kind.value} {entity_id} already present")
                    is_liked = True
            except StoreError as exc:
                raise StoreError("Failed to toggle like") from exc

            like_toggles_total.labels(kind=kind.value, state="liked" if is_liked else "unliked").inc()
            logger.info(f"{kind.value} {entity_id} {'liked' if is_liked else 'unliked'} by {user.id}")
        return {"is_liked": is_liked}

    async def get_like_status(self, entity_id: str, kind: EntityKind = EntityKind.PROJECT) -> LikeStatus:
        """Total likes and the caller's own like state for one entity.

        A failing lookup reports zero likes or not-liked.
        """
        kind = EntityKind(kind)
        user = await self.identity.current_user()
        fields = entity_fields(kind, entity_id)

        async def caller_liked() -> bool:
            if user is None:
                return False
            return await self.gateway.count(LikeRow, Filters.where(**fields, user_id=user.id)) > 0

        total, liked = await gather_outcomes(
            self.gateway.count(LikeRow, Filters.where(**fields)),
            caller_liked(),
            defaults=(0, False),
            labels=("total_likes", "is_liked"),
        )
        return {"total_likes": total.value, "is_liked": liked.value}

    async def get_batch_like_status(
        self, entity_ids: Sequence[str], kind: EntityKind = EntityKind.PROJECT
    ) -> dict[str, LikeStatus]:
        """Like status for many entities with a single query.

        Args:
            entity_ids: Entities to look up; duplicates are counted once
            kind: Entity kind

        Returns:
            Mapping id -> LikeStatus for every requested id; zero-filled
            when the store fails, empty for empty input
        """
        kind = EntityKind(kind)
        ids = unique_preserving_order(list(entity_ids))
        if not ids:
            return {}

        batch_size.labels(operation="batch_like_status").observe(len(ids))
        result: dict[str, LikeStatus] = {i: {"total_likes": 0, "is_liked": False} for i in ids}

        try:
            user = await self.identity.current_user()
            rows = await self.gateway.select(LikeRow, Filters(in_={kind.column: ids}))
        except StoreError as exc:
            logger.error(f"Error fetching batch like status: {exc}")
            return result

        user_id: Optional[str] = user.id if user is not None else None
        for row in rows:
            status = result[getattr(row, kind.column)]
            status["total_likes"] += 1
            if user_id is not None and row.user_id == user_id:
                status["is_liked"] = True
        return result

    async def count_likes(self, entity_id: str, kind: EntityKind = EntityKind.PROJECT) -> int:
        return await self.gateway.count(LikeRow, Filters.where(**entity_fields(EntityKind(kind), entity_id)))


__all__ = ["LikeService", "LIKE_LOGIN_REQUIRED"]
