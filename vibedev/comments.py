"""Comments on projects and blog posts, and comment reports.

Registered users comment under their account; guests may comment, optionally
under a name they provide. Reports are one per (comment, reporter).
"""

from typing import Optional

from vibedev.authors import load_authors
from vibedev.config import EntityKind
from vibedev.errors import (
    AuthorizationError,
    InputValidationError,
    NotFoundError,
    StoreError,
    UniqueViolationError,
    server_action,
)
from vibedev.identity import ACCOUNT_SUSPENDED, require_user
from vibedev.interfaces import DataGateway, IdentityProvider
from vibedev.logging import logger
from vibedev.models import CommentReportRow, CommentRow, entity_fields
from vibedev.repository import Filters
from vibedev.schemas import CommentForm, validate
from vibedev.types import AuthorData, CommentData

DUPLICATE_REPORT = "You have already reported this comment"


def normalize_comment(comment: CommentRow, author: Optional[AuthorData]) -> CommentData:
    """Comment for display, with a registered, guest or missing author."""
    if author is None and comment.author_name:
        author = {"id": "guest", "display_name": comment.author_name, "avatar_url": None, "role": None}
    return {
        "id": comment.id,
        "content": comment.content,
        "created_at": comment.created_at,
        "is_guest": comment.user_id is None,
        "author": author,
    }


async def delete_comments(gateway: DataGateway, filters: Filters) -> int:
    """Delete matching comments after their reports."""
    comment_ids = [c.id for c in await gateway.select(CommentRow, filters)]
    if not comment_ids:
        return 0
    await gateway.delete(CommentReportRow, Filters(in_={"comment_id": comment_ids}))
    return await gateway.delete(CommentRow, Filters(in_={"id": comment_ids}))


class CommentService:
    """Comment actions and reads.

    Args:
        gateway: Data gateway
        identity: Identity provider for the caller
    """

    def __init__(self, gateway: DataGateway, identity: IdentityProvider):
        self.gateway = gateway
        self.identity = identity

    @server_action("create_comment")
    async def create_comment(
        self,
        kind: EntityKind,
        entity_id: str,
        content: str,
        guest_name: Optional[str] = None,
    ) -> dict:
        """Add a comment as the signed-in user or as a guest."""
        kind = EntityKind(kind)
        if not entity_id or not content:
            raise InputValidationError("Entity ID and content are required")
        form = validate(CommentForm, {"content": content, "guest_name": guest_name})

        user = await self.identity.current_user()
        if user is not None and user.is_suspended:
            raise AuthorizationError(ACCOUNT_SUSPENDED)

        row = CommentRow(
            **entity_fields(kind, entity_id),
            content=form.content,
            user_id=user.id if user else None,
            author_name=None if user else form.guest_name,
        )
        try:
            comment = await self.gateway.insert(row)
        except StoreError as exc:
            raise StoreError("Failed to add comment") from exc
        return {"comment_id": comment.id}

    async def get_comments(self, kind: EntityKind, entity_id: str) -> list[CommentData]:
        """Comments on an entity, newest first. Empty on store failure."""
        kind = EntityKind(kind)
        if not entity_id:
            return []
        try:
            comments = await self.gateway.select(
                CommentRow,
                Filters.where(**entity_fields(kind, entity_id)),
                order_by="created_at",
                descending=True,
            )
            authors = await load_authors(self.gateway, [c.user_id for c in comments])
        except StoreError as exc:
            logger.error(f"Error loading comments for {kind.value} {entity_id}: {exc}")
            return []
        return [normalize_comment(c, authors.get(c.user_id) if c.user_id else None) for c in comments]

    @server_action("report_comment")
    async def report_comment(self, comment_id: str, reason: str) -> dict:
        """Report a comment for moderation, once per user."""
        user = await require_user(self.identity, "You must be logged in to report comments")
        if not comment_id or not reason or not reason.strip():
            raise InputValidationError("Comment ID and reason are required")
        if await self.gateway.get(CommentRow, comment_id) is None:
            raise NotFoundError("Comment not found")

        try:
            report = await self.gateway.insert(
                CommentReportRow(comment_id=comment_id, reporter_id=user.id, reason=reason.strip())
            )
        except UniqueViolationError as exc:
            raise InputValidationError(DUPLICATE_REPORT) from exc
        except StoreError as exc:
            raise StoreError("Failed to report comment") from exc
        return {"report_id": report.id}


__all__ = [
    "CommentService",
    "DUPLICATE_REPORT",
    "delete_comments",
    "normalize_comment",
]
