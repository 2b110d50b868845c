"""Author summaries embedded in project cards, posts and comments."""

from collections.abc import Sequence
from typing import Optional

from vibedev.interfaces import DataGateway
from vibedev.models import UserRow
from vibedev.repository import Filters
from vibedev.types import AuthorData
from vibedev.utils import unique_preserving_order


def author_summary(user: Optional[UserRow]) -> Optional[AuthorData]:
    if user is None:
        return None
    return {
        "id": user.id,
        "username": user.username,
        "display_name": user.name,
        "avatar_url": user.avatar_url,
        "role": user.role,
    }


async def load_authors(gateway: DataGateway, user_ids: Sequence[Optional[str]]) -> dict[str, AuthorData]:
    """Fetch author summaries for the given user ids in one query."""
    ids = unique_preserving_order([i for i in user_ids if i])
    if not ids:
        return {}
    users = await gateway.select(UserRow, Filters(in_={"id": ids}))
    return {user.id: author_summary(user) for user in users}


__all__ = ["author_summary", "load_authors"]
