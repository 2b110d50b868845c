"""Blog posts and their tags.

Posts are published on creation. The slug is chosen once from the title
and stays the same across edits so that shared links keep working.
"""

import asyncio
import json
from typing import Any, Optional

from vibedev.authors import author_summary, load_authors
from vibedev.comments import delete_comments
from vibedev.config import PostStatus
from vibedev.errors import AuthorizationError, NotFoundError, StoreError, UniqueViolationError, server_action
from vibedev.identity import CurrentUser, require_user
from vibedev.interfaces import DataGateway, IdentityProvider
from vibedev.logging import logger
from vibedev.models import LikeRow, PostRow, PostTagLink, TagRow, UserRow, ViewRow
from vibedev.repository import Filters
from vibedev.schemas import PostForm, PostUpdate, validate
from vibedev.slug import insert_with_unique_slug, slugify_tag, slugify_title
from vibedev.utils import extract_text, reading_time_minutes, utc_now_iso

EXCERPT_LENGTH = 160


def post_read_time(content: dict[str, Any]) -> int:
    """Reading time from the serialized document's word count at 200 wpm."""
    return reading_time_minutes(json.dumps(content))


def default_excerpt(content: dict[str, Any]) -> Optional[str]:
    text = extract_text(content).strip()
    if not text:
        return None
    return text if len(text) <= EXCERPT_LENGTH else text[: EXCERPT_LENGTH - 1].rstrip() + "…"


async def get_or_create_tags(gateway: DataGateway, names: list[str]) -> list[TagRow]:
    """Tags for the given names, creating missing ones. Names sharing a slug map to one tag."""
    tags: list[TagRow] = []
    seen: set[str] = set()
    for name in (n.strip() for n in names if n and n.strip()):
        slug = slugify_tag(name)
        if not slug or slug in seen:
            continue
        seen.add(slug)
        existing = await gateway.select(TagRow, Filters.where(slug=slug), limit=1)
        if existing:
            tags.append(existing[0])
            continue
        try:
            tags.append(await gateway.insert(TagRow(name=name, slug=slug)))
        except UniqueViolationError:
            tags.extend(await gateway.select(TagRow, Filters.where(slug=slug), limit=1))
    return tags


async def set_post_tags(gateway: DataGateway, post_id: str, names: list[str]) -> None:
    """Replace the tag links of a post."""
    await gateway.delete(PostTagLink, Filters.where(post_id=post_id))
    for tag in await get_or_create_tags(gateway, names):
        await gateway.insert(PostTagLink(post_id=post_id, tag_id=tag.id))


async def get_post_tags(gateway: DataGateway, post_id: str) -> list[str]:
    links = await gateway.select(PostTagLink, Filters.where(post_id=post_id))
    if not links:
        return []
    tags = await gateway.select(TagRow, Filters(in_={"id": [link.tag_id for link in links]}), order_by="name")
    return [tag.name for tag in tags]


async def delete_post_cascade(gateway: DataGateway, post_id: str) -> None:
    """Delete a post after its comments, likes, views and tag links.

    Raises:
        NotFoundError: If the post does not exist
        StoreError: If a cleanup step or the final delete fails
    """
    if await gateway.get(PostRow, post_id) is None:
        raise NotFoundError("Post not found")

    by_post = Filters.where(post_id=post_id)
    results = await asyncio.gather(
        delete_comments(gateway, by_post),
        gateway.delete(LikeRow, by_post),
        gateway.delete(ViewRow, by_post),
        gateway.delete(PostTagLink, by_post),
        return_exceptions=True,
    )
    for label, result in zip(("comments", "likes", "views", "tag links"), results):
        if isinstance(result, BaseException):
            logger.error(f"Failed to delete {label} of post {post_id}: {result}")
            raise StoreError(f"Failed to delete post {label}") from result

    if not await gateway.delete(PostRow, Filters.where(id=post_id)):
        raise StoreError("Post could not be deleted")
    logger.info(f"🗑️ Post {post_id} deleted")


class PostService:
    """Blog post actions and reads.

    Args:
        gateway: Data gateway
        identity: Identity provider for the caller
    """

    def __init__(self, gateway: DataGateway, identity: IdentityProvider):
        self.gateway = gateway
        self.identity = identity

    async def _load(self, post_id: str) -> PostRow:
        post = await self.gateway.get(PostRow, post_id)
        if post is None:
            raise NotFoundError("Post not found")
        return post

    @server_action("create_post")
    async def create_post(self, form: dict[str, Any] | PostForm) -> dict:
        """Publish a new post.

        Returns:
            ActionResult with ``post_id`` and ``slug``
        """
        user = await require_user(self.identity, "Unauthorized")
        data = validate(PostForm, form)
        now = utc_now_iso()

        def build(slug: str) -> PostRow:
            return PostRow(
                slug=slug,
                title=data.title,
                content=json.dumps(data.content),
                excerpt=data.excerpt or default_excerpt(data.content),
                cover_image=data.cover_image,
                author_id=user.id,
                status=PostStatus.PUBLISHED.value,
                read_time_minutes=post_read_time(data.content),
                published_at=now,
            )

        base = slugify_title(data.title, fallback="post")
        post = await insert_with_unique_slug(self.gateway, base, build, model=PostRow)
        if data.tags:
            await set_post_tags(self.gateway, post.id, data.tags)
        logger.info(f"✅ Post {post.slug} published by {user.username}")
        return {"post_id": post.id, "slug": post.slug}

    @server_action("update_post")
    async def update_post(self, post_id: str, changes: dict[str, Any] | PostUpdate) -> dict:
        """Edit a post as its author. The slug is kept."""
        user = await require_user(self.identity, "Unauthorized")
        update = validate(PostUpdate, changes)
        post = await self._load(post_id)
        if post.author_id != user.id:
            raise AuthorizationError("Not authorized")
        await apply_post_update(self.gateway, post, update, user)
        return {"post_id": post.id, "slug": post.slug}

    @server_action("delete_post")
    async def delete_post(self, post_id: str) -> dict:
        """Delete a post as its author or an admin."""
        user = await require_user(self.identity, "Unauthorized")
        post = await self._load(post_id)
        if post.author_id != user.id and not user.is_admin:
            raise AuthorizationError("Not authorized")
        await delete_post_cascade(self.gateway, post_id)
        return {"post_id": post_id}

    async def get_post_by_slug(self, slug: str) -> Optional[dict[str, Any]]:
        """Published post with author and tags, or None."""
        rows = await self.gateway.select(
            PostRow, Filters.where(slug=slug, status=PostStatus.PUBLISHED.value), limit=1
        )
        if not rows:
            return None
        post = rows[0]
        author = await self.gateway.get(UserRow, post.author_id)
        data = post.model_dump()
        data["content"] = json.loads(post.content)
        data["author"] = author_summary(author)
        data["tags"] = await get_post_tags(self.gateway, post.id)
        return data

    async def list_published_posts(self, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        """Published posts, most recently published first, without content."""
        try:
            posts = await self.gateway.select(
                PostRow,
                Filters.where(status=PostStatus.PUBLISHED.value),
                order_by="published_at",
                descending=True,
                limit=limit,
                offset=offset,
            )
            authors = await load_authors(self.gateway, [p.author_id for p in posts])
        except StoreError as exc:
            logger.error(f"Error listing posts: {exc}")
            return []
        items = []
        for post in posts:
            data = post.model_dump(exclude={"content"})
            data["author"] = authors.get(post.author_id)
            items.append(data)
        return items


async def apply_post_update(
    gateway: DataGateway, post: PostRow, update: PostUpdate, editor: CurrentUser
) -> PostRow:
    """Apply validated changes to a post, recomputing read time and tags."""
    values = update.changes()
    tags = values.pop("tags", None)
    content = values.pop("content", None)
    if content is not None:
        post.content = json.dumps(content)
        post.read_time_minutes = post_read_time(content)
    status = values.get("status")
    if status == PostStatus.PUBLISHED.value and post.published_at is None:
        post.published_at = utc_now_iso()
    for key, value in values.items():
        setattr(post, key, value)
    post.updated_at = utc_now_iso()
    saved = await gateway.save(post)
    if tags is not None:
        await set_post_tags(gateway, post.id, tags)
    logger.debug(f"Post {post.id} updated by {editor.username}")
    return saved


__all__ = [
    "PostService",
    "apply_post_update",
    "delete_post_cascade",
    "get_or_create_tags",
    "get_post_tags",
    "set_post_tags",
    "post_read_time",
]
