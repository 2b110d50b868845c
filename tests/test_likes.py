"""Tests for like toggling and like status."""

from unittest.mock import AsyncMock

import pytest

from vibedev.config import EntityKind
from vibedev.errors import StoreError
from vibedev.identity import AnonymousIdentity
from vibedev.likes import LIKE_LOGIN_REQUIRED, LikeService
from vibedev.models import LikeRow
from vibedev.repository import Filters


class TestToggleLike:
    """Tests for toggle_like."""

    @pytest.mark.asyncio
    async def test_like_then_unlike(self, alice, make_project, gateway, as_alice):
        """Test toggling twice returns to the original state."""
        project = make_project(alice)
        likes = LikeService(gateway, as_alice)

        first = await likes.toggle_like(project.id)
        assert first.success
        assert first.data == {"is_liked": True}
        assert await likes.count_likes(project.id) == 1

        second = await likes.toggle_like(project.id)
        assert second.success
        assert second.data == {"is_liked": False}
        assert await likes.count_likes(project.id) == 0

    @pytest.mark.asyncio
    async def test_anonymous_caller_is_rejected(self, alice, make_project, gateway, anonymous):
        project = make_project(alice)

        result = await LikeService(gateway, anonymous).toggle_like(project.id)

        assert not result.success
        assert result.error == LIKE_LOGIN_REQUIRED
        assert await gateway.count(LikeRow) == 0

    @pytest.mark.asyncio
    async def test_likes_are_per_user(self, alice, bob, make_project, gateway, as_alice, as_bob):
        project = make_project(alice)

        await LikeService(gateway, as_alice).toggle_like(project.id)
        await LikeService(gateway, as_bob).toggle_like(project.id)
        await LikeService(gateway, as_alice).toggle_like(project.id)

        rows = await gateway.select(LikeRow, Filters.where(project_id=project.id))
        assert [r.user_id for r in rows] == [bob.id]

    @pytest.mark.asyncio
    async def test_posts_can_be_liked(self, alice, make_post, gateway, as_alice):
        post = make_post(alice)
        likes = LikeService(gateway, as_alice)

        result = await likes.toggle_like(post.id, EntityKind.POST)

        assert result.data["is_liked"] is True
        assert await likes.count_likes(post.id, EntityKind.POST) == 1
        assert await gateway.count(LikeRow, Filters.where(project_id=post.id)) == 0

    @pytest.mark.asyncio
    async def test_concurrent_like_is_treated_as_liked(self, alice, make_project, gateway, as_alice):
        """Test a like inserted between the read and our insert still reports liked."""
        project = make_project(alice)
        likes = LikeService(gateway, as_alice)
        real_select = gateway.select

        async def stale_select(model, *args, **kwargs):
            rows = await real_select(model, *args, **kwargs)
            if model is LikeRow:
                await gateway.insert(LikeRow(project_id=project.id, user_id=alice.id))
                return []
            return rows

        gateway.select = stale_select

        result = await likes.toggle_like(project.id)

        assert result.success
        assert result.data == {"is_liked": True}
        assert await likes.count_likes(project.id) == 1

    @pytest.mark.asyncio
    async def test_store_failure_is_reported(self, as_alice):
        gateway = AsyncMock()
        gateway.select.side_effect = StoreError("down")

        result = await LikeService(gateway, as_alice).toggle_like("p-1")

        assert not result.success
        assert result.error == "Failed to toggle like"


class TestLikeStatus:
    """Tests for single and batch like status."""

    @pytest.mark.asyncio
    async def test_single_status(self, alice, bob, make_project, engage, gateway, as_alice, anonymous):
        project = make_project(alice)
        engage(project, likers=[alice, bob])

        assert await LikeService(gateway, as_alice).get_like_status(project.id) == {
            "total_likes": 2,
            "is_liked": True,
        }
        assert await LikeService(gateway, anonymous).get_like_status(project.id) == {
            "total_likes": 2,
            "is_liked": False,
        }

    @pytest.mark.asyncio
    async def test_single_status_failure_reports_zero(self, as_alice):
        gateway = AsyncMock()
        gateway.count.side_effect = StoreError("down")

        status = await LikeService(gateway, as_alice).get_like_status("p-1")

        assert status == {"total_likes": 0, "is_liked": False}

    @pytest.mark.asyncio
    async def test_batch_status(self, alice, bob, make_project, engage, gateway, as_bob):
        """Test every requested id is present, with correct totals and caller state."""
        liked, unliked, untouched = make_project(alice), make_project(alice), make_project(alice)
        engage(liked, likers=[alice, bob])
        engage(unliked, likers=[alice])

        status = await LikeService(gateway, as_bob).get_batch_like_status(
            [liked.id, unliked.id, untouched.id, liked.id]
        )

        assert status == {
            liked.id: {"total_likes": 2, "is_liked": True},
            unliked.id: {"total_likes": 1, "is_liked": False},
            untouched.id: {"total_likes": 0, "is_liked": False},
        }

    @pytest.mark.asyncio
    async def test_batch_status_uses_one_query(self, as_alice):
        gateway = AsyncMock()
        gateway.select.return_value = [
            LikeRow(project_id="p-1", user_id="someone"),
            LikeRow(project_id="p-1", user_id="someone-else"),
        ]

        status = await LikeService(gateway, as_alice).get_batch_like_status(["p-1", "p-2"])

        assert gateway.select.await_count == 1
        assert status["p-1"]["total_likes"] == 2
        assert status["p-2"]["total_likes"] == 0

    @pytest.mark.asyncio
    async def test_batch_status_empty_input(self):
        gateway = AsyncMock()

        assert await LikeService(gateway, AnonymousIdentity()).get_batch_like_status([]) == {}
        gateway.select.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_batch_status_failure_is_zero_filled(self, as_alice):
        gateway = AsyncMock()
        gateway.select.side_effect = StoreError("down")

        status = await LikeService(gateway, as_alice).get_batch_like_status(["a", "b"])

        assert status == {
            "a": {"total_likes": 0, "is_liked": False},
            "b": {"total_likes": 0, "is_liked": False},
        }
