"""Tests for service wiring and identity providers."""

import pytest

from vibedev.app import VibeDevApp
from vibedev.config import EntityKind, Role
from vibedev.errors import AuthorizationError
from vibedev.identity import (
    ACCOUNT_SUSPENDED,
    ADMIN_REQUIRED,
    LOGIN_REQUIRED,
    AnonymousIdentity,
    CurrentUser,
    StaticIdentity,
    UsernameIdentity,
    require_admin,
    require_user,
)
from vibedev.models import CategoryRow, UserRow
from vibedev.repository import Filters


class TestIdentity:
    """Tests for identity providers and guards."""

    def test_current_user_from_row(self, alice):
        user = CurrentUser.from_row(alice)

        assert user.username == "alice"
        assert user.role is Role.USER
        assert not user.is_admin

    @pytest.mark.asyncio
    async def test_username_identity_reads_role_each_time(self, alice, gateway):
        identity = UsernameIdentity(gateway, "alice")
        assert not (await identity.current_user()).is_admin

        await gateway.update(UserRow, Filters.where(id=alice.id), {"role": int(Role.ADMIN)})

        assert (await identity.current_user()).is_admin

    @pytest.mark.asyncio
    async def test_unknown_username_is_anonymous(self, gateway):
        assert await UsernameIdentity(gateway, "ghost").current_user() is None

    @pytest.mark.asyncio
    async def test_require_user(self, as_alice, anonymous):
        assert (await require_user(as_alice)).username == "alice"

        with pytest.raises(AuthorizationError, match=LOGIN_REQUIRED):
            await require_user(anonymous)
        with pytest.raises(AuthorizationError, match="to like"):
            await require_user(anonymous, "You must be logged in to like")

    @pytest.mark.asyncio
    async def test_require_admin(self, as_admin, as_alice, anonymous):
        assert (await require_admin(as_admin)).is_admin

        for identity in (as_alice, anonymous):
            with pytest.raises(AuthorizationError) as exc_info:
                await require_admin(identity)
            assert str(exc_info.value) == ADMIN_REQUIRED

    @pytest.mark.asyncio
    async def test_suspended_user_is_rejected(self):
        suspended = StaticIdentity(CurrentUser(id="u-1", username="sam", role=Role.ADMIN, is_suspended=True))

        with pytest.raises(AuthorizationError, match=ACCOUNT_SUSPENDED):
            await require_user(suspended)
        with pytest.raises(AuthorizationError, match=ACCOUNT_SUSPENDED):
            await require_admin(suspended)

    @pytest.mark.asyncio
    async def test_suspension_applies_immediately(self, alice, make_project, db):
        project = make_project(alice)
        vibe = VibeDevApp(db).initialize()
        alice_view = vibe.as_user("alice")

        await vibe.gateway.update(UserRow, Filters.where(id=alice.id), {"is_suspended": True})
        result = await alice_view.likes.toggle_like(project.id)

        assert result.error == ACCOUNT_SUSPENDED


class TestVibeDevApp:
    """Tests for VibeDevApp."""

    def test_defaults_to_anonymous(self, db):
        vibe = VibeDevApp(db)

        assert isinstance(vibe.identity, AnonymousIdentity)
        assert vibe.gateway is vibe.gateway

    def test_with_identity_shares_state(self, db, as_alice):
        vibe = VibeDevApp(db)
        gateway = vibe.gateway

        other = vibe.with_identity(as_alice)

        assert other.identity is as_alice
        assert other.db is db
        assert other.gateway is gateway
        assert other.category_cache is vibe.category_cache
        assert vibe.identity is not as_alice

    def test_empty_cache_is_shared_before_first_read(self, db, as_alice):
        vibe = VibeDevApp(db)

        other = vibe.with_identity(as_alice)

        assert len(vibe.category_cache) == 0
        assert other.category_cache is vibe.category_cache
        assert other.gateway is vibe.gateway

    @pytest.mark.asyncio
    async def test_category_invalidation_reaches_every_caller(self, db, as_alice, add):
        vibe = VibeDevApp(db).initialize()
        other = vibe.with_identity(as_alice)
        before = len(await other.categories.get_categories())
        await vibe.categories.get_categories()

        add(CategoryRow(name="robotics", display_name="Robotics", sort_order=99))
        vibe.categories.invalidate()

        names = [c.name for c in await other.categories.get_categories()]
        assert len(names) == before + 1
        assert names[-1] == "robotics"

    @pytest.mark.asyncio
    async def test_as_user_acts_for_that_user(self, db, alice, bob, make_project):
        project = make_project(alice)
        vibe = VibeDevApp(db).initialize()

        result = await vibe.as_user("bob").likes.toggle_like(project.id, EntityKind.PROJECT)
        status = await vibe.as_user("bob").likes.get_like_status(project.id, EntityKind.PROJECT)
        anonymous_status = await vibe.likes.get_like_status(project.id, EntityKind.PROJECT)

        assert result.success
        assert status == {"total_likes": 1, "is_liked": True}
        assert anonymous_status == {"total_likes": 1, "is_liked": False}

    def test_context_manager(self):
        with VibeDevApp(db=None) as vibe:
            assert vibe.db.session is not None

        assert vibe.db.session is None

    def test_services_are_wired(self, db, as_admin):
        vibe = VibeDevApp(db, as_admin)

        for name in ("categories", "views", "likes", "projects", "profiles", "posts", "comments", "events", "admin", "analytics"):
            service = getattr(vibe, name)
            assert service.gateway is vibe.gateway
