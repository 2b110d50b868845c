"""Tests for slug generation, uniqueness and lookup."""

from unittest.mock import AsyncMock

import pytest

from vibedev.errors import SlugConflictError, StoreError, UniqueViolationError
from vibedev.models import PostRow, ProjectRow
from vibedev.slug import (
    MAX_SLUG_LENGTH,
    ensure_unique_slug,
    get_id_by_slug,
    insert_with_unique_slug,
    is_valid_slug,
    slugify_tag,
    slugify_title,
)


class TestSlugifyTitle:
    """Tests for title slugs."""

    @pytest.mark.parametrize(
        "title,expected",
        [
            ("Hello World", "hello-world"),
            ("  Hello, World!  ", "hello-world"),
            ("My  Cool App 2.0", "my-cool-app-20"),
            ("Tab\tand\nnewline", "tab-and-newline"),
            ("Ünïcödé Tëxt", "ncd-txt"),
            ("already-dashed", "alreadydashed"),
        ],
    )
    def test_cleanup_rules(self, title, expected):
        """Test punctuation is dropped and whitespace runs become one dash."""
        assert slugify_title(title) == expected

    def test_empty_result_uses_fallback(self):
        """Test titles with nothing usable fall back to a fixed slug."""
        assert slugify_title("!!!") == "project"
        assert slugify_title("", fallback="post") == "post"

    def test_truncation_strips_trailing_dash(self):
        """Test truncation never leaves a dash at the end."""
        assert slugify_title("abcd efgh", max_len=5) == "abcd"

    def test_default_max_length(self):
        """Test the configured maximum length applies by default."""
        assert len(slugify_title("a" * 200)) == 80

    def test_explicit_length_is_capped(self):
        assert len(slugify_title("a" * 300, max_len=250)) == 200


class TestSlugHelpers:
    """Tests for tag slugs and slug validation."""

    def test_slugify_tag(self):
        """Test tag slugs keep dashes between words."""
        assert slugify_tag("Next.js & React") == "next-js-react"
        assert slugify_tag("  AI  ") == "ai"

    @pytest.mark.parametrize("slug", ["my-app", "a", "app-2", "x1-y2-z3"])
    def test_valid_slugs(self, slug):
        assert is_valid_slug(slug)

    @pytest.mark.parametrize("slug", ["", None, "-bad", "bad-", "Bad", "a--b", "a b", "a" * (MAX_SLUG_LENGTH + 1)])
    def test_invalid_slugs(self, slug):
        assert not is_valid_slug(slug)

    def test_longest_generated_slug_is_valid(self):
        """Test a maximal title slug with the largest suffix still validates."""
        slug = slugify_title("word " * 60, max_len=200) + "-1001"

        assert len(slug) <= MAX_SLUG_LENGTH
        assert is_valid_slug(slug)


class TestEnsureUniqueSlug:
    """Tests for collision resolution."""

    @pytest.mark.asyncio
    async def test_free_base_is_returned(self, gateway):
        """Test an unused base slug is returned unchanged."""
        assert await ensure_unique_slug(gateway, "fresh") == "fresh"

    @pytest.mark.asyncio
    async def test_numeric_suffixes(self, alice, make_project, gateway):
        """Test taken slugs get -2, -3 and so on."""
        make_project(alice, slug="foo")
        make_project(alice, slug="foo-2")

        assert await ensure_unique_slug(gateway, "foo") == "foo-3"

    @pytest.mark.asyncio
    async def test_excluded_entity_keeps_its_slug(self, alice, make_project, gateway):
        """Test an entity's own slug does not count as taken."""
        project = make_project(alice, slug="mine")

        assert await ensure_unique_slug(gateway, "mine", exclude_id=project.id) == "mine"

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self):
        """Test the current candidate is returned unchecked after the limit."""
        gateway = AsyncMock()
        gateway.select.return_value = [ProjectRow(id="x", slug="s", title="t", description="d", category="c", author_id="a")]

        slug = await ensure_unique_slug(gateway, "busy", max_attempts=3)

        assert slug == "busy-4"
        assert gateway.select.await_count == 3

    @pytest.mark.asyncio
    async def test_store_error_returns_current_candidate(self):
        """Test a failing lookup hands the candidate to the unique constraint."""
        gateway = AsyncMock()
        gateway.select.side_effect = StoreError("down")

        assert await ensure_unique_slug(gateway, "any") == "any"

    @pytest.mark.asyncio
    async def test_other_tables(self, alice, make_post, gateway):
        """Test uniqueness is checked against the requested table."""
        make_post(alice, slug="shared")

        assert await ensure_unique_slug(gateway, "shared") == "shared"
        assert await ensure_unique_slug(gateway, "shared", model=PostRow) == "shared-2"


class TestInsertWithUniqueSlug:
    """Tests for inserting under a unique slug."""

    @pytest.mark.asyncio
    async def test_retries_once_after_slug_race(self):
        """Test a concurrent taker of the same slug triggers one retry."""
        gateway = AsyncMock()
        gateway.select.side_effect = [[], []]
        inserted = object()
        gateway.insert.side_effect = [UniqueViolationError("taken"), inserted]
        gateway.count.return_value = 1

        result = await insert_with_unique_slug(gateway, "race", lambda slug: slug)

        assert result is inserted
        assert gateway.insert.await_count == 2

    @pytest.mark.asyncio
    async def test_second_race_is_reported(self):
        """Test two races in a row surface as a slug conflict."""
        gateway = AsyncMock()
        gateway.select.return_value = []
        gateway.insert.side_effect = UniqueViolationError("taken")
        gateway.count.return_value = 1

        with pytest.raises(SlugConflictError):
            await insert_with_unique_slug(gateway, "race", lambda slug: slug)
        assert gateway.insert.await_count == 2

    @pytest.mark.asyncio
    async def test_unrelated_unique_violation_is_not_retried(self):
        """Test violations of other constraints propagate immediately."""
        gateway = AsyncMock()
        gateway.select.return_value = []
        gateway.insert.side_effect = UniqueViolationError("other column")
        gateway.count.return_value = 0

        with pytest.raises(UniqueViolationError):
            await insert_with_unique_slug(gateway, "calm", lambda slug: slug)
        assert gateway.insert.await_count == 1


class TestGetIdBySlug:
    """Tests for slug lookup."""

    @pytest.mark.asyncio
    async def test_found(self, alice, make_project, gateway):
        project = make_project(alice, slug="find-me")
        assert await get_id_by_slug(gateway, "find-me") == project.id

    @pytest.mark.asyncio
    async def test_unknown_or_invalid(self, gateway):
        """Test unknown and malformed slugs resolve to None."""
        assert await get_id_by_slug(gateway, "missing") is None
        assert await get_id_by_slug(gateway, "Not A Slug") is None

    @pytest.mark.asyncio
    async def test_long_slug_resolves(self, alice, make_project, gateway):
        """Test slugs longer than the default length still resolve."""
        slug = slugify_title("word " * 40, max_len=150)
        project = make_project(alice, slug=slug)

        assert len(slug) > 100
        assert await get_id_by_slug(gateway, slug) == project.id
