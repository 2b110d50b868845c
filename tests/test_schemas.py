"""Unit tests for input validation schemas."""

from datetime import date

import pytest

from vibedev.errors import InputValidationError
from vibedev.schemas import (
    PAGE_SIZE,
    CommentForm,
    EventForm,
    PostForm,
    ProjectForm,
    ProjectListQuery,
    ProjectUpdate,
    ReportListQuery,
    UserListQuery,
    validate,
)


class TestValidate:
    """Tests for the validate helper."""

    def test_returns_instance(self):
        form = validate(ProjectForm, {"title": " App ", "description": "d", "category": "web_app"})

        assert form.title == "App"
        assert validate(ProjectForm, form) is form

    def test_error_message_lists_fields(self):
        with pytest.raises(InputValidationError) as exc_info:
            validate(ProjectForm, {"title": "", "category": "web_app"})

        message = str(exc_info.value)
        assert message.startswith("Validation failed: ")
        assert "title" in message
        assert "description" in message


class TestProjectSchemas:
    """Tests for project forms."""

    def test_tags_from_comma_string(self):
        form = ProjectForm(title="t", description="d", category="c", tags="python, sqlite ,, ")
        assert form.tags == ["python", "sqlite"]

    def test_blank_optional_fields_become_none(self):
        form = ProjectForm(title="t", description="d", category="c", tagline="  ", website_url="")

        assert form.tagline is None
        assert form.website_url is None

    def test_update_changes_only_include_given_fields(self):
        update = ProjectUpdate(title="New", is_featured=False)
        assert update.changes() == {"title": "New", "is_featured": False}

    def test_update_ignores_slug(self):
        assert ProjectUpdate(slug="hijack").changes() == {}


class TestContentSchemas:
    """Tests for post, comment and event forms."""

    def test_post_content_minimum(self, rich_content):
        assert PostForm(title="Hello there", content=rich_content).title == "Hello there"

        with pytest.raises(InputValidationError, match="Content is too short"):
            validate(PostForm, {"title": "Hello there", "content": {"type": "doc"}})

    @pytest.mark.parametrize("content", ["", "x", "  y  "])
    def test_comment_too_short(self, content):
        with pytest.raises(InputValidationError, match="Comment too short"):
            validate(CommentForm, {"content": content})

    def test_comment_guest_name(self):
        assert CommentForm(content="hi", guest_name="  Ann ").guest_name == "Ann"
        assert CommentForm(content="hi", guest_name="   ").guest_name is None

    def test_event_end_before_start(self):
        with pytest.raises(InputValidationError, match="End must not be before start"):
            validate(
                EventForm,
                {
                    "name": "Meetup",
                    "description": "Monthly community meetup",
                    "category": "meetup",
                    "location": "Online",
                    "starts_at": "2030-05-01T18:00:00Z",
                    "ends_at": "2030-05-01T17:00:00Z",
                },
            )


class TestListQueries:
    """Tests for lenient admin list queries."""

    @pytest.mark.parametrize("page,expected", [(None, 1), ("abc", 1), (0, 1), (-2, 1), ("3", 3)])
    def test_page_fallback(self, page, expected):
        query = ProjectListQuery(page=page)

        assert query.page == expected
        assert query.offset == (expected - 1) * PAGE_SIZE

    def test_unknown_choices_fall_back_to_all(self):
        query = UserListQuery(role="wizard", status="asleep", search="   ")

        assert query.role == "all"
        assert query.status == "all"
        assert query.search is None

    def test_dates(self):
        query = ProjectListQuery(date_from="2024-01-10", date_to="soon", category="  ")

        assert query.date_from == date(2024, 1, 10)
        assert query.date_to is None
        assert query.category == "all"

    def test_reports_default_to_pending(self):
        assert ReportListQuery().status == "pending"
        assert ReportListQuery(status=None).status == "pending"
        assert ReportListQuery(status="dismissed").status == "dismissed"
