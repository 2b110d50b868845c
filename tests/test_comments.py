"""Tests for comments and comment reports."""

import pytest

from vibedev.comments import DUPLICATE_REPORT, CommentService, delete_comments
from vibedev.config import EntityKind
from vibedev.identity import ACCOUNT_SUSPENDED, CurrentUser, StaticIdentity
from vibedev.models import CommentReportRow, CommentRow
from vibedev.repository import Filters


class TestCreateComment:
    """Tests for create_comment."""

    @pytest.mark.asyncio
    async def test_signed_in_comment(self, alice, make_project, gateway, as_alice):
        project = make_project(alice)

        result = await CommentService(gateway, as_alice).create_comment(
            EntityKind.PROJECT, project.id, "  Great work!  "
        )

        assert result.success
        comment = await gateway.get(CommentRow, result.data["comment_id"])
        assert comment.user_id == alice.id
        assert comment.content == "Great work!"
        assert comment.author_name is None

    @pytest.mark.asyncio
    async def test_guest_comment_with_and_without_name(self, alice, make_post, gateway, anonymous):
        post = make_post(alice)
        service = CommentService(gateway, anonymous)

        named = await service.create_comment(EntityKind.POST, post.id, "Hello there", guest_name=" Guest ")
        nameless = await service.create_comment(EntityKind.POST, post.id, "Hi again", guest_name="   ")

        assert (await gateway.get(CommentRow, named.data["comment_id"])).author_name == "Guest"
        assert (await gateway.get(CommentRow, nameless.data["comment_id"])).author_name is None

    @pytest.mark.asyncio
    async def test_signed_in_users_ignore_guest_name(self, alice, make_project, gateway, as_alice):
        project = make_project(alice)

        result = await CommentService(gateway, as_alice).create_comment(
            "project", project.id, "Nice one", guest_name="Impostor"
        )

        assert (await gateway.get(CommentRow, result.data["comment_id"])).author_name is None

    @pytest.mark.asyncio
    async def test_suspended_member_cannot_comment(self, alice, make_project, gateway):
        project = make_project(alice)
        suspended = StaticIdentity(CurrentUser(id=alice.id, username="alice", is_suspended=True))

        result = await CommentService(gateway, suspended).create_comment(EntityKind.PROJECT, project.id, "Still here")

        assert result.error == ACCOUNT_SUSPENDED
        assert await gateway.count(CommentRow) == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "entity_id,content,error",
        [
            ("", "Hello", "Entity ID and content are required"),
            ("p-1", "", "Entity ID and content are required"),
            ("p-1", " x ", "Comment too short"),
            ("p-1", "x" * 5001, "Validation failed"),
        ],
    )
    async def test_invalid_input(self, gateway, as_alice, entity_id, content, error):
        result = await CommentService(gateway, as_alice).create_comment("project", entity_id, content)

        assert not result.success
        assert error in result.error
        assert await gateway.count(CommentRow) == 0


class TestGetComments:
    @pytest.mark.asyncio
    async def test_newest_first_with_authors(self, add, alice, make_project, gateway, anonymous):
        project = make_project(alice)
        add(
            CommentRow(project_id=project.id, user_id=alice.id, content="first", created_at="2024-01-01T00:00:00.000000Z"),
            CommentRow(project_id=project.id, author_name="Visitor", content="second", created_at="2024-01-02T00:00:00.000000Z"),
            CommentRow(project_id=project.id, content="third", created_at="2024-01-03T00:00:00.000000Z"),
        )

        comments = await CommentService(gateway, anonymous).get_comments(EntityKind.PROJECT, project.id)

        assert [c["content"] for c in comments] == ["third", "second", "first"]
        assert comments[0]["is_guest"] and comments[0]["author"] is None
        assert comments[1]["author"]["display_name"] == "Visitor"
        assert comments[2]["author"]["username"] == "alice"
        assert not comments[2]["is_guest"]

    @pytest.mark.asyncio
    async def test_empty_entity_id(self, gateway, anonymous):
        assert await CommentService(gateway, anonymous).get_comments(EntityKind.PROJECT, "") == []


class TestReportComment:
    """Tests for report_comment."""

    @pytest.fixture
    def comment(self, add, alice, make_project):
        project = make_project(alice)
        row = CommentRow(project_id=project.id, content="rude words")
        add(row)
        return row

    @pytest.mark.asyncio
    async def test_report_once_per_user(self, comment, gateway, as_bob, as_alice):
        service = CommentService(gateway, as_bob)

        first = await service.report_comment(comment.id, " spam ")
        second = await service.report_comment(comment.id, "still spam")
        other = await CommentService(gateway, as_alice).report_comment(comment.id, "spam")

        assert first.success and other.success
        assert second.error == DUPLICATE_REPORT
        report = await gateway.get(CommentReportRow, first.data["report_id"])
        assert report.reason == "spam"
        assert report.status == "pending"
        assert await gateway.count(CommentReportRow) == 2

    @pytest.mark.asyncio
    async def test_requires_login(self, comment, gateway, anonymous):
        result = await CommentService(gateway, anonymous).report_comment(comment.id, "spam")
        assert result.error == "You must be logged in to report comments"

    @pytest.mark.asyncio
    async def test_requires_reason(self, comment, gateway, as_bob):
        result = await CommentService(gateway, as_bob).report_comment(comment.id, "   ")
        assert result.error == "Comment ID and reason are required"

    @pytest.mark.asyncio
    async def test_unknown_comment(self, gateway, as_bob):
        result = await CommentService(gateway, as_bob).report_comment("missing", "spam")
        assert result.error == "Comment not found"


class TestDeleteComments:
    @pytest.mark.asyncio
    async def test_reports_go_first(self, add, alice, bob, make_project, gateway):
        project = make_project(alice)
        doomed = CommentRow(project_id=project.id, content="bye")
        kept = CommentRow(project_id=project.id, content="stay", user_id=alice.id)
        add(doomed, kept)
        add(CommentReportRow(comment_id=doomed.id, reporter_id=bob.id, reason="spam"))

        deleted = await delete_comments(gateway, Filters(eq={"project_id": project.id, "user_id": None}))

        assert deleted == 1
        assert await gateway.count(CommentReportRow) == 0
        assert [c.id for c in await gateway.select(CommentRow)] == [kept.id]
