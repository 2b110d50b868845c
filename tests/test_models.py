"""Unit tests for data models (SQLModel tables and their constraints)."""

import pytest
from sqlalchemy.exc import IntegrityError

from vibedev.config import EntityKind, Role
from vibedev.models import (
    CommentReportRow,
    CommentRow,
    LikeRow,
    ProjectRow,
    TagRow,
    UserRow,
    ViewRow,
    entity_fields,
)


def insert(db, *rows):
    for row in rows:
        db.session.add(row)
    db.session.commit()


def insert_fails(db, row) -> bool:
    try:
        insert(db, row)
    except IntegrityError:
        db.session.rollback()
        return True
    return False


class TestUserRow:
    """Tests for UserRow model."""

    def test_user_row_defaults(self, db):
        user = UserRow(username="dana")
        insert(db, user)

        assert user.id
        assert user.role == int(Role.USER)
        assert user.is_suspended is False
        assert user.joined_at.endswith("Z")

    def test_name_prefers_display_name(self):
        assert UserRow(username="dana", display_name="Dana S.").name == "Dana S."
        assert UserRow(username="dana").name == "dana"

    def test_username_is_unique(self, db, alice):
        assert insert_fails(db, UserRow(username="alice"))


class TestContentRows:
    """Tests for content tables."""

    def test_project_tags_round_trip(self, db, alice):
        project = ProjectRow(
            slug="tagged",
            title="Tagged",
            description="d",
            category="web_app",
            author_id=alice.id,
            tags=["python", "sqlite"],
        )
        insert(db, project)
        db.session.expire_all()

        assert db.session.get(ProjectRow, project.id).tags == ["python", "sqlite"]

    def test_project_slug_is_unique(self, db, alice, make_project):
        make_project(alice, slug="taken")
        duplicate = ProjectRow(slug="taken", title="t", description="d", category="web_app", author_id=alice.id)

        assert insert_fails(db, duplicate)

    def test_tag_slug_is_unique(self, db):
        insert(db, TagRow(name="Rust", slug="rust"))
        assert insert_fails(db, TagRow(name="RUST!", slug="rust"))

    def test_comment_targets_exactly_one_entity(self, db, alice, make_project, make_post):
        project = make_project(alice)
        post = make_post(alice)

        assert insert_fails(db, CommentRow(content="orphan"))
        assert insert_fails(db, CommentRow(project_id=project.id, post_id=post.id, content="both"))
        assert not insert_fails(db, CommentRow(post_id=post.id, content="fine"))


class TestEngagementRows:
    """Tests for the uniqueness rules engagement counters rely on."""

    def test_one_view_per_session_and_day(self, db, alice, make_project):
        project = make_project(alice)
        insert(db, ViewRow(project_id=project.id, session_id="s", view_date="2024-01-01"))

        assert insert_fails(db, ViewRow(project_id=project.id, session_id="s", view_date="2024-01-01"))
        assert not insert_fails(db, ViewRow(project_id=project.id, session_id="s", view_date="2024-01-02"))

    def test_views_without_session_never_collide(self, db, alice, make_project):
        project = make_project(alice)

        for _ in range(3):
            assert not insert_fails(db, ViewRow(project_id=project.id, view_date="2024-01-01"))

    def test_project_and_post_views_are_separate(self, db, alice, make_project, make_post):
        project = make_project(alice)
        post = make_post(alice)
        insert(db, ViewRow(project_id=project.id, session_id="s", view_date="2024-01-01"))

        assert not insert_fails(db, ViewRow(post_id=post.id, session_id="s", view_date="2024-01-01"))

    def test_one_like_per_user(self, db, alice, bob, make_project):
        project = make_project(alice)
        insert(db, LikeRow(project_id=project.id, user_id=bob.id))

        assert insert_fails(db, LikeRow(project_id=project.id, user_id=bob.id))
        assert not insert_fails(db, LikeRow(project_id=project.id, user_id=alice.id))

    def test_one_report_per_reporter(self, db, alice, bob, make_project):
        project = make_project(alice)
        comment = CommentRow(project_id=project.id, content="hm")
        insert(db, comment)
        report = CommentReportRow(comment_id=comment.id, reporter_id=bob.id, reason="spam")
        insert(db, report)

        assert report.status == "pending"
        assert insert_fails(db, CommentReportRow(comment_id=comment.id, reporter_id=bob.id, reason="again"))


@pytest.mark.parametrize(
    "kind,expected",
    [
        (EntityKind.PROJECT, {"project_id": "x-1"}),
        (EntityKind.POST, {"post_id": "x-1"}),
    ],
)
def test_entity_fields(kind, expected):
    assert entity_fields(kind, "x-1") == expected
