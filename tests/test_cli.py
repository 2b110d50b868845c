"""Unit tests for CLI commands."""

from pathlib import Path

import pytest
import typer
from sqlmodel import select
from typer.testing import CliRunner

from vibedev.cli import app, parse_role
from vibedev.database import DatabaseManager
from vibedev.models import LikeRow, ProjectRow, UserRow, ViewRow

runner = CliRunner()


def open_db(path: Path) -> DatabaseManager:
    manager = DatabaseManager(path)
    manager.initialize()
    return manager


@pytest.fixture
def cli_db(tmp_path) -> Path:
    """Database file with alice, an admin and one project by alice."""
    path = tmp_path / "cli.db"
    manager = open_db(path)
    manager.seed_categories()
    alice = manager.upsert_user({"username": "alice", "display_name": "Alice"})
    manager.upsert_user({"username": "bob", "display_name": "Bob"})
    manager.upsert_user({"username": "root", "display_name": "Admin", "role": 0})
    manager.session.add(
        ProjectRow(
            slug="my-cool-app",
            title="My Cool App",
            description="Built over a weekend",
            category="web_app",
            author_id=alice.id,
        )
    )
    manager.session.commit()
    manager.close()
    return path


def invoke(path: Path, *args: str, acting_as: str | None = None, **kwargs):
    options = ["--db", str(path)]
    if acting_as:
        options += ["--as", acting_as]
    return runner.invoke(app, [*options, *args], **kwargs)


def fetch(path: Path, model, **where):
    manager = open_db(path)
    try:
        stmt = select(model)
        for key, value in where.items():
            stmt = stmt.where(getattr(model, key) == value)
        return manager.session.exec(stmt).all()
    finally:
        manager.close()


class TestCLICommands:
    """Tests for CLI commands."""

    def test_cli_app_exists(self):
        """Test CLI app is defined."""
        assert isinstance(app, typer.Typer)

    def test_init_command(self, tmp_path):
        """Test init command."""
        db_path = tmp_path / "fresh.db"

        result = runner.invoke(app, ["--db", str(db_path), "init"])

        assert result.exit_code == 0
        assert "Database created" in result.stdout
        assert "Seeded 6 categories" in result.stdout
        assert db_path.exists()

    def test_init_keeps_existing_database(self, cli_db):
        result = invoke(cli_db, "init")

        assert result.exit_code == 0
        assert "Database already exists" in result.stdout
        assert len(fetch(cli_db, ProjectRow)) == 1

    def test_init_command_force(self, cli_db):
        """Test init command with force flag recreates the database."""
        result = invoke(cli_db, "init", "--force")

        assert result.exit_code == 0
        assert fetch(cli_db, ProjectRow) == []

    def test_add_user(self, cli_db):
        result = invoke(cli_db, "add-user", "carol", "--name", "Carol", "--role", "moderator")

        assert result.exit_code == 0
        assert "User carol (moderator)" in result.stdout
        [carol] = fetch(cli_db, UserRow, username="carol")
        assert carol.display_name == "Carol"
        assert carol.role == 1

    def test_status_command(self, cli_db):
        result = invoke(cli_db, "status")

        assert result.exit_code == 0
        assert "Configuration" in result.stdout
        assert "Platform Statistics" in result.stdout
        assert "Total users" in result.stdout

    def test_projects_command(self, cli_db):
        result = invoke(cli_db, "projects", "--sort", "top")

        assert result.exit_code == 0
        assert "Projects (top)" in result.stdout
        assert "my-cool-app" in result.stdout

    def test_projects_rejects_unknown_sort(self, cli_db):
        result = invoke(cli_db, "projects", "--sort", "random")
        assert result.exit_code != 0

    def test_profile_command(self, cli_db):
        result = invoke(cli_db, "profile", "alice")

        assert result.exit_code == 0
        assert "Projects: 1" in result.stdout
        assert "my-cool-app" in result.stdout


class TestEngagementCommands:
    """Tests for like and view commands."""

    def test_like_toggles(self, cli_db):
        liked = invoke(cli_db, "like", "my-cool-app", acting_as="bob")
        unliked = invoke(cli_db, "like", "my-cool-app", acting_as="bob")

        assert liked.exit_code == 0
        assert "Liked (1 total)" in liked.stdout
        assert unliked.exit_code == 0
        assert "Unliked (0 total)" in unliked.stdout
        assert fetch(cli_db, LikeRow) == []

    def test_like_requires_acting_user(self, cli_db):
        result = invoke(cli_db, "like", "my-cool-app")

        assert result.exit_code == 1
        assert "needs --as USERNAME" in result.stdout

    def test_like_unknown_user(self, cli_db):
        result = invoke(cli_db, "like", "my-cool-app", acting_as="ghost")

        assert result.exit_code == 1
        assert "logged in" in result.stdout

    def test_like_unknown_project(self, cli_db):
        result = invoke(cli_db, "like", "nope", acting_as="bob")

        assert result.exit_code == 1
        assert "Project not found: nope" in result.stdout

    def test_view_deduplicates_sessions(self, cli_db):
        first = invoke(cli_db, "view", "my-cool-app", "--session", "s-1")
        repeat = invoke(cli_db, "view", "my-cool-app", "--session", "s-1")
        other = invoke(cli_db, "view", "my-cool-app", "--session", "s-2")

        assert "1 views" in first.stdout
        assert "1 views" in repeat.stdout
        assert "2 views" in other.stdout
        assert len(fetch(cli_db, ViewRow)) == 2


class TestAdminCommands:
    """Tests for moderation commands."""

    def test_feature_and_unfeature(self, cli_db):
        featured = invoke(cli_db, "feature", "my-cool-app", acting_as="root")
        assert featured.exit_code == 0
        assert fetch(cli_db, ProjectRow)[0].is_featured is True

        unfeatured = invoke(cli_db, "feature", "my-cool-app", "--off", acting_as="root")
        assert "Project unfeatured" in unfeatured.stdout
        assert fetch(cli_db, ProjectRow)[0].is_featured is False

    def test_feature_needs_admin(self, cli_db):
        result = invoke(cli_db, "feature", "my-cool-app", acting_as="alice")

        assert result.exit_code == 1
        assert "Admin access required" in result.stdout

    def test_delete_project(self, cli_db):
        invoke(cli_db, "like", "my-cool-app", acting_as="bob")

        result = invoke(cli_db, "delete-project", "my-cool-app", "--yes", acting_as="alice")

        assert result.exit_code == 0
        assert "Project deleted" in result.stdout
        assert fetch(cli_db, ProjectRow) == []
        assert fetch(cli_db, LikeRow) == []

    def test_delete_project_confirmation_declined(self, cli_db):
        result = invoke(cli_db, "delete-project", "my-cool-app", acting_as="alice", input="n\n")

        assert result.exit_code == 1
        assert len(fetch(cli_db, ProjectRow)) == 1

    def test_delete_project_by_stranger(self, cli_db):
        result = invoke(cli_db, "delete-project", "my-cool-app", "--yes", acting_as="bob")

        assert result.exit_code == 1
        assert "Not authorized" in result.stdout

    def test_suspend_and_lift(self, cli_db):
        suspended = invoke(cli_db, "suspend", "bob", "--reason", "spam", acting_as="root")
        assert suspended.exit_code == 0
        [bob] = fetch(cli_db, UserRow, username="bob")
        assert bob.is_suspended
        assert bob.suspension_reason == "spam"

        lifted = invoke(cli_db, "suspend", "bob", "--lift", acting_as="root")
        assert "User bob reinstated" in lifted.stdout
        [bob] = fetch(cli_db, UserRow, username="bob")
        assert not bob.is_suspended

    def test_suspend_unknown_user(self, cli_db):
        result = invoke(cli_db, "suspend", "ghost", acting_as="root")

        assert result.exit_code == 1
        assert "User not found: ghost" in result.stdout

    def test_set_role(self, cli_db):
        result = invoke(cli_db, "set-role", "alice", "moderator", acting_as="root")

        assert result.exit_code == 0
        assert fetch(cli_db, UserRow, username="alice")[0].role == 1

    def test_set_role_unknown_name(self, cli_db):
        result = invoke(cli_db, "set-role", "alice", "superuser", acting_as="root")

        assert result.exit_code == 1
        assert "Unknown role: superuser" in result.stdout

    def test_metrics_command(self):
        result = runner.invoke(app, ["metrics"])

        assert result.exit_code == 0
        assert "like_toggles_total" in result.stdout


class TestCLIHelp:
    """Tests for CLI help text."""

    def test_main_help(self):
        result = runner.invoke(app, ["--help"])

        assert result.exit_code == 0
        for command in ("init", "projects", "like", "delete-project", "set-role"):
            assert command in result.stdout

    def test_like_help(self):
        result = runner.invoke(app, ["like", "--help"])
        assert result.exit_code == 0
        assert "Toggle" in result.stdout


@pytest.mark.parametrize(
    "value,expected",
    [("admin", 0), ("Moderator", 1), ("user", 2), ("2", 2)],
)
def test_parse_role(value, expected):
    assert parse_role(value) == expected
