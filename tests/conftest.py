"""Pytest configuration and shared fixtures for VibeDev tests."""

import os
import sys
import tempfile
import uuid
from pathlib import Path
from typing import Any, Generator

os.environ.setdefault("VIBEDEV_ENV", "testing")
os.environ.setdefault("DATA_DIR", str(Path(tempfile.gettempdir()) / "vibedev-test-data"))

import pytest
from loguru import logger

from vibedev.config import Role
from vibedev.database import DatabaseManager
from vibedev.gateway import SQLGateway
from vibedev.identity import AnonymousIdentity, CurrentUser, StaticIdentity
from vibedev.models import CommentRow, LikeRow, PostRow, ProjectRow, UserRow, ViewRow

# =============================================================================
# Test Configuration
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def configure_logging():
    """Configure loguru for tests to avoid I/O errors."""
    logger.remove()
    logger.add(
        sys.stderr,
        level="ERROR",
        format="{time} {level} {message}",
        catch=True,
        enqueue=True,
    )
    yield
    logger.remove()


@pytest.fixture(scope="function", autouse=True)
def reset_loguru():
    """Reset loguru handlers before each test to prevent I/O errors."""
    logger.remove()
    logger.add(
        sys.stderr,
        level="ERROR",
        format="{time} {level} {message}",
        catch=True,
        enqueue=True,
    )
    yield
    logger.remove()


@pytest.fixture
def temp_db_path() -> Generator[Path, None, None]:
    """Create temporary database file with unique name."""
    temp_dir = Path(tempfile.gettempdir())
    db_path = temp_dir / f"test_vibedev_{uuid.uuid4().hex[:8]}.db"
    if db_path.exists():
        db_path.unlink()

    yield db_path

    for suffix in ("", "-wal", "-shm"):
        path = Path(f"{db_path}{suffix}")
        if path.exists():
            try:
                path.unlink()
            except OSError:
                pass  # Best effort cleanup


@pytest.fixture
def db(temp_db_path: Path) -> Generator[DatabaseManager, None, None]:
    """Initialized database with default categories."""
    manager = DatabaseManager(database_path=temp_db_path)
    manager.initialize()
    manager.seed_categories()

    yield manager

    if manager.session:
        manager.session.rollback()
    manager.close()


@pytest.fixture
def gateway(db: DatabaseManager) -> SQLGateway:
    return SQLGateway(db)


# =============================================================================
# Users and Identities
# =============================================================================


@pytest.fixture
def alice(db: DatabaseManager) -> UserRow:
    return db.upsert_user({"username": "alice", "display_name": "Alice"})


@pytest.fixture
def bob(db: DatabaseManager) -> UserRow:
    return db.upsert_user({"username": "bob", "display_name": "Bob"})


@pytest.fixture
def admin_user(db: DatabaseManager) -> UserRow:
    return db.upsert_user({"username": "root", "display_name": "Admin", "role": int(Role.ADMIN)})


def identity_for(user: UserRow | None) -> StaticIdentity:
    """Static identity for a stored user, or anonymous for None."""
    if user is None:
        return AnonymousIdentity()
    return StaticIdentity(CurrentUser.from_row(user))


@pytest.fixture
def identity_of():
    return identity_for


@pytest.fixture
def as_alice(alice: UserRow) -> StaticIdentity:
    return identity_for(alice)


@pytest.fixture
def as_bob(bob: UserRow) -> StaticIdentity:
    return identity_for(bob)


@pytest.fixture
def as_admin(admin_user: UserRow) -> StaticIdentity:
    return identity_for(admin_user)


@pytest.fixture
def anonymous() -> AnonymousIdentity:
    return AnonymousIdentity()


# =============================================================================
# Row Factories
# =============================================================================


def add_rows(db: DatabaseManager, *rows: Any) -> None:
    """Insert rows directly through the shared session."""
    for row in rows:
        db.session.add(row)
    db.session.commit()


@pytest.fixture
def add(db: DatabaseManager):
    """Insert arbitrary rows: ``add(row, ...)``."""
    return lambda *rows: add_rows(db, *rows)


@pytest.fixture
def make_project(db: DatabaseManager):
    """Factory inserting a project for an author."""
    counter = {"n": 0}

    def _make(author: UserRow, **fields: Any) -> ProjectRow:
        counter["n"] += 1
        n = counter["n"]
        data = {
            "slug": f"project-{n}",
            "title": f"Project {n}",
            "description": "A project",
            "category": "web_app",
            "author_id": author.id,
        }
        data.update(fields)
        project = ProjectRow(**data)
        add_rows(db, project)
        return project

    return _make


@pytest.fixture
def make_post(db: DatabaseManager):
    """Factory inserting a post for an author (published by default)."""
    counter = {"n": 0}

    def _make(author: UserRow, **fields: Any) -> PostRow:
        counter["n"] += 1
        n = counter["n"]
        data = {
            "slug": f"post-{n}",
            "title": f"Post number {n}",
            "content": '{"type": "doc"}',
            "author_id": author.id,
            "status": "published",
            "published_at": f"2024-01-{n:02d}T00:00:00.000000Z",
        }
        data.update(fields)
        post = PostRow(**data)
        add_rows(db, post)
        return post

    return _make


@pytest.fixture
def engage(db: DatabaseManager):
    """Insert likes, views and comments for a project."""

    def _engage(
        project: ProjectRow,
        likers: list[UserRow] = (),
        sessions: list[str] = (),
        comments: int = 0,
    ) -> None:
        rows: list[Any] = [LikeRow(project_id=project.id, user_id=u.id) for u in likers]
        rows += [ViewRow(project_id=project.id, session_id=s, view_date="2024-01-01") for s in sessions]
        rows += [CommentRow(project_id=project.id, content=f"comment {i}") for i in range(comments)]
        add_rows(db, *rows)

    return _engage


@pytest.fixture
def rich_content() -> dict[str, Any]:
    """Rich-text document long enough to pass post validation."""
    return {
        "type": "doc",
        "content": [
            {
                "type": "paragraph",
                "content": [
                    {
                        "type": "text",
                        "text": "Building a showcase for indie developers taught us a lot about "
                        "counting views and likes without double counting anything.",
                    }
                ],
            }
        ],
    }
