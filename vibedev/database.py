"""Database management for VibeDev.

This module provides SQLite database management with:
- Connection management with WAL mode
- Table creation from the SQLModel metadata
- Index creation for the engagement queries
- Seeding helpers for reference data and users

Example:
    >>> from vibedev.database import DatabaseManager
    >>>
    >>> db = DatabaseManager()
    >>> db.initialize()
    >>> db.seed_categories()
    >>> user = db.upsert_user({"username": "ada", "display_name": "Ada"})
    >>> db.close()
"""

from pathlib import Path
from typing import Any

from sqlalchemy import text
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine, select

from vibedev.config import settings
from vibedev.logging import logger
from vibedev.models import CategoryRow, UserRow
from vibedev.utils import utc_now_iso

DEFAULT_CATEGORIES: list[dict[str, Any]] = [
    {"name": "personal_web", "display_name": "Personal Web", "icon": "user", "color": "blue", "sort_order": 1},
    {"name": "company_profile", "display_name": "Company Profile", "icon": "building", "color": "green", "sort_order": 2},
    {"name": "landing_page", "display_name": "Landing Page", "icon": "rocket", "color": "purple", "sort_order": 3},
    {"name": "web_app", "display_name": "Web App", "icon": "layout", "color": "orange", "sort_order": 4},
    {"name": "mobile_app", "display_name": "Mobile App", "icon": "smartphone", "color": "pink", "sort_order": 5},
    {"name": "ai_tool", "display_name": "AI Tool", "icon": "sparkles", "color": "cyan", "sort_order": 6},
]


# =============================================================================
# Database Manager
# =============================================================================


class DatabaseManager:
    """Manages SQLite database lifecycle.

    Features:
    - Connection management with WAL mode for better concurrency
    - Table and index creation
    - A shared session used by the data gateway

    Args:
        database_path: Path to SQLite database file (defaults to settings.database_path).
            ``:memory:`` keeps a single shared in-memory connection.

    Example:
        >>> db = DatabaseManager(Path("/tmp/vibedev.db"))
        >>> db.initialize()
        >>> db.seed_categories()
        >>> db.close()
    """

    def __init__(self, database_path: Path | None = None):
        """Initialize database manager.

        Args:
            database_path: Path to SQLite database (defaults to settings.database_path)
        """
        self.database_path = Path(database_path or settings.database_path)
        self.engine = None
        self.session: Session | None = None

    @property
    def is_memory(self) -> bool:
        return str(self.database_path) == ":memory:"

    def initialize(self) -> None:
        """Initialize database engine and create tables.

        This method:
        1. Creates database file if it doesn't exist
        2. Creates all tables from SQLModel
        3. Enables WAL mode for better concurrency
        4. Optimizes PRAGMA settings
        5. Creates indexes for common queries
        """
        if self.is_memory:
            self.engine = create_engine(
                "sqlite://",
                echo=False,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            self.database_path.parent.mkdir(parents=True, exist_ok=True)
            self.engine = create_engine(
                f"sqlite:///{self.database_path}",
                echo=False,
                connect_args={"check_same_thread": False},
            )

        SQLModel.metadata.create_all(self.engine)

        with self.engine.connect() as conn:
            if not self.is_memory:
                conn.exec_driver_sql("PRAGMA journal_mode = WAL;")
            conn.exec_driver_sql("PRAGMA synchronous = NORMAL;")
            conn.exec_driver_sql("PRAGMA cache_size = -64000;")  # 64MB cache
            conn.exec_driver_sql("PRAGMA temp_store = MEMORY;")
            conn.commit()

        self.create_indexes()

        self.session = Session(self.engine, expire_on_commit=False)
        logger.info(f"✅ Database initialized at {self.database_path}")

    def create_indexes(self) -> None:
        """Create database indexes for query performance.

        Indexes created:
        - Projects by author and creation time for profile listings
        - Likes and views by entity for counts
        - Published posts by author for profile stats
        - Comments by entity and time for thread listings
        """
        if self.engine is None:
            raise RuntimeError("Database not initialized")

        statements = [
            "CREATE INDEX IF NOT EXISTS idx_projects_author_created ON projects(author_id, created_at DESC)",
            "CREATE INDEX IF NOT EXISTS idx_projects_category_created ON projects(category, created_at DESC)",
            "CREATE INDEX IF NOT EXISTS idx_posts_author_status ON posts(author_id, status)",
            "CREATE INDEX IF NOT EXISTS idx_likes_project_created ON likes(project_id, created_at)",
            "CREATE INDEX IF NOT EXISTS idx_views_project_date ON views(project_id, view_date)",
            "CREATE INDEX IF NOT EXISTS idx_views_post_date ON views(post_id, view_date)",
            "CREATE INDEX IF NOT EXISTS idx_comments_project_created ON comments(project_id, created_at DESC)",
            "CREATE INDEX IF NOT EXISTS idx_comments_post_created ON comments(post_id, created_at DESC)",
        ]
        with self.engine.connect() as conn:
            for statement in statements:
                conn.execute(text(statement))
            conn.commit()

        logger.debug("✅ Database indexes created")

    def close(self) -> None:
        """Close database connection and cleanup resources."""
        if self.session is not None:
            self.session.close()
            self.session = None
        if self.engine is not None:
            self.engine.dispose()
            self.engine = None

    # =========================================================================
    # Seeding
    # =========================================================================

    def seed_categories(self, categories: list[dict[str, Any]] | None = None) -> int:
        """Insert categories that do not exist yet.

        Args:
            categories: Category dictionaries (defaults to DEFAULT_CATEGORIES)

        Returns:
            Number of categories inserted
        """
        if self.session is None:
            raise RuntimeError("Database not initialized")

        inserted = 0
        for data in categories or DEFAULT_CATEGORIES:
            if self.session.get(CategoryRow, data["name"]) is None:
                self.session.add(CategoryRow(**data))
                inserted += 1
        self.session.commit()
        logger.debug(f"Seeded {inserted} categories")
        return inserted

    def upsert_user(self, user_data: dict[str, Any]) -> UserRow:
        """Insert or update a user keyed by username.

        Args:
            user_data: User fields; must include ``username``

        Returns:
            Inserted or updated UserRow
        """
        if self.session is None:
            raise RuntimeError("Database not initialized")

        stmt = select(UserRow).where(UserRow.username == user_data["username"])
        existing = self.session.exec(stmt).first()

        if existing:
            for key, value in user_data.items():
                setattr(existing, key, value)
            existing.updated_at = utc_now_iso()
            user_row = existing
        else:
            user_row = UserRow(**user_data)
            self.session.add(user_row)

        self.session.commit()
        self.session.refresh(user_row)
        return user_row


# =============================================================================
# Export Public API
# =============================================================================

__all__ = ["DatabaseManager", "DEFAULT_CATEGORIES"]
