"""Service wiring for VibeDev.

:class:`VibeDevApp` owns the database and gateway and builds every service
for one caller identity. Request handlers and the CLI go through it rather
than constructing services by hand.

Example:
    >>> app = VibeDevApp()
    >>> app.initialize()
    >>> result = await app.as_user("alice").likes.toggle_like(project_id)
    >>> app.close()
"""

from typing import Any, Optional

from vibedev.admin import AdminService
from vibedev.analytics import AnalyticsService
from vibedev.cache import ReferenceCache
from vibedev.categories import CategoryService
from vibedev.comments import CommentService
from vibedev.config import settings
from vibedev.database import DatabaseManager
from vibedev.events import EventService
from vibedev.gateway import SQLGateway
from vibedev.identity import AnonymousIdentity, UsernameIdentity
from vibedev.interfaces import IdentityProvider
from vibedev.likes import LikeService
from vibedev.logging import logger
from vibedev.posts import PostService
from vibedev.profiles import ProfileService
from vibedev.projects import ProjectService
from vibedev.views import ViewCounter


class VibeDevApp:
    """Database, gateway and services for one caller.

    Args:
        db: Database manager (creates one from settings if None)
        identity: Caller identity (anonymous if None)
        category_cache: Shared category cache (created if None)
    """

    def __init__(
        self,
        db: Optional[DatabaseManager] = None,
        identity: Optional[IdentityProvider] = None,
        category_cache: Optional[ReferenceCache] = None,
    ):
        self.db = db or DatabaseManager()
        self.identity = identity or AnonymousIdentity()
        if category_cache is None:
            category_cache = ReferenceCache("categories", settings.category_cache_ttl_seconds)
        self.category_cache = category_cache
        self._gateway: Optional[SQLGateway] = None

    def initialize(self) -> "VibeDevApp":
        """Create tables and seed reference data."""
        if self.db.session is None:
            self.db.initialize()
        self.db.seed_categories()
        logger.info("✅ VibeDev initialized")
        return self

    def close(self) -> None:
        self.db.close()
        self._gateway = None
        logger.info("✅ VibeDev closed")

    def __enter__(self) -> "VibeDevApp":
        return self.initialize()

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    @property
    def gateway(self) -> SQLGateway:
        if self._gateway is None:
            self._gateway = SQLGateway(self.db)
        return self._gateway

    def with_identity(self, identity: IdentityProvider) -> "VibeDevApp":
        """Same database and caches, different caller."""
        other = VibeDevApp(self.db, identity, self.category_cache)
        other._gateway = self.gateway
        return other

    def as_user(self, username: str) -> "VibeDevApp":
        return self.with_identity(UsernameIdentity(self.gateway, username))

    # =========================================================================
    # Services
    # =========================================================================

    @property
    def categories(self) -> CategoryService:
        return CategoryService(self.gateway, self.category_cache)

    @property
    def views(self) -> ViewCounter:
        return ViewCounter(self.gateway)

    @property
    def likes(self) -> LikeService:
        return LikeService(self.gateway, self.identity)

    @property
    def projects(self) -> ProjectService:
        return ProjectService(self.gateway, self.identity, self.categories, self.views, self.likes)

    @property
    def profiles(self) -> ProfileService:
        return ProfileService(self.gateway)

    @property
    def posts(self) -> PostService:
        return PostService(self.gateway, self.identity)

    @property
    def comments(self) -> CommentService:
        return CommentService(self.gateway, self.identity)

    @property
    def events(self) -> EventService:
        return EventService(self.gateway, self.identity)

    @property
    def admin(self) -> AdminService:
        return AdminService(self.gateway, self.identity, self.categories)

    @property
    def analytics(self) -> AnalyticsService:
        return AnalyticsService(self.gateway, self.identity)


__all__ = ["VibeDevApp"]
