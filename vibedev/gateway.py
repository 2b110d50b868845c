"""SQL-backed data gateway.

:class:`SQLGateway` implements :class:`vibedev.interfaces.DataGateway` on top
of a :class:`vibedev.database.DatabaseManager` session. Each call:

1. yields to the event loop, so concurrent callers interleave
2. runs the repository operation, timed and counted in Prometheus
3. rolls the session back and raises a typed error on failure

Stored procedures are plain callables registered by name. The stats
procedure used by profile pages is registered when
``settings.stats_procedure_enabled`` is true.

Example:
    >>> gateway = SQLGateway(db)
    >>> await gateway.insert(LikeRow(project_id="p-1", user_id="u-1"))
    >>> await gateway.count(LikeRow, Filters.where(project_id="p-1"))
    1
"""

import asyncio
import time
from collections.abc import Callable, Sequence
from typing import Any, Optional, TypeVar

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, SQLModel, select

from vibedev.config import settings
from vibedev.database import DatabaseManager
from vibedev.errors import ProcedureUnavailableError, StoreError, UniqueViolationError
from vibedev.logging import logger
from vibedev.metrics import store_operation_duration_seconds, store_operations_total
from vibedev.models import CommentRow, LikeRow, ProjectRow, UserRow, ViewRow
from vibedev.repository import Filters, RepositoryFactory

T = TypeVar("T", bound=SQLModel)

Procedure = Callable[..., list[dict[str, Any]]]

USER_PROJECTS_WITH_STATS = "get_user_projects_with_stats"


def is_unique_violation(exc: IntegrityError) -> bool:
    """Check whether an IntegrityError came from a uniqueness constraint.

    Recognizes SQLite's message and Postgres' ``23505`` SQLSTATE.
    """
    orig = exc.orig
    if getattr(orig, "pgcode", None) == "23505" or getattr(orig, "sqlstate", None) == "23505":
        return True
    return "UNIQUE constraint failed" in str(orig)


def user_projects_with_stats(session: Session, username: str, limit: int = 10) -> list[dict[str, Any]]:
    """Latest projects of a user with like, view and comment counts.

    Runs as a single statement with correlated count subqueries.

    Args:
        session: Open session
        username: Profile username
        limit: Maximum number of projects

    Returns:
        Project dictionaries with ``likes_count``, ``views_count`` and
        ``comments_count`` keys, newest first
    """
    likes = (
        select(func.count(LikeRow.id))
        .where(LikeRow.project_id == ProjectRow.id)
        .correlate(ProjectRow)
        .scalar_subquery()
    )
    views = (
        select(func.count(ViewRow.id))
        .where(ViewRow.project_id == ProjectRow.id)
        .correlate(ProjectRow)
        .scalar_subquery()
    )
    comments = (
        select(func.count(CommentRow.id))
        .where(CommentRow.project_id == ProjectRow.id)
        .correlate(ProjectRow)
        .scalar_subquery()
    )
    stmt = (
        select(ProjectRow, likes.label("likes"), views.label("views"), comments.label("comments"))
        .join(UserRow, UserRow.id == ProjectRow.author_id)
        .where(UserRow.username == username)
        .order_by(ProjectRow.created_at.desc())
        .limit(limit)
    )
    rows = []
    for project, like_count, view_count, comment_count in session.exec(stmt).all():
        data = project.model_dump()
        data.update(
            likes_count=like_count or 0,
            views_count=view_count or 0,
            comments_count=comment_count or 0,
        )
        rows.append(data)
    return rows


class SQLGateway:
    """Async data gateway over a DatabaseManager session.

    Args:
        db: Initialized DatabaseManager
        install_procedures: Register built-in stored procedures
            (defaults to settings.stats_procedure_enabled)
    """

    def __init__(self, db: DatabaseManager, install_procedures: bool | None = None):
        if db.session is None:
            raise RuntimeError("Database not initialized")
        self.db = db
        self.repos = RepositoryFactory(db.session)
        self._procedures: dict[str, Procedure] = {}
        if install_procedures is None:
            install_procedures = settings.stats_procedure_enabled
        if install_procedures:
            self.register_procedure(USER_PROJECTS_WITH_STATS, user_projects_with_stats)

    # =========================================================================
    # Execution
    # =========================================================================

    async def _run(self, operation: str, model: type[SQLModel], fn: Callable[[], Any]) -> Any:
        await asyncio.sleep(0)
        table = getattr(model, "__tablename__", model.__name__)
        start = time.perf_counter()
        try:
            result = fn()
        except IntegrityError as exc:
            self.db.session.rollback()
            if is_unique_violation(exc):
                store_operations_total.labels(operation, table, "unique_violation").inc()
                raise UniqueViolationError(
                    f"Duplicate {table} row", operation=operation, table=table
                ) from exc
            store_operations_total.labels(operation, table, "error").inc()
            logger.error(f"Integrity error on {operation} {table}: {exc.orig}")
            raise StoreError(f"Failed to {operation} {table}", operation, table) from exc
        except SQLAlchemyError as exc:
            self.db.session.rollback()
            store_operations_total.labels(operation, table, "error").inc()
            logger.error(f"Store error on {operation} {table}: {exc}")
            raise StoreError(f"Failed to {operation} {table}", operation, table) from exc
        finally:
            store_operation_duration_seconds.labels(operation, table).observe(
                time.perf_counter() - start
            )
        store_operations_total.labels(operation, table, "success").inc()
        return result

    # =========================================================================
    # DataGateway
    # =========================================================================

    async def get(self, model: type[T], entity_id: Any) -> Optional[T]:
        return await self._run("get", model, lambda: self.repos.for_entity(model).get(entity_id))

    async def select(
        self,
        model: type[T],
        filters: Filters | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
        offset: int = 0,
    ) -> Sequence[T]:
        repo = self.repos.for_entity(model)
        return await self._run(
            "select",
            model,
            lambda: list(repo.select(filters, order_by, descending, limit, offset)),
        )

    async def count(self, model: type[T], filters: Filters | None = None) -> int:
        return await self._run("count", model, lambda: self.repos.for_entity(model).count(filters))

    async def insert(self, row: T) -> T:
        model = type(row)
        return await self._run("insert", model, lambda: self.repos.for_entity(model).create(row))

    async def save(self, row: T) -> T:
        model = type(row)
        return await self._run("update", model, lambda: self.repos.for_entity(model).update(row))

    async def update(self, model: type[T], filters: Filters, values: dict[str, Any]) -> int:
        repo = self.repos.for_entity(model)
        return await self._run("update", model, lambda: repo.update_where(filters, values))

    async def delete(self, model: type[T], filters: Filters) -> int:
        return await self._run("delete", model, lambda: self.repos.for_entity(model).delete_where(filters))

    # =========================================================================
    # Stored Procedures
    # =========================================================================

    def register_procedure(self, name: str, procedure: Procedure) -> None:
        """Install a stored procedure.

        Args:
            name: Procedure name used by callers
            procedure: Callable receiving the session and keyword parameters
        """
        self._procedures[name] = procedure
        logger.debug(f"Registered stored procedure {name}")

    def drop_procedure(self, name: str) -> None:
        """Remove a stored procedure if installed."""
        self._procedures.pop(name, None)

    def has_procedure(self, name: str) -> bool:
        return name in self._procedures

    async def call_procedure(self, name: str, **params: Any) -> list[dict[str, Any]]:
        procedure = self._procedures.get(name)
        if procedure is None:
            raise ProcedureUnavailableError(f"Procedure {name} is not available", "rpc", name)
        return await self._run("rpc", ProjectRow, lambda: procedure(self.db.session, **params))


__all__ = ["SQLGateway", "USER_PROJECTS_WITH_STATS", "is_unique_violation", "user_projects_with_stats"]
