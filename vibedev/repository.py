"""Generic repository pattern for type-safe database operations.

This module provides a Generic Repository[T] implementation for SQLModel
entities plus a :class:`Filters` predicate object shared by every query
the data gateway issues.

Reference:
    - Repository Pattern: https://martinfowler.com/eaaCatalog/repository.html

Example:
    >>> from vibedev.repository import Filters, Repository
    >>> from vibedev.models import LikeRow
    >>>
    >>> like_repo = Repository[LikeRow](session, LikeRow)
    >>> likes = like_repo.select(Filters(in_={"project_id": ["p-1", "p-2"]}))
    >>> total = like_repo.count(Filters(eq={"project_id": "p-1"}))
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Generic, Optional, TypeVar

from sqlalchemy import delete as sa_delete
from sqlalchemy import func, or_
from sqlalchemy import update as sa_update
from sqlmodel import Session, SQLModel, select

from vibedev.utils import escape_like

# =============================================================================
# Type Variables
# =============================================================================

T = TypeVar("T", bound=SQLModel)


# =============================================================================
# Filters
# =============================================================================


@dataclass
class Filters:
    """Conjunction of simple column predicates.

    Attributes:
        eq: Column equals value (``None`` matches IS NULL)
        in_: Column value is one of the given values
        gte: Column greater than or equal to value
        lte: Column less than or equal to value
        search: ``(columns, term)``; matches rows where any column contains
            the term case-insensitively, with LIKE wildcards escaped

    Example:
        >>> Filters(eq={"status": "published"}, in_={"author_id": ["u-1"]})
    """

    eq: dict[str, Any] = field(default_factory=dict)
    in_: dict[str, Sequence[Any]] = field(default_factory=dict)
    gte: dict[str, Any] = field(default_factory=dict)
    lte: dict[str, Any] = field(default_factory=dict)
    search: Optional[tuple[Sequence[str], str]] = None

    @classmethod
    def where(cls, **eq: Any) -> "Filters":
        """Shorthand for equality-only filters."""
        return cls(eq=eq)

    def apply(self, stmt: Any, model: type[SQLModel]) -> Any:
        """Add WHERE clauses for these filters to ``stmt``.

        Raises:
            AttributeError: If a filter names a column the model lacks
        """
        for key, value in self.eq.items():
            column = getattr(model, key)
            stmt = stmt.where(column.is_(None) if value is None else column == value)
        for key, values in self.in_.items():
            stmt = stmt.where(getattr(model, key).in_(list(values)))
        for key, value in self.gte.items():
            stmt = stmt.where(getattr(model, key) >= value)
        for key, value in self.lte.items():
            stmt = stmt.where(getattr(model, key) <= value)
        if self.search is not None:
            columns, term = self.search
            if term:
                pattern = f"%{escape_like(term)}%"
                stmt = stmt.where(
                    or_(*(getattr(model, c).ilike(pattern, escape="\\") for c in columns))
                )
        return stmt


# =============================================================================
# Generic Repository
# =============================================================================


class Repository(Generic[T]):
    """Generic repository implementation for SQLModel entities.

    Type Parameter:
        T: SQLModel entity type (ProjectRow, LikeRow, ViewRow, etc.)

    Args:
        session: SQLModel Session instance
        model: SQLModel class (e.g., ProjectRow, LikeRow)

    Example:
        >>> project_repo = Repository[ProjectRow](session, ProjectRow)
        >>> project = project_repo.get("p-1")
        >>> newest = project_repo.select(order_by="created_at", descending=True, limit=20)
        >>> project_repo.delete_where(Filters.where(author_id="u-1"))
    """

    def __init__(self, session: Session, model: type[T]):
        """Initialize repository.

        Args:
            session: SQLModel Session for database operations
            model: SQLModel class (e.g., ProjectRow, LikeRow)
        """
        self.session = session
        self.model = model

    def get(self, entity_id: Any) -> T | None:
        """Get entity by primary key.

        Args:
            entity_id: Primary key value

        Returns:
            Entity instance or None if not found
        """
        return self.session.get(self.model, entity_id)

    def select(
        self,
        filters: Filters | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
        offset: int = 0,
    ) -> Sequence[T]:
        """Select entities matching filters.

        Args:
            filters: Predicates to apply (all rows when None)
            order_by: Column name to order by
            descending: Order descending instead of ascending
            limit: Maximum number of results
            offset: Number of results to skip

        Returns:
            Sequence of matching entities
        """
        stmt = select(self.model)
        if filters is not None:
            stmt = filters.apply(stmt, self.model)
        if order_by is not None:
            column = getattr(self.model, order_by)
            stmt = stmt.order_by(column.desc() if descending else column.asc())
        if offset:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        return self.session.exec(stmt).all()

    def create(self, entity: T) -> T:
        """Create new entity.

        Args:
            entity: Entity instance to create

        Returns:
            Created entity with refreshed state from database
        """
        self.session.add(entity)
        self.session.commit()
        self.session.refresh(entity)
        return entity

    def update(self, entity: T) -> T:
        """Update existing entity.

        Args:
            entity: Entity instance to update (must exist in database)

        Returns:
            Updated entity with refreshed state from database
        """
        self.session.add(entity)
        self.session.commit()
        self.session.refresh(entity)
        return entity

    def update_where(self, filters: Filters, values: dict[str, Any]) -> int:
        """Update every entity matching filters.

        Args:
            filters: Predicates selecting the rows to update
            values: Column values to set

        Returns:
            Number of rows updated
        """
        stmt = filters.apply(sa_update(self.model), self.model).values(**values)
        result = self.session.exec(stmt.execution_options(synchronize_session="fetch"))
        self.session.commit()
        return result.rowcount

    def delete_where(self, filters: Filters) -> int:
        """Delete every entity matching filters.

        Returns:
            Number of rows deleted
        """
        stmt = filters.apply(sa_delete(self.model), self.model)
        result = self.session.exec(stmt.execution_options(synchronize_session="fetch"))
        self.session.commit()
        return result.rowcount

    def count(self, filters: Filters | None = None) -> int:
        """Count entities matching filters.

        Returns:
            Number of matching entities
        """
        stmt = select(func.count()).select_from(self.model)
        if filters is not None:
            stmt = filters.apply(stmt, self.model)
        return self.session.exec(stmt).one()


# =============================================================================
# Repository Factory Helper
# =============================================================================


class RepositoryFactory:
    """Factory for creating type-safe repositories.

    Example:
        >>> factory = RepositoryFactory(session)
        >>> like_repo = factory.for_entity(LikeRow)
        >>> view_repo = factory.for_entity(ViewRow)
    """

    def __init__(self, session: Session):
        """Initialize repository factory.

        Args:
            session: SQLModel Session for database operations
        """
        self.session = session

    def for_entity(self, model: type[T]) -> Repository[T]:
        """Create repository for specific entity type.

        Args:
            model: SQLModel class (e.g., ProjectRow, LikeRow)

        Returns:
            Type-safe Repository[T] instance
        """
        return Repository[T](self.session, model)


# =============================================================================
# Export Public API
# =============================================================================

__all__ = ["Filters", "Repository", "RepositoryFactory"]
