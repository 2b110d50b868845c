"""Protocol interfaces for dependency injection.

This module defines Protocol interfaces that decouple the services from
their collaborators. Using @runtime_checkable Protocol allows for
structural subtyping without requiring inheritance.

Key benefits:
- Easy testing with mock implementations
- Supports alternative stores (e.g., a hosted Postgres behind a REST API)
- Clear contracts for the data gateway, identity and caches

Example:
    >>> from vibedev.interfaces import IdentityProvider
    >>> class Nobody:
    ...     async def current_user(self):
    ...         return None
    >>> isinstance(Nobody(), IdentityProvider)  # True, structural typing!

References:
    - Python typing.Protocol documentation
      https://docs.python.org/3/library/typing.html#typing.Protocol
"""

from collections.abc import Sequence
from typing import Any, Callable, Optional, Protocol, TypeVar, runtime_checkable

from sqlmodel import SQLModel

from vibedev.repository import Filters

T = TypeVar("T", bound=SQLModel)


@runtime_checkable
class DataGateway(Protocol):
    """Data store interface.

    Every method is a suspension point. Implementations translate store
    failures into :class:`vibedev.errors.StoreError`, and uniqueness
    rejections into :class:`vibedev.errors.UniqueViolationError`.
    """

    async def get(self, model: type[T], entity_id: Any) -> Optional[T]:
        """Fetch a row by primary key, or None."""
        ...

    async def select(
        self,
        model: type[T],
        filters: Filters | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
        offset: int = 0,
    ) -> Sequence[T]:
        """Select rows matching filters, ordered and limited."""
        ...

    async def count(self, model: type[T], filters: Filters | None = None) -> int:
        """Count rows matching filters without fetching them."""
        ...

    async def insert(self, row: T) -> T:
        """Insert a row and return it with store-assigned state.

        Raises:
            UniqueViolationError: If a uniqueness constraint rejects the row
        """
        ...

    async def save(self, row: T) -> T:
        """Persist changes to a row previously returned by the gateway."""
        ...

    async def update(self, model: type[T], filters: Filters, values: dict[str, Any]) -> int:
        """Update matching rows, returning the number updated."""
        ...

    async def delete(self, model: type[T], filters: Filters) -> int:
        """Delete matching rows, returning the number deleted."""
        ...

    async def call_procedure(self, name: str, **params: Any) -> list[dict[str, Any]]:
        """Invoke a stored procedure.

        Raises:
            ProcedureUnavailableError: If the procedure is not installed
        """
        ...


@runtime_checkable
class IdentityProvider(Protocol):
    """Source of the signed-in user for the current request."""

    async def current_user(self) -> Optional[Any]:
        """Return the signed-in user (a ``CurrentUser``) or None."""
        ...


@runtime_checkable
class Cache(Protocol):
    """Keyed cache with expiry and explicit invalidation."""

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None if absent or expired."""
        ...

    def set(self, key: str, value: Any) -> None:
        """Store a value under ``key``."""
        ...

    def invalidate(self, key: str | None = None) -> None:
        """Drop one key, or every key when ``key`` is None."""
        ...


ProgressCallback = Callable[[int, int], None]
"""Upload progress callback receiving (bytes_sent, total_bytes)."""


__all__ = ["DataGateway", "IdentityProvider", "Cache", "ProgressCallback"]
