"""Error taxonomy and the action boundary.

Every user-triggered mutation is wrapped with :func:`server_action`, which
turns exceptions into an :class:`ActionResult` instead of letting them escape.

Translation rules:
    - ``InputValidationError`` / ``AuthorizationError`` / ``NotFoundError``:
      the exception message is returned as ``error``
    - ``StoreError`` and other ``VibeDevError``: logged, message returned as ``error``
    - anything else: logged with traceback, generic message returned

Example:
    >>> @server_action("toggle_like")
    ... async def toggle(self, project_id: str) -> dict:
    ...     ...
    >>> result = await service.toggle("p-1")
    >>> result.success
    True
"""

import functools
from collections.abc import Awaitable, Callable
from typing import Any, Optional, ParamSpec

from pydantic import BaseModel, Field

from vibedev.logging import action_var, logger
from vibedev.metrics import action_errors_total, actions_total

P = ParamSpec("P")

GENERIC_ERROR_MESSAGE = "An unexpected error occurred"


# =============================================================================
# Exceptions
# =============================================================================


class VibeDevError(Exception):
    """Base class for all domain errors."""


class InputValidationError(VibeDevError):
    """Input failed validation; the store was not touched."""


class AuthorizationError(VibeDevError):
    """Caller is not signed in or lacks the required role."""


class NotFoundError(VibeDevError):
    """Referenced entity does not exist."""


class StoreError(VibeDevError):
    """The data store rejected or failed an operation."""

    def __init__(self, message: str, operation: str | None = None, table: str | None = None):
        super().__init__(message)
        self.operation = operation
        self.table = table


class UniqueViolationError(StoreError):
    """A uniqueness constraint rejected an insert or update."""


class ProcedureUnavailableError(StoreError):
    """A stored procedure is not installed on the store."""


class SlugConflictError(VibeDevError):
    """A freshly chosen slug was taken before the insert landed."""


class UploadError(VibeDevError):
    """The upload endpoint failed or returned no asset URL."""


# =============================================================================
# Action Result Envelope
# =============================================================================


class ActionResult(BaseModel):
    """Uniform result of a server action.

    Attributes:
        success: Whether the action completed
        error: Human-readable error when ``success`` is False
        data: Optional payload returned by the action
    """

    success: bool
    error: Optional[str] = None
    data: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def ok(cls, **data: Any) -> "ActionResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str) -> "ActionResult":
        return cls(success=False, error=error)


def server_action(
    name: str,
) -> Callable[[Callable[P, Awaitable[Any]]], Callable[P, Awaitable[ActionResult]]]:
    """Wrap an async action so that it always returns an ActionResult.

    The wrapped coroutine may return an ``ActionResult``, a dict (used as
    ``data``) or ``None``.

    Args:
        name: Action name recorded in logs and metrics
    """

    def decorator(func: Callable[P, Awaitable[Any]]) -> Callable[P, Awaitable[ActionResult]]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> ActionResult:
            token = action_var.set(name)
            try:
                result = await func(*args, **kwargs)
            except (InputValidationError, AuthorizationError, NotFoundError) as exc:
                logger.info(f"Action {name} rejected: {exc}")
                action_errors_total.labels(action=name, kind=type(exc).__name__).inc()
                return ActionResult.fail(str(exc))
            except StoreError as exc:
                logger.error(f"Action {name} store error: {exc}")
                action_errors_total.labels(action=name, kind="store").inc()
                return ActionResult.fail(str(exc))
            except VibeDevError as exc:
                logger.warning(f"Action {name} failed: {exc}")
                action_errors_total.labels(action=name, kind=type(exc).__name__).inc()
                return ActionResult.fail(str(exc))
            except Exception as exc:
                logger.exception(f"Action {name} failed unexpectedly: {exc}")
                action_errors_total.labels(action=name, kind="unexpected").inc()
                return ActionResult.fail(GENERIC_ERROR_MESSAGE)
            finally:
                action_var.reset(token)

            actions_total.labels(action=name).inc()
            if isinstance(result, ActionResult):
                return result
            return ActionResult(success=True, data=result or {})

        return wrapper

    return decorator


__all__ = [
    "GENERIC_ERROR_MESSAGE",
    "VibeDevError",
    "InputValidationError",
    "AuthorizationError",
    "NotFoundError",
    "StoreError",
    "UniqueViolationError",
    "ProcedureUnavailableError",
    "SlugConflictError",
    "UploadError",
    "ActionResult",
    "server_action",
]
