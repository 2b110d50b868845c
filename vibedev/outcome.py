"""Tagged results for partial-failure aggregation.

Independent reads are fanned out together; a failing read must not take
the others down. Each sub-result becomes an :class:`Outcome` that either
carries the value or the error plus a default used in its place.

Example:
    >>> likes, views = await gather_outcomes(
    ...     count_likes(), count_views(), defaults=(0, 0), labels=("likes", "views")
    ... )
    >>> total_views = views.value  # 0 if the view count failed
"""

import asyncio
from collections.abc import Awaitable, Sequence
from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

from vibedev.logging import logger

T = TypeVar("T")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Value of a sub-operation, or its default after a failure.

    Attributes:
        value: Result, or the default when the operation failed
        error: Exception raised by the operation, if any
        label: Name used in logs
    """

    value: T
    error: Optional[BaseException] = None
    label: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T, label: str = "") -> "Outcome[T]":
        return cls(value=value, label=label)

    @classmethod
    def failed(cls, error: BaseException, default: T, label: str = "") -> "Outcome[T]":
        return cls(value=default, error=error, label=label)


async def gather_outcomes(
    *awaitables: Awaitable[Any],
    defaults: Sequence[Any],
    labels: Sequence[str] | None = None,
) -> list[Outcome[Any]]:
    """Run awaitables concurrently and tag each result.

    Args:
        *awaitables: Independent operations
        defaults: Value substituted for each failed operation
        labels: Names used when logging failures

    Returns:
        One Outcome per awaitable, in order
    """
    if len(defaults) != len(awaitables):
        raise ValueError("defaults must match the number of awaitables")
    labels = labels or [f"op{i}" for i in range(len(awaitables))]

    results = await asyncio.gather(*awaitables, return_exceptions=True)

    outcomes: list[Outcome[Any]] = []
    for result, default, label in zip(results, defaults, labels):
        if isinstance(result, BaseException):
            logger.warning(f"{label} failed, using default {default!r}: {result}")
            outcomes.append(Outcome.failed(result, default, label))
        else:
            outcomes.append(Outcome.success(result, label))
    return outcomes


__all__ = ["Outcome", "gather_outcomes"]
