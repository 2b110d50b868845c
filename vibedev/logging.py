"""Logging setup using Loguru.

This module configures structured logging with:
- JSON output for production environments
- Context variables for request tracking (request_id, user_id, action)
- Entity context (entity_kind, entity_id) bound around per-entity work
- Custom serialization without Loguru's verbose defaults
- File rotation and compression

Example:
    >>> from vibedev.logging import logger, set_request_context
    >>> set_request_context(action="toggle_like", user_id="u-1")
    >>> logger.info("Like toggled", project_id="p-1")
    >>> # JSON output includes action and user_id automatically
"""

import json
import sys
import traceback
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from pathlib import Path
from typing import Any

from loguru import logger as loguru_logger

from vibedev.config import settings

# =============================================================================
# Context Variables for Request Tracking
# =============================================================================

request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)
user_id_var: ContextVar[str | None] = ContextVar("user_id", default=None)
action_var: ContextVar[str | None] = ContextVar("action", default=None)
entity_kind_var: ContextVar[str | None] = ContextVar("entity_kind", default=None)
entity_id_var: ContextVar[str | None] = ContextVar("entity_id", default=None)


# =============================================================================
# Custom JSON Serialization
# =============================================================================


def serialize(record: dict[str, Any]) -> str:
    """Custom JSON serializer for production logs.

    Includes context variables (request_id, user_id, action, entity_kind,
    entity_id) when set.

    Args:
        record: Loguru log record dictionary

    Returns:
        JSON string with selected fields and context
    """
    subset = {
        "time": record["time"].isoformat(),
        "level": record["level"].name,
        "message": record["message"],
        "module": record["module"],
        "function": record["function"],
        "line": record["line"],
    }

    if request_id := request_id_var.get():
        subset["request_id"] = request_id
    if user_id := user_id_var.get():
        subset["user_id"] = user_id
    if action := action_var.get():
        subset["action"] = action
    if entity_kind := entity_kind_var.get():
        subset["entity_kind"] = entity_kind
        subset["entity_id"] = entity_id_var.get()

    subset.update(record["extra"])

    if exc := record["exception"]:
        subset["exception"] = {
            "type": exc.type.__name__ if exc.type else None,
            "value": str(exc.value),
            "traceback": traceback.format_exception(
                exc.type, exc.value, exc.traceback
            ),
        }

    return json.dumps(subset, default=str)


def patching(record: dict[str, Any]) -> None:
    """Patch log records with serialized JSON.

    Args:
        record: Loguru log record to patch (modified in-place)
    """
    record["serialized"] = serialize(record)


def custom_formatter(record: dict[str, Any]) -> str:
    """Formatter emitting the pre-serialized JSON line."""
    return "{serialized}\n"


# =============================================================================
# Logger Configuration
# =============================================================================


def setup_logging(
    level: str = "INFO",
    json_logs: bool = False,
    log_file: Path | None = None,
    colorize: bool = True,
) -> Any:
    """Configure Loguru.

    This function:
    1. Removes default Loguru handler
    2. Patches logger with custom JSON serialization
    3. Adds stderr handler (JSON or human-readable)
    4. Optionally adds file handler with rotation/compression

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: Output JSON format (True for production)
        log_file: Optional file path for log output
        colorize: Enable colored output for human-readable logs

    Returns:
        Configured Loguru logger instance
    """
    loguru_logger.remove()

    patched_logger = loguru_logger.patch(patching)

    if json_logs:
        patched_logger.add(
            sys.stderr,
            level=level,
            format=custom_formatter,
            serialize=False,
        )
    else:
        format_str = (
            "<green>{time:HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
            "<level>{message}</level>"
        )

        patched_logger.add(
            sys.stderr,
            level=level,
            format=format_str,
            colorize=colorize,
        )

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)

        patched_logger.add(
            log_file,
            level=level,
            format=custom_formatter if json_logs else "{time} | {level} | {message}",
            rotation="50 MB",
            retention="14 days",
            compression="zip",
            enqueue=True,
        )

    return patched_logger


# =============================================================================
# Initialize Global Logger
# =============================================================================

logger = setup_logging(
    level=settings.log_level,
    json_logs=settings.log_json,
    log_file=settings.data_dir / "vibedev.log" if settings.log_to_file else None,
    colorize=not settings.log_json,
)


# =============================================================================
# Utility Functions
# =============================================================================


def set_request_context(
    request_id: str | None = None,
    user_id: str | None = None,
    action: str | None = None,
) -> None:
    """Set context variables for the current async context.

    Args:
        request_id: Unique identifier for the request
        user_id: Acting user identifier (if any)
        action: Action name (e.g., "toggle_like", "delete_project")
    """
    if request_id is not None:
        request_id_var.set(request_id)
    if user_id is not None:
        user_id_var.set(user_id)
    if action is not None:
        action_var.set(action)


def clear_request_context() -> None:
    """Clear all context variables for the current async context."""
    request_id_var.set(None)
    user_id_var.set(None)
    action_var.set(None)
    entity_kind_var.set(None)
    entity_id_var.set(None)


def get_request_context() -> dict[str, str | None]:
    """Get current context variable values.

    Returns:
        Dictionary with current context values (may contain None)
    """
    return {
        "request_id": request_id_var.get(),
        "user_id": user_id_var.get(),
        "action": action_var.get(),
        "entity_kind": entity_kind_var.get(),
        "entity_id": entity_id_var.get(),
    }


@contextmanager
def entity_context(kind: Any, entity_id: str | None) -> Iterator[None]:
    """Bind the entity being worked on to every record logged inside.

    Args:
        kind: Entity kind (an EntityKind or its string value)
        entity_id: Entity identifier

    Example:
        >>> with entity_context(EntityKind.PROJECT, "p-1"):
        ...     logger.info("View recorded")  # carries entity_kind and entity_id
    """
    kind_token = entity_kind_var.set(str(getattr(kind, "value", kind)))
    id_token = entity_id_var.set(entity_id)
    try:
        yield
    finally:
        entity_id_var.reset(id_token)
        entity_kind_var.reset(kind_token)


__all__ = [
    "logger",
    "request_id_var",
    "user_id_var",
    "action_var",
    "entity_kind_var",
    "entity_id_var",
    "entity_context",
    "set_request_context",
    "clear_request_context",
    "get_request_context",
    "setup_logging",
]
