"""Utility functions for VibeDev.

This module provides common helper functions for datetime handling,
LIKE-pattern escaping, and small data transformations.
"""

import math
import uuid
from datetime import UTC, date, datetime
from typing import Any

from dateutil import parser as dateutil_parser  # type: ignore[import-untyped]


def parse_datetime(value: str | datetime | None) -> datetime | None:
    """Parse ISO8601 timestamp string into timezone-aware UTC datetime.

    Args:
        value: ISO8601 timestamp string, datetime object, or None

    Returns:
        Parsed timezone-aware datetime in UTC, or None if input is None

    Raises:
        ValueError: If timestamp format is invalid

    Example:
        >>> dt = parse_datetime("2024-01-15T10:30:00Z")
        >>> dt.tzinfo
        datetime.timezone.utc
    """
    if value is None:
        return None

    # If already a datetime object, just ensure it's in UTC
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    dt = dateutil_parser.isoparse(value)

    # Ensure timezone-aware in UTC
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)

    return dt.astimezone(UTC)


def utc_now() -> datetime:
    """Get current UTC timestamp as timezone-aware datetime.

    Returns:
        Current datetime in UTC with timezone information
    """
    return datetime.now(UTC)


def format_iso(dt: datetime | None) -> str | None:
    """Format datetime as ISO8601 string with 'Z' suffix.

    Microseconds are always rendered so stored timestamps compare
    correctly as plain strings.

    Args:
        dt: Datetime object or None

    Returns:
        ISO8601 formatted string or None if input is None

    Example:
        >>> from datetime import UTC
        >>> dt = datetime(2024, 1, 15, 10, 30, tzinfo=UTC)
        >>> format_iso(dt)
        '2024-01-15T10:30:00.000000Z'
    """
    if dt is None:
        return None
    dt = parse_datetime(dt)
    return dt.isoformat(timespec="microseconds").replace("+00:00", "Z")


def utc_now_iso() -> str:
    """Get current UTC timestamp as ISO8601 string with 'Z' suffix.

    Example:
        >>> utc_now_iso().endswith('Z')
        True
    """
    return format_iso(utc_now())


def today_utc() -> str:
    """Current UTC calendar day as ``YYYY-MM-DD``."""
    return utc_now().date().isoformat()


def day_start_iso(day: date) -> str:
    """ISO timestamp for midnight UTC at the start of ``day``."""
    return format_iso(datetime(day.year, day.month, day.day, tzinfo=UTC))


def new_id() -> str:
    """Generate an opaque entity identifier."""
    return str(uuid.uuid4())


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so user input matches literally.

    Args:
        term: Raw search term

    Returns:
        Term with ``\\``, ``%`` and ``_`` escaped using backslash

    Example:
        >>> escape_like("100%_done")
        '100\\\\%\\\\_done'
    """
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def unique_preserving_order(items: list[Any]) -> list[Any]:
    """Drop duplicates while keeping first-seen order.

    Example:
        >>> unique_preserving_order(["a", "b", "a"])
        ['a', 'b']
    """
    return list(dict.fromkeys(items))


def count_words(text: str) -> int:
    """Count whitespace-separated words."""
    return len(text.split())


def reading_time_minutes(text: str, words_per_minute: int = 200) -> int:
    """Estimate reading time, rounded up, never below one minute."""
    return max(1, math.ceil(count_words(text) / words_per_minute))


def extract_text(node: Any) -> str:
    """Flatten a rich-text JSON document into plain text.

    Walks nested ``content`` lists collecting every ``text`` value.

    Args:
        node: Document node (dict, list, or string)

    Returns:
        Space-joined text content
    """
    if isinstance(node, str):
        return node
    if isinstance(node, list):
        return " ".join(filter(None, (extract_text(child) for child in node)))
    if isinstance(node, dict):
        parts = []
        if isinstance(node.get("text"), str):
            parts.append(node["text"])
        if "content" in node:
            parts.append(extract_text(node["content"]))
        return " ".join(filter(None, parts))
    return ""


