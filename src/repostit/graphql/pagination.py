"""
Cursor pagination helpers for the post feed.

Timestamps travel over the API as strings holding milliseconds since the
Unix epoch, and the feed cursor is the `createdAt` of the last post seen.
"""

from collections.abc import Sequence
from datetime import UTC, datetime
from typing import TypeVar

T = TypeVar("T")


class InvalidCursorError(ValueError):
    """Raised when a feed cursor is not an epoch-milliseconds string."""


def timestamp_ms(value: datetime) -> str:
    """Serialize a timestamp as epoch milliseconds. Naive values are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return str(int(value.timestamp() * 1000))


def parse_cursor(cursor: str) -> datetime:
    try:
        millis = int(cursor)
        return datetime.fromtimestamp(millis / 1000, UTC)
    except (TypeError, ValueError, OverflowError, OSError) as e:
        raise InvalidCursorError(f"invalid cursor: {cursor!r}") from e


def effective_limit(limit: int, max_limit: int) -> int:
    """Clamp a requested page size to [0, max_limit]."""
    return max(0, min(max_limit, limit))


def split_page(rows: Sequence[T], limit: int) -> tuple[list[T], bool]:
    """Split rows fetched with one extra row into (page, has_more)."""
    return list(rows[:limit]), len(rows) == limit + 1
