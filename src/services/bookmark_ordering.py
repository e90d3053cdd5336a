"""
Ordering and filtering shared by the relational and local bookmark stores.

Both stores hold bookmarks with an ``id`` and a ``created_at`` (a datetime from
the database, an ISO-8601 string in local storage), plus an optional per-user
order list of ids saved by drag-to-reorder.
"""
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime
from typing import Protocol, TypeVar


class Orderable(Protocol):
    """Anything with an id and a creation timestamp."""

    id: object
    created_at: datetime | str


class Filterable(Orderable, Protocol):
    """A bookmark-shaped object with searchable text fields."""

    url: str
    title: str | None
    summary: str | None
    tags: list[str]


T = TypeVar('T', bound=Orderable)
F = TypeVar('F', bound=Filterable)


def created_timestamp(value: datetime | str | None) -> float:
    """
    Convert a creation time to a sortable POSIX timestamp.

    Naive datetimes (SQLite drops the timezone) are taken as UTC. Missing or
    unparseable values sort as the oldest possible time.
    """
    if value is None:
        return float('-inf')
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            return float('-inf')
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.timestamp()


def sort_newest_first(bookmarks: Iterable[T]) -> list[T]:
    """Sort by creation time, newest first (stable for equal timestamps)."""
    return sorted(bookmarks, key=lambda b: created_timestamp(b.created_at), reverse=True)


def apply_custom_order(bookmarks: Iterable[T], order_ids: Sequence[object] | None) -> list[T]:
    """
    Order bookmarks by a saved list of ids.

    Bookmarks whose id is in ``order_ids`` come first, in the position of the
    id's first occurrence. The rest follow, newest first. Ids are compared as
    strings; ids in ``order_ids`` that match no bookmark are ignored.
    """
    bookmarks = list(bookmarks)
    if not order_ids:
        return sort_newest_first(bookmarks)

    positions: dict[str, int] = {}
    for index, bookmark_id in enumerate(order_ids):
        positions.setdefault(str(bookmark_id), index)

    ordered = [b for b in bookmarks if str(b.id) in positions]
    ordered.sort(key=lambda b: positions[str(b.id)])
    unordered = [b for b in bookmarks if str(b.id) not in positions]
    return ordered + sort_newest_first(unordered)


def matches_filter(bookmark: Filterable, term: str) -> bool:
    """Case-insensitive substring match on title, url, summary, or any tag."""
    needle = term.lower()
    return (
        needle in (bookmark.title or '').lower()
        or needle in bookmark.url.lower()
        or needle in (bookmark.summary or '').lower()
        or any(needle in tag.lower() for tag in bookmark.tags or [])
    )


def filter_bookmarks(bookmarks: Iterable[F], term: str | None) -> list[F]:
    """Keep bookmarks matching ``term``; an empty term keeps everything."""
    if not term or not term.strip():
        return list(bookmarks)
    return [b for b in bookmarks if matches_filter(b, term.strip())]
