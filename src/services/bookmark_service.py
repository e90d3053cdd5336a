"""Service layer for bookmark operations against the relational store."""
import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import Settings, get_settings
from models.bookmark import Bookmark
from models.bookmark_order import BookmarkOrder
from schemas.bookmark import BookmarkCreate
from services.bookmark_ordering import apply_custom_order, filter_bookmarks
from services.url_scraper import fetch_metadata

logger = logging.getLogger(__name__)


def _parse_id(bookmark_id: str | UUID) -> UUID | None:
    """Bookmark ids are opaque to clients; anything that isn't a UUID simply matches nothing."""
    if isinstance(bookmark_id, UUID):
        return bookmark_id
    try:
        return UUID(str(bookmark_id))
    except ValueError:
        return None


async def get_order(db: AsyncSession, user_id: UUID) -> list[str]:
    """Return the user's custom bookmark order (empty if none was saved)."""
    order = await db.get(BookmarkOrder, user_id)
    if order is None:
        return []
    return [str(bookmark_id) for bookmark_id in order.bookmark_ids]


async def save_order(
    db: AsyncSession,
    user_id: UUID,
    ordered_ids: list[str],
) -> list[str]:
    """
    Replace the user's custom bookmark order.

    Ids are stored as given (as strings); unknown ids are harmless because they
    are ignored when the order is applied.

    Note: Does not commit. Caller (session generator) handles commit at request end.
    """
    bookmark_ids = [str(bookmark_id) for bookmark_id in ordered_ids]
    order = await db.get(BookmarkOrder, user_id)
    if order is None:
        order = BookmarkOrder(user_id=user_id, bookmark_ids=bookmark_ids)
        db.add(order)
    else:
        order.bookmark_ids = bookmark_ids
    await db.flush()
    return bookmark_ids


async def list_bookmarks(
    db: AsyncSession,
    user_id: UUID,
    query: str | None = None,
) -> list[Bookmark]:
    """
    Get the user's bookmarks in display order.

    Bookmarks named in the saved order come first, in that order; the rest follow
    newest first. An optional ``query`` keeps only bookmarks whose title, url,
    summary, or tags contain it (case-insensitive).
    """
    result = await db.execute(
        select(Bookmark)
        .where(Bookmark.user_id == user_id)
        .order_by(Bookmark.created_at.desc()),
    )
    bookmarks = list(result.scalars().all())
    ordered = apply_custom_order(bookmarks, await get_order(db, user_id))
    if query:
        return filter_bookmarks(ordered, query)
    return ordered


async def create_bookmark(
    db: AsyncSession,
    user_id: UUID,
    data: BookmarkCreate,
    settings: Settings | None = None,
) -> Bookmark:
    """
    Create a new bookmark for a user with automatic metadata scraping.

    Flow:
    1. Fetch the page unless the caller supplied title, favicon, AND summary
    2. Fill in whichever of those the caller left out (caller values take precedence)
    3. Assign id, owner, and created_at server-side

    Scraping is best-effort - failures fall back to default metadata and never
    block bookmark creation.

    Note: Does not commit. Caller (session generator) handles commit at request end.
    """
    settings = settings or get_settings()
    title = data.title
    favicon = data.favicon
    summary = data.summary

    if title is None or favicon is None or summary is None:
        metadata = await fetch_metadata(
            data.url,
            timeout=settings.fetch_timeout,
            summary_endpoint=settings.summary_service_url or None,
            summary_timeout=settings.summary_timeout,
            summary_max_length=settings.summary_max_length,
            block_private_addresses=settings.block_private_addresses,
        )
        if title is None:
            title = metadata.title
        if favicon is None:
            favicon = metadata.favicon
        if summary is None:
            summary = metadata.summary

    if title is not None and len(title) > settings.max_title_length:
        # Scraped titles are stored truncated rather than rejected
        title = title[:settings.max_title_length]

    bookmark = Bookmark(
        user_id=user_id,
        url=data.url,
        title=title,
        favicon=favicon,
        summary=summary,
        tags=list(data.tags),
    )
    db.add(bookmark)
    await db.flush()
    await db.refresh(bookmark)
    return bookmark


async def get_bookmark(
    db: AsyncSession,
    user_id: UUID,
    bookmark_id: str | UUID,
) -> Bookmark | None:
    """Get a bookmark by ID, scoped to user. Returns None if not found or wrong user."""
    parsed_id = _parse_id(bookmark_id)
    if parsed_id is None:
        return None
    result = await db.execute(
        select(Bookmark).where(
            Bookmark.id == parsed_id,
            Bookmark.user_id == user_id,
        ),
    )
    return result.scalar_one_or_none()


async def delete_bookmark(
    db: AsyncSession,
    user_id: UUID,
    bookmark_id: str | UUID,
) -> bool:
    """
    Delete a bookmark and prune it from the user's saved order.

    Returns True if deleted, False if not found (or owned by another user).

    Note: Does not commit. Caller (session generator) handles commit at request end.
    """
    bookmark = await get_bookmark(db, user_id, bookmark_id)
    if bookmark is None:
        return False

    deleted_id = str(bookmark.id)
    await db.delete(bookmark)

    order = await db.get(BookmarkOrder, user_id)
    if order is not None and deleted_id in order.bookmark_ids:
        order.bookmark_ids = [
            order_id for order_id in order.bookmark_ids if order_id != deleted_id
        ]
    await db.flush()
    return True


async def add_tag(
    db: AsyncSession,
    user_id: UUID,
    bookmark_id: str | UUID,
    tag: str,
) -> bool | None:
    """
    Append a tag to a bookmark.

    Returns:
        None if the bookmark is not found, False if it already has the tag
        (nothing is written), True if the tag was appended.

    Note: Does not commit. Caller (session generator) handles commit at request end.
    """
    bookmark = await get_bookmark(db, user_id, bookmark_id)
    if bookmark is None:
        return None

    tags = list(bookmark.tags or [])
    if tag in tags:
        return False

    # Assign a new list so the JSON column is marked dirty
    bookmark.tags = [*tags, tag]
    await db.flush()
    logger.info("Added tag %r to bookmark %s", tag, bookmark.id)
    return True
