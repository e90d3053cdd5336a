"""Bookmark endpoints."""
from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_current_user, get_settings
from core.config import Settings
from models.user import User
from schemas.bookmark import (
    BookmarkCreate,
    BookmarkOrderUpdate,
    BookmarkResponse,
    TagAddResponse,
    TagCreate,
)
from services import bookmark_service

router = APIRouter(prefix="/bookmarks", tags=["bookmarks"])


@router.post("/", response_model=BookmarkResponse, status_code=201)
async def create_bookmark(
    data: BookmarkCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
) -> BookmarkResponse:
    """
    Create a new bookmark.

    Title, favicon, and summary are scraped from the page when not supplied.
    The id, owner, and created_at are always assigned by the server.
    """
    bookmark = await bookmark_service.create_bookmark(db, current_user.id, data, settings)
    return BookmarkResponse.model_validate(bookmark)


@router.get("/", response_model=list[BookmarkResponse])
async def list_bookmarks(
    q: str | None = Query(default=None, description="Filter by title, url, summary, or tag (case-insensitive)"),  # noqa: E501
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> list[BookmarkResponse]:
    """
    List the current user's bookmarks.

    Bookmarks in the saved custom order come first, in that order; the rest
    follow newest first.
    """
    bookmarks = await bookmark_service.list_bookmarks(db, current_user.id, query=q)
    return [BookmarkResponse.model_validate(b) for b in bookmarks]


@router.put("/order", status_code=204)
async def save_bookmark_order(
    data: BookmarkOrderUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> Response:
    """Replace the current user's custom bookmark order."""
    await bookmark_service.save_order(db, current_user.id, data.bookmark_ids)
    return Response(status_code=204)


@router.get("/{bookmark_id}", response_model=BookmarkResponse)
async def get_bookmark(
    bookmark_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> BookmarkResponse:
    """Get a single bookmark by ID."""
    bookmark = await bookmark_service.get_bookmark(db, current_user.id, bookmark_id)
    if bookmark is None:
        raise HTTPException(status_code=404, detail="Bookmark not found")
    return BookmarkResponse.model_validate(bookmark)


@router.delete("/{bookmark_id}", status_code=204)
async def delete_bookmark(
    bookmark_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> Response:
    """Delete a bookmark and remove it from the custom order."""
    deleted = await bookmark_service.delete_bookmark(db, current_user.id, bookmark_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Bookmark not found")
    return Response(status_code=204)


@router.post("/{bookmark_id}/tags", response_model=TagAddResponse)
async def add_tag(
    bookmark_id: str,
    data: TagCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> TagAddResponse:
    """
    Add a tag to a bookmark.

    ``added`` is false when the bookmark already had the tag (tags are
    case-sensitive and never duplicated).
    """
    added = await bookmark_service.add_tag(db, current_user.id, bookmark_id, data.tag)
    if added is None:
        raise HTTPException(status_code=404, detail="Bookmark not found")
    bookmark = await bookmark_service.get_bookmark(db, current_user.id, bookmark_id)
    return TagAddResponse(added=added, tags=list(bookmark.tags))
