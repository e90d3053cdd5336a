"""Metadata preview endpoint."""
import logging

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_current_user, get_settings
from core.config import Settings
from models.user import User
from schemas.metadata import MetadataRequest, MetadataResponse
from services.url_scraper import fetch_metadata

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/metadata", tags=["metadata"])


@router.post("", response_model=MetadataResponse)
async def get_metadata(
    data: MetadataRequest,
    current_user: User = Depends(get_current_user),  # noqa: ARG001
    settings: Settings = Depends(get_settings),
) -> MetadataResponse:
    """
    Derive title, favicon, and summary for a URL without saving it.

    Scraping is best-effort: unreachable pages, non-HTML content, and invalid
    URLs still return 200 with default metadata.
    """
    if not data.url or not data.url.strip():
        raise HTTPException(status_code=400, detail="URL is required")

    metadata = await fetch_metadata(
        data.url,
        timeout=settings.fetch_timeout,
        summary_endpoint=settings.summary_service_url or None,
        summary_timeout=settings.summary_timeout,
        summary_max_length=settings.summary_max_length,
        block_private_addresses=settings.block_private_addresses,
    )
    return MetadataResponse.model_validate(metadata)
