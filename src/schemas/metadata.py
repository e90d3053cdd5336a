"""Pydantic schemas for the metadata preview endpoint."""
from pydantic import BaseModel


class MetadataRequest(BaseModel):
    """Request to derive metadata for a URL before saving it."""

    url: str | None = None


class MetadataResponse(BaseModel):
    """Best-effort title, favicon, and summary for a URL."""

    model_config = {"from_attributes": True}

    title: str | None
    favicon: str | None
    summary: str | None
