"""Pydantic schemas for bookmark endpoints and local bookmark records."""
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from core.config import get_settings
from services.url_utils import parse_http_url, validate_and_normalize_url


def validate_tag(tag: str | None) -> str:
    """
    Validate a single tag.

    Tags are trimmed but otherwise kept as entered; duplicates are detected by
    exact, case-sensitive comparison.

    Raises:
        ValueError: If the tag is missing, blank, or too long.
    """
    if not isinstance(tag, str) or not tag.strip():
        raise ValueError("Tag cannot be empty")
    normalized = tag.strip()
    max_length = get_settings().max_tag_length
    if len(normalized) > max_length:
        raise ValueError(
            f"Tag exceeds maximum length of {max_length:,} characters "
            f"(got {len(normalized):,} characters).",
        )
    return normalized


def validate_tags(tags: list[str]) -> list[str]:
    """Validate tags, skipping blank entries and dropping exact duplicates (first wins)."""
    normalized: list[str] = []
    for tag in tags:
        if not isinstance(tag, str) or not tag.strip():
            continue
        validated = validate_tag(tag)
        if validated not in normalized:
            normalized.append(validated)
    return normalized


def validate_favicon(favicon: str | None) -> str | None:
    """Validate that a favicon, when given, is an absolute http(s) URL."""
    if favicon is None or not favicon.strip():
        return None
    favicon = favicon.strip()
    if parse_http_url(favicon) is None:
        raise ValueError("Favicon must be an absolute http(s) URL")
    return favicon


def validate_title_length(title: str | None) -> str | None:
    """Validate that title doesn't exceed maximum length."""
    settings = get_settings()
    if title is not None and len(title) > settings.max_title_length:
        raise ValueError(
            f"Title exceeds maximum length of {settings.max_title_length:,} characters "
            f"(got {len(title):,} characters).",
        )
    return title


class BookmarkCreate(BaseModel):
    """
    Schema for creating a new bookmark.

    Only ``url`` is required; it may omit the scheme (``https://`` is assumed).
    Title, favicon, and summary are fetched from the page when not supplied.
    """

    url: str
    title: str | None = None
    favicon: str | None = None
    summary: str | None = None
    tags: list[str] = []

    @field_validator("url", mode="before")
    @classmethod
    def normalize_url(cls, v: Any) -> str:
        """Normalize the URL and verify it parses."""
        if v is not None and not isinstance(v, str):
            raise ValueError("URL must be a string")
        return validate_and_normalize_url(v)

    @field_validator("favicon")
    @classmethod
    def check_favicon(cls, v: str | None) -> str | None:
        """Validate favicon is an absolute URL."""
        return validate_favicon(v)

    @field_validator("title")
    @classmethod
    def check_title_length(cls, v: str | None) -> str | None:
        """Validate title length."""
        return validate_title_length(v)

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v: list[str] | None) -> list[str]:
        """Validate tags and drop duplicates."""
        if v is None:
            return []
        return validate_tags(v)


class BookmarkResponse(BaseModel):
    """Schema for bookmark responses (both stores)."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    url: str
    title: str | None = None
    favicon: str | None = None
    summary: str | None = None
    tags: list[str] = []
    created_at: datetime

    @field_validator("id", "user_id", mode="before")
    @classmethod
    def stringify_id(cls, v: Any) -> str:
        """Database ids are UUIDs; responses expose them as opaque strings."""
        return str(v)

    @field_validator("tags", mode="before")
    @classmethod
    def default_tags(cls, v: list[str] | None) -> list[str]:
        """Older records may have no tags stored."""
        return v or []


class TagCreate(BaseModel):
    """Schema for adding a tag to a bookmark."""

    tag: str

    @field_validator("tag", mode="before")
    @classmethod
    def check_tag(cls, v: Any) -> str:
        """Validate the tag."""
        return validate_tag(v)


class TagAddResponse(BaseModel):
    """Result of adding a tag: whether it was new, and the bookmark's tags afterwards."""

    added: bool
    tags: list[str]


class BookmarkOrderUpdate(BaseModel):
    """Schema for replacing the user's custom bookmark order."""

    bookmark_ids: list[str] = Field(
        description="Bookmark ids in display order. Ids not listed sort newest-first after these.",
    )

    @field_validator("bookmark_ids", mode="before")
    @classmethod
    def stringify_ids(cls, v: Any) -> Any:
        """Accept numeric ids; ids are opaque strings."""
        if isinstance(v, list):
            return [str(item) for item in v]
        return v


class LocalBookmark(BaseModel):
    """A bookmark record as persisted by the local key/value store."""

    id: str
    user_id: str
    url: str
    title: str | None = None
    favicon: str | None = None
    summary: str | None = None
    tags: list[str] = []
    created_at: str

    @field_validator("id", "user_id", mode="before")
    @classmethod
    def stringify_id(cls, v: Any) -> str:
        """Ids may have been stored as numbers; they are always handled as strings."""
        return str(v)

    @field_validator("tags", mode="before")
    @classmethod
    def default_tags(cls, v: list[str] | None) -> list[str]:
        """Records written without tags get an empty list."""
        return v or []


class LocalBookmarkCreate(BaseModel):
    """A new local bookmark before the store assigns its id."""

    user_id: str
    url: str
    title: str | None = None
    favicon: str | None = None
    summary: str | None = None
    tags: list[str] = []
    created_at: str = Field(default_factory=lambda: datetime.now().astimezone().isoformat())

    @field_validator("user_id", mode="before")
    @classmethod
    def stringify_user_id(cls, v: Any) -> str:
        """User ids are opaque strings."""
        return str(v)

    @field_validator("favicon")
    @classmethod
    def check_favicon(cls, v: str | None) -> str | None:
        """Validate favicon is an absolute URL."""
        return validate_favicon(v)

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v: list[str] | None) -> list[str]:
        """Validate tags and drop duplicates."""
        if v is None:
            return []
        return validate_tags(v)
