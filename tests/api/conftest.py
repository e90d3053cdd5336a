"""Shared fixtures and helpers for API tests."""
import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, patch

import jwt
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from api.main import app
from core.config import Settings, get_settings
from db.session import get_async_session
from services.html_metadata import PageMetadata

# Set by the root conftest before any app import
TEST_DATABASE_URL = os.environ["DATABASE_URL"]
TEST_JWT_SECRET = os.environ["AUTH_JWT_SECRET"]

# Constant for non-existent entity ID
FAKE_UUID = "00000000-0000-0000-0000-000000000000"

SCRAPED = PageMetadata(
    title="Scraped Title",
    favicon="https://example.com/favicon.ico",
    summary="Scraped summary.",
)


def make_token(
    subject: str,
    secret: str = TEST_JWT_SECRET,
    audience: str = "authenticated",
    expires_in: timedelta = timedelta(hours=1),
    **claims: object,
) -> str:
    """Mint an HS256 bearer token like the identity provider would."""
    payload = {
        "sub": subject,
        "aud": audience,
        "exp": datetime.now(UTC) + expires_in,
        **claims,
    }
    return jwt.encode(payload, secret, algorithm="HS256")


def auth_settings() -> Settings:
    """Settings with auth enforced (DEV_MODE off)."""
    return Settings(
        database_url=TEST_DATABASE_URL,
        dev_mode=False,
        auth_jwt_secret=TEST_JWT_SECRET,
    )


@asynccontextmanager
async def create_user_client(
    db_session: AsyncSession,
    auth_subject: str,
    email: str | None = None,
) -> AsyncGenerator[AsyncClient]:
    """
    Create an AsyncClient authenticated with a bearer token for ``auth_subject``.

    Overrides FastAPI dependencies to disable dev_mode while the client is open,
    then restores the previous overrides on exit.
    """
    previous = dict(app.dependency_overrides)
    get_settings.cache_clear()

    async def override_get_async_session() -> AsyncGenerator[AsyncSession]:
        yield db_session

    app.dependency_overrides[get_async_session] = override_get_async_session
    app.dependency_overrides[get_settings] = auth_settings

    claims = {"email": email} if email else {}
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
            headers={"Authorization": f"Bearer {make_token(auth_subject, **claims)}"},
        ) as user_client:
            yield user_client
    finally:
        app.dependency_overrides.clear()
        app.dependency_overrides.update(previous)


@pytest.fixture
def mock_fetch_metadata() -> AsyncMock:
    """Replace page scraping during bookmark creation with canned metadata."""
    with patch(
        "services.bookmark_service.fetch_metadata",
        new_callable=AsyncMock,
        return_value=SCRAPED,
    ) as mock:
        yield mock
