"""Tests for authentication when DEV_MODE is disabled."""
from collections.abc import AsyncGenerator
from datetime import timedelta

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import Settings
from tests.api.conftest import auth_settings, make_token


@pytest.fixture
async def auth_required_client(
    db_session: AsyncSession,
) -> AsyncGenerator[AsyncClient]:
    """Create a test client with auth required (DEV_MODE=False)."""
    from api.main import app
    from core.config import get_settings
    from db.session import get_async_session

    async def override_get_async_session() -> AsyncGenerator[AsyncSession]:
        yield db_session

    app.dependency_overrides[get_async_session] = override_get_async_session
    app.dependency_overrides[get_settings] = auth_settings

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


async def test_get_me_without_token_returns_401(
    auth_required_client: AsyncClient,
) -> None:
    """Test that /users/me returns 401 when no token is provided."""
    response = await auth_required_client.get("/users/me")

    assert response.status_code == 401
    assert response.json()["detail"] == "Not authenticated"
    assert response.headers["WWW-Authenticate"] == "Bearer"


async def test_get_me_with_malformed_token_returns_401(
    auth_required_client: AsyncClient,
) -> None:
    """Test that /users/me returns 401 with a malformed token."""
    response = await auth_required_client.get("/users/me", headers=_bearer("invalid-token"))

    assert response.status_code == 401


async def test_get_me_with_valid_token_creates_user(
    auth_required_client: AsyncClient,
) -> None:
    """Test that a valid token maps to a user created on first sight."""
    token = make_token("provider|user-1", email="user1@example.com")

    response = await auth_required_client.get("/users/me", headers=_bearer(token))
    assert response.status_code == 200
    data = response.json()
    assert data["auth_subject"] == "provider|user-1"
    assert data["email"] == "user1@example.com"

    # Same subject resolves to the same user
    response = await auth_required_client.get("/users/me", headers=_bearer(token))
    assert response.json()["id"] == data["id"]


async def test_expired_token_returns_401(auth_required_client: AsyncClient) -> None:
    """Test that an expired token is rejected."""
    token = make_token("provider|user-1", expires_in=timedelta(minutes=-5))

    response = await auth_required_client.get("/users/me", headers=_bearer(token))

    assert response.status_code == 401
    assert response.json()["detail"] == "Token has expired"


async def test_wrong_audience_returns_401(auth_required_client: AsyncClient) -> None:
    """Test that a token for another audience is rejected."""
    token = make_token("provider|user-1", audience="someone-else")

    response = await auth_required_client.get("/users/me", headers=_bearer(token))

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid audience"


async def test_wrong_signature_returns_401(auth_required_client: AsyncClient) -> None:
    """Test that a token signed with another secret is rejected."""
    token = make_token("provider|user-1", secret="another-secret-that-is-also-32-bytes-long")

    response = await auth_required_client.get("/users/me", headers=_bearer(token))

    assert response.status_code == 401
    assert response.json()["detail"].startswith("Invalid token")


async def test_issuer_checked_when_configured(
    auth_required_client: AsyncClient,
) -> None:
    """Test that the issuer claim is enforced once AUTH_ISSUER is set."""
    from api.main import app
    from core.config import get_settings

    def override_get_settings() -> Settings:
        return auth_settings().model_copy(update={"auth_issuer": "https://issuer.example.com"})

    app.dependency_overrides[get_settings] = override_get_settings

    wrong = make_token("provider|user-1", iss="https://other.example.com")
    response = await auth_required_client.get("/users/me", headers=_bearer(wrong))
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid issuer"

    right = make_token("provider|user-1", iss="https://issuer.example.com")
    response = await auth_required_client.get("/users/me", headers=_bearer(right))
    assert response.status_code == 200


async def test_bookmarks_require_authentication(auth_required_client: AsyncClient) -> None:
    """Test that bookmark and metadata routes reject anonymous requests."""
    assert (await auth_required_client.get("/bookmarks/")).status_code == 401
    assert (await auth_required_client.post("/metadata", json={"url": "example.com"})).status_code == 401


async def test_get_me_in_dev_mode_returns_dev_user(client: AsyncClient) -> None:
    """Test that DEV_MODE bypasses auth with a fixed local user."""
    response = await client.get("/users/me")

    assert response.status_code == 200
    assert response.json()["auth_subject"] == "dev|local-development-user"
    assert response.json()["email"] == "dev@localhost"
