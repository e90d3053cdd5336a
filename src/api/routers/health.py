"""Health check endpoints."""
import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_settings
from core.config import Settings


logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    database: str
    auth: str


def _auth_status(settings: Settings) -> str:
    """
    Describe how requests are authenticated.

    ``unconfigured`` means every bearer token will be refused, which leaves the
    bookmark endpoints unusable even though the process is up.
    """
    if settings.dev_mode:
        return "dev_mode"
    if not settings.auth_jwt_secret:
        return "unconfigured"
    return "configured"


@router.get("/health", response_model=HealthResponse)
async def health_check(
    db: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
) -> HealthResponse:
    """Check database reachability and whether authentication can succeed."""
    db_status = "healthy"
    try:
        await db.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError):
        logger.exception("Database health check failed")
        db_status = "unhealthy"

    auth_status = _auth_status(settings)
    if auth_status == "unconfigured":
        logger.warning("Health check: AUTH_JWT_SECRET is not set and DEV_MODE is off")

    degraded = db_status != "healthy" or auth_status == "unconfigured"
    return HealthResponse(
        status="degraded" if degraded else "healthy",
        database=db_status,
        auth=auth_status,
    )
