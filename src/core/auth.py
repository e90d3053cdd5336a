"""Authentication: bearer JWT validation and user resolution."""
import logging

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import Settings, get_settings
from db.session import get_async_session
from models.user import User

logger = logging.getLogger(__name__)

# HTTP Bearer token scheme
security = HTTPBearer(auto_error=False)

DEV_USER_SUBJECT = "dev|local-development-user"
DEV_USER_EMAIL = "dev@localhost"


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_jwt(token: str, settings: Settings) -> dict:
    """
    Decode and validate a JWT issued by the identity provider.

    Tokens are HS256-signed with the shared ``AUTH_JWT_SECRET``. The audience is
    always checked; the issuer only when one is configured.

    Raises:
        HTTPException: If the token is invalid, expired, or has wrong audience/issuer,
            or if no secret is configured.
    """
    if not settings.auth_jwt_secret:
        logger.error("AUTH_JWT_SECRET is not configured; rejecting bearer token")
        raise _unauthorized("Authentication is not configured")

    options = {"require": ["exp", "sub"]}
    try:
        if settings.auth_issuer:
            return jwt.decode(
                token,
                settings.auth_jwt_secret,
                algorithms=["HS256"],
                audience=settings.auth_audience,
                issuer=settings.auth_issuer,
                options=options,
            )
        return jwt.decode(
            token,
            settings.auth_jwt_secret,
            algorithms=["HS256"],
            audience=settings.auth_audience,
            options=options,
        )
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token has expired")
    except jwt.InvalidAudienceError:
        raise _unauthorized("Invalid audience")
    except jwt.InvalidIssuerError:
        raise _unauthorized("Invalid issuer")
    except jwt.PyJWTError as e:
        raise _unauthorized(f"Invalid token: {e}")


async def get_or_create_user(
    db: AsyncSession,
    auth_subject: str,
    email: str | None = None,
) -> User:
    """
    Get existing user or create new one from token claims.

    Note: Uses flush(), not commit. Session generator handles commit at request end.
    """
    result = await db.execute(select(User).where(User.auth_subject == auth_subject))
    user = result.scalar_one_or_none()

    if user is None:
        user = User(auth_subject=auth_subject, email=email)
        db.add(user)
        await db.flush()
        logger.info("Created user for subject %s", auth_subject)
    elif email and user.email != email:
        # Update email if changed at the identity provider
        user.email = email
        await db.flush()

    return user


async def get_or_create_dev_user(db: AsyncSession) -> User:
    """Get or create a development user for DEV_MODE."""
    return await get_or_create_user(
        db,
        auth_subject=DEV_USER_SUBJECT,
        email=DEV_USER_EMAIL,
    )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
) -> User:
    """
    Dependency that validates the bearer token and returns the current user.

    The token's ``sub`` claim identifies the user; a local user row is created
    on first sight. In DEV_MODE, bypasses auth and returns a local dev user.
    """
    if settings.dev_mode:
        return await get_or_create_dev_user(db)

    if credentials is None:
        raise _unauthorized("Not authenticated")

    payload = decode_jwt(credentials.credentials, settings)

    auth_subject = payload.get("sub")
    if not auth_subject:
        raise _unauthorized("Invalid token: missing sub claim")

    return await get_or_create_user(db, auth_subject=auth_subject, email=payload.get("email"))
