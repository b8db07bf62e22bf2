"""
Authentication dependencies for FastAPI.

The Bearer token is decoded with PyJWT; the ``sub`` claim names the user
whose row becomes the acting user of the request.
"""

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_session
from core.exceptions import UnauthorizedError
from core.permissions import ActingUser
from core.security import SecurityError, decode_token, get_user_id_from_token
from db import User

# HTTP Bearer security scheme
security = HTTPBearer(auto_error=False)


class AuthenticationError(UnauthorizedError):
    """Missing or unusable credentials."""

    default_message = "Authentication required"


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: AsyncSession = Depends(get_session),
) -> User:
    """Get the current authenticated user from the JWT token.

    Raises:
        AuthenticationError: If the token is missing or invalid, or the user
            is unknown or inactive
    """
    if credentials is None:
        raise AuthenticationError()

    try:
        payload = decode_token(credentials.credentials)
        user_id = get_user_id_from_token(payload)
    except SecurityError as e:
        raise AuthenticationError(str(e))

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if not user:
        raise AuthenticationError("User not found")

    if not user.is_active:
        raise AuthenticationError("User account is inactive")

    return user


async def get_acting_user(
    current_user: User = Depends(get_current_user),
) -> ActingUser:
    """Snapshot the authenticated user as the ActingUser passed to services."""
    return ActingUser.from_user(current_user)
