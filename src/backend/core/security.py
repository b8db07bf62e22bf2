"""
Security utilities for JWT access tokens.

Token issuance (login, refresh) lives outside this service; these helpers
decode the Bearer token presented by callers and mint tokens for the
bootstrap user and the test suite.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from uuid import uuid4

import jwt
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError

from core.config import settings


class SecurityError(Exception):
    """Base exception for security-related errors."""

    pass


class TokenExpiredError(SecurityError):
    """Raised when a token has expired."""

    pass


class TokenInvalidError(SecurityError):
    """Raised when a token is invalid."""

    pass


def create_access_token(user, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token for the given user.

    Args:
        user: User row; ``id``, ``username`` and ``role`` go into the payload
        expires_delta: Custom lifetime (default: SECURITY_ACCESS_TOKEN_EXPIRE_DAYS)

    Returns:
        JWT access token string
    """
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(days=settings.security.access_token_expire_days))

    payload = {
        "sub": str(user.id),
        "username": user.username,
        "role": str(getattr(user.role, "value", user.role)),
        "type": "access",
        "iat": int(now.timestamp()),
        "exp": int(expire.timestamp()),
        "jti": str(uuid4()),
        "iss": settings.security.jwt_issuer,
        "aud": settings.security.jwt_audience,
    }

    try:
        return jwt.encode(
            payload,
            settings.security.jwt_secret_key_property,
            algorithm=settings.security.algorithm,
        )
    except Exception as e:
        raise SecurityError(f"Failed to create access token: {str(e)}")


def decode_token(token: str) -> Dict[str, Any]:
    """Decode and validate a JWT token.

    Raises:
        TokenExpiredError: If token has expired
        TokenInvalidError: If token is invalid
    """
    try:
        return jwt.decode(
            token,
            settings.security.jwt_secret_key_property,
            algorithms=[settings.security.algorithm],
            audience=settings.security.jwt_audience,
            issuer=settings.security.jwt_issuer,
        )
    except ExpiredSignatureError:
        raise TokenExpiredError("Token has expired")
    except InvalidTokenError as e:
        raise TokenInvalidError(f"Invalid token: {str(e)}")


def get_user_id_from_token(payload: Dict[str, Any]) -> int:
    """Extract the numeric user id from the ``sub`` claim."""
    subject = payload.get("sub")
    if subject is None:
        raise TokenInvalidError("Token has no subject")
    try:
        return int(subject)
    except (TypeError, ValueError):
        raise TokenInvalidError("Token subject is not a user id")
