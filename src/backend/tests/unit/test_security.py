"""
Unit tests for JWT access tokens.
"""

from datetime import timedelta
from types import SimpleNamespace

import jwt
import pytest

from core.config import settings
from core.security import (
    TokenExpiredError,
    TokenInvalidError,
    create_access_token,
    decode_token,
    get_user_id_from_token,
)


@pytest.fixture
def user():
    return SimpleNamespace(id=42, username="sara.ali", role="SECTION_SUPERVISOR")


def test_round_trip(user):
    payload = decode_token(create_access_token(user))

    assert payload["sub"] == "42"
    assert payload["username"] == "sara.ali"
    assert payload["role"] == "SECTION_SUPERVISOR"
    assert get_user_id_from_token(payload) == 42


def test_expired_token(user):
    token = create_access_token(user, expires_delta=timedelta(seconds=-5))

    with pytest.raises(TokenExpiredError):
        decode_token(token)


def test_foreign_signature_is_rejected(user):
    token = jwt.encode(
        {"sub": "42", "aud": settings.security.jwt_audience, "iss": settings.security.jwt_issuer},
        "some-other-secret",
        algorithm="HS256",
    )

    with pytest.raises(TokenInvalidError):
        decode_token(token)


def test_subject_must_be_numeric():
    with pytest.raises(TokenInvalidError):
        get_user_id_from_token({"sub": "not-a-number"})
    with pytest.raises(TokenInvalidError):
        get_user_id_from_token({})
