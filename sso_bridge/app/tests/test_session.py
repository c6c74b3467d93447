"""
Tests for the source session collaborator (app/auth/session.py).
"""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from app.auth.session import (
    SessionError,
    create_session_jwt,
    extract_token_from_header,
    principal_from_claims,
    verify_session_jwt,
)
from app.models import Principal


class TestSessionJwt:
    """Creation and verification"""

    def test_round_trip(self, settings):
        token = create_session_jwt({"sub": 42, "email": "a@b.com"}, settings)
        claims = verify_session_jwt(token, settings)
        assert claims["sub"] == "42"
        assert claims["email"] == "a@b.com"
        assert claims["iss"] == settings.SESSION_JWT_ISSUER

    def test_missing_sub(self, settings):
        with pytest.raises(SessionError):
            create_session_jwt({"email": "a@b.com"}, settings)

    def test_empty_token(self, settings):
        with pytest.raises(SessionError):
            verify_session_jwt("", settings)

    def test_expired(self, settings):
        past = datetime.now(timezone.utc) - timedelta(hours=2)
        token = jwt.encode(
            {"sub": "42", "iat": past, "exp": past + timedelta(minutes=5), "iss": settings.SESSION_JWT_ISSUER},
            settings.SESSION_JWT_SECRET,
            algorithm="HS256",
        )
        with pytest.raises(SessionError) as exc_info:
            verify_session_jwt(token, settings)
        assert "expired" in str(exc_info.value).lower()

    def test_wrong_issuer(self, settings):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"sub": "42", "iat": now, "exp": now + timedelta(minutes=5), "iss": "someone-else"},
            settings.SESSION_JWT_SECRET,
            algorithm="HS256",
        )
        with pytest.raises(SessionError):
            verify_session_jwt(token, settings)

    def test_wrong_key(self, settings):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"sub": "42", "iat": now, "exp": now + timedelta(minutes=5), "iss": settings.SESSION_JWT_ISSUER},
            "a-completely-different-secret-value-123",
            algorithm="HS256",
        )
        with pytest.raises(SessionError):
            verify_session_jwt(token, settings)


class TestPrincipalMapping:

    def test_numeric_subject_becomes_int(self):
        assert principal_from_claims({"sub": "42", "email": "a@b.com"}) == Principal(id=42, email="a@b.com")

    def test_opaque_subject_kept(self):
        assert principal_from_claims({"sub": "u-7"}).id == "u-7"

    def test_missing_email_is_empty(self):
        assert principal_from_claims({"sub": "42"}).email == ""


@pytest.mark.parametrize(
    "header,expected",
    [
        (None, None),
        ("", None),
        ("Bearer abc", "abc"),
        ("bearer abc", "abc"),
        ("Basic abc", None),
        ("Bearer", None),
    ],
)
def test_extract_token_from_header(header, expected):
    assert extract_token_from_header(header) == expected
