"""
Unit Tests for the SSO Token Codec
==================================

Tests for app/auth/tokens.py

Test Coverage:
--------------
1. Issuance produces the documented payload signature
2. Wire encoding round trip and the exact wire layout
3. Malformed inputs fail with MALFORMED_TOKEN only
4. Verification: acceptance window, expiry, future tokens, wrong secret
"""

import base64
import hashlib
import hmac

import pytest

from app.auth import tokens
from app.auth.errors import (
    BadSignatureError,
    ErrorCode,
    MalformedTokenError,
    TokenExpiredError,
)
from app.auth.tokens import TokenCodec
from app.models import Principal, SsoToken

SECRET = "wp-shared-secret-0123456789abcdef"
NOW = 1700000000


@pytest.fixture
def principal():
    return Principal(id=42, email="a@b.com")


# ============================================================================
# Issuance
# ============================================================================

class TestIssue:
    """Token issuance"""

    def test_signature_matches_hmac_of_pipe_payload(self, principal):
        token = tokens.issue(principal, SECRET, NOW)

        expected = hmac.new(
            SECRET.encode(), b"42|a@b.com|1700000000", hashlib.sha256
        ).hexdigest()
        assert token.signature == expected
        assert token.principal_id == "42"
        assert token.email == "a@b.com"
        assert token.issued_at == NOW

    def test_issue_is_deterministic(self, principal):
        assert tokens.issue(principal, SECRET, NOW) == tokens.issue(principal, SECRET, NOW)

    def test_different_secret_changes_signature(self, principal):
        a = tokens.issue(principal, SECRET, NOW)
        b = tokens.issue(principal, "another-secret", NOW)
        assert a.signature != b.signature

    def test_empty_secret_rejected(self, principal):
        with pytest.raises(ValueError):
            tokens.issue(principal, "", NOW)

    @pytest.mark.parametrize("bad_id", ["a:b", "a|b"])
    def test_separator_in_id_rejected(self, bad_id):
        with pytest.raises(ValueError):
            tokens.issue(Principal(id=bad_id, email="a@b.com"), SECRET, NOW)


# ============================================================================
# Wire Encoding
# ============================================================================

class TestWireFormat:
    """Encoding and decoding"""

    def test_wire_layout(self, principal):
        token = tokens.issue(principal, SECRET, NOW)
        raw = base64.b64decode(tokens.encode(token)).decode()
        assert raw == f"42:a@b.com:1700000000:{token.signature}"

    def test_round_trip(self, principal):
        token = tokens.issue(principal, SECRET, NOW)
        assert tokens.decode(tokens.encode(token)) == token

    def test_round_trip_string_id_and_unicode_email(self):
        token = tokens.issue(Principal(id="u-7", email="пользователь@пример.рф"), SECRET, NOW)
        assert tokens.decode(tokens.encode(token)) == token

    def test_email_containing_colon_survives(self):
        token = tokens.issue(Principal(id=7, email='"odd:name"@b.com'), SECRET, NOW)
        decoded = tokens.decode(tokens.encode(token))
        assert decoded.email == '"odd:name"@b.com'

    @pytest.mark.parametrize(
        "value",
        [
            "",
            "not base64 at all!!",
            "%%%%",
            base64.b64encode(b"only:two").decode(),
            base64.b64encode(b"42:a@b.com:notanumber:" + b"0" * 64).decode(),
            base64.b64encode(b"42:a@b.com:1700000000:xyz").decode(),
            base64.b64encode(b":a@b.com:1700000000:" + b"0" * 64).decode(),
            base64.b64encode(b"\xff\xfe\xfd").decode(),
            base64.b64encode(b"42:a@b.com:1700000000:" + b"a" * 64 + b"\n").decode(),
            base64.b64encode(b"42:a@b.com:1700000000\n:" + b"a" * 64).decode(),
        ],
    )
    def test_malformed_inputs(self, value):
        with pytest.raises(MalformedTokenError) as exc_info:
            tokens.decode(value)
        assert exc_info.value.code == ErrorCode.MALFORMED_TOKEN


# ============================================================================
# Verification
# ============================================================================

class TestVerify:
    """Signature and age checks"""

    def test_accepts_fresh_token(self, principal):
        token = tokens.issue(principal, SECRET, NOW)
        assert tokens.verify(token, SECRET, 300, NOW) == principal

    def test_accepts_at_edge_of_window(self, principal):
        token = tokens.issue(principal, SECRET, NOW)
        assert tokens.verify(token, SECRET, 300, NOW + 300) == principal

    def test_expired_after_window(self, principal):
        token = tokens.issue(principal, SECRET, NOW)
        with pytest.raises(TokenExpiredError) as exc_info:
            tokens.verify(token, SECRET, 300, NOW + 301)
        assert exc_info.value.code == ErrorCode.EXPIRED

    def test_future_token_within_skew_accepted(self, principal):
        token = tokens.issue(principal, SECRET, NOW + 5)
        assert tokens.verify(token, SECRET, 300, NOW, clock_skew_seconds=10) == principal

    def test_future_token_beyond_skew_rejected(self, principal):
        token = tokens.issue(principal, SECRET, NOW + 60)
        with pytest.raises(TokenExpiredError):
            tokens.verify(token, SECRET, 300, NOW, clock_skew_seconds=10)

    def test_wrong_secret(self, principal):
        token = tokens.issue(principal, SECRET, NOW)
        with pytest.raises(BadSignatureError) as exc_info:
            tokens.verify(token, "wrong-secret", 300, NOW)
        assert exc_info.value.code == ErrorCode.BAD_SIGNATURE

    def test_tampered_email(self, principal):
        token = tokens.issue(principal, SECRET, NOW)
        forged = SsoToken(
            principal_id=token.principal_id,
            email="admin@b.com",
            issued_at=token.issued_at,
            signature=token.signature,
        )
        with pytest.raises(BadSignatureError):
            tokens.verify(forged, SECRET, 300, NOW)

    def test_bad_signature_checked_before_age(self, principal):
        token = tokens.issue(principal, SECRET, NOW)
        with pytest.raises(BadSignatureError):
            tokens.verify(token, "wrong-secret", 300, NOW + 10000)

    def test_string_id_preserved(self):
        p = Principal(id="u-7", email="x@y.org")
        token = tokens.issue(p, SECRET, NOW)
        assert tokens.verify(token, SECRET, 300, NOW) == p

    def test_zero_padded_id_stays_string(self):
        p = Principal(id="007", email="x@y.org")
        token = tokens.issue(p, SECRET, NOW)
        assert tokens.verify(token, SECRET, 300, NOW).id == "007"

    def test_id_with_trailing_newline_stays_string(self):
        p = Principal(id="42\n", email="x@y.org")
        token = tokens.issue(p, SECRET, NOW)
        assert tokens.verify(token, SECRET, 300, NOW).id == "42\n"


class TestTokenCodec:
    """Settings-bound codec wrapper"""

    def test_verify_encoded(self, principal):
        codec = TokenCodec(max_age_seconds=60, clock_skew_seconds=0)
        encoded = codec.encode(codec.issue(principal, SECRET, NOW))
        assert codec.verify_encoded(encoded, SECRET, NOW + 60) == principal

    def test_verify_encoded_uses_max_age(self, principal):
        codec = TokenCodec(max_age_seconds=60, clock_skew_seconds=0)
        encoded = codec.encode(codec.issue(principal, SECRET, NOW))
        with pytest.raises(TokenExpiredError):
            codec.verify_encoded(encoded, SECRET, NOW + 61)

    def test_verify_encoded_malformed(self):
        with pytest.raises(MalformedTokenError):
            TokenCodec().verify_encoded("garbage", SECRET, NOW)
