"""
SSO Token Codec
===============

Issues, encodes, decodes and verifies the signed identity assertion handed
from the source application to a target application.

Wire format:
    base64("{id}:{email}:{issued_at}:{hex_hmac_sha256}")

Signed payload:
    "{id}|{email}|{issued_at}" keyed by the target's shared secret.

Decoding and verification are separate steps so that issuance and
verification can be exercised independently. Everything here is pure: the
current time is always passed in.
"""

import base64
import binascii
import hashlib
import hmac
import logging
import re
from typing import Union

from app.auth.errors import BadSignatureError, MalformedTokenError, TokenExpiredError
from app.models import Principal, SsoToken

logger = logging.getLogger(__name__)

_HEX_SHA256 = re.compile(r"[0-9a-f]{64}")
_DIGITS = re.compile(r"[0-9]+")


# =============================================================================
# Token Creation
# =============================================================================

def _payload(principal_id: str, email: str, issued_at: int) -> bytes:
    return f"{principal_id}|{email}|{issued_at}".encode("utf-8")


def sign(principal_id: str, email: str, issued_at: int, secret: str) -> str:
    """Return the lowercase hex HMAC-SHA256 of the payload."""
    return hmac.new(
        secret.encode("utf-8"),
        _payload(principal_id, email, issued_at),
        hashlib.sha256,
    ).hexdigest()


def issue(principal: Principal, secret: str, now: int) -> SsoToken:
    """
    Build a signed token for a principal.

    Args:
        principal: Authenticated identity to assert
        secret: Target shared secret (must not be empty)
        now: Unix timestamp of issuance

    Raises:
        ValueError: If the secret is empty or the id cannot be carried
    """
    if not secret:
        raise ValueError("Cannot issue an SSO token with an empty secret")

    principal_id = str(principal.id)
    if ":" in principal_id or "|" in principal_id:
        raise ValueError("Principal id must not contain ':' or '|'")

    issued_at = int(now)
    return SsoToken(
        principal_id=principal_id,
        email=principal.email,
        issued_at=issued_at,
        signature=sign(principal_id, principal.email, issued_at, secret),
    )


# =============================================================================
# Wire Encoding
# =============================================================================

def encode(token: SsoToken) -> str:
    raw = f"{token.principal_id}:{token.email}:{token.issued_at}:{token.signature}"
    return base64.b64encode(raw.encode("utf-8")).decode("ascii")


def decode(value: str) -> SsoToken:
    """
    Parse a wire token without checking its signature.

    The email is everything between the first ':' and the last two, so
    addresses containing ':' survive.

    Raises:
        MalformedTokenError: On any base64, UTF-8 or field parsing failure
    """
    if not value:
        raise MalformedTokenError("empty token")

    try:
        raw = base64.b64decode(value.strip(), validate=True).decode("utf-8")
    except (binascii.Error, ValueError) as e:
        raise MalformedTokenError("token is not valid base64") from e

    principal_id, sep, rest = raw.partition(":")
    parts = rest.rsplit(":", 2)
    if not sep or len(parts) != 3:
        raise MalformedTokenError("unexpected number of fields")

    email, issued_at_str, signature = parts
    if not principal_id:
        raise MalformedTokenError("empty principal id")

    if not _DIGITS.fullmatch(issued_at_str):
        raise MalformedTokenError("issued_at is not an integer timestamp")

    if not _HEX_SHA256.fullmatch(signature):
        raise MalformedTokenError("signature is not a hex SHA-256 digest")

    return SsoToken(
        principal_id=principal_id,
        email=email,
        issued_at=int(issued_at_str),
        signature=signature,
    )


# =============================================================================
# Token Verification
# =============================================================================

def _principal_id(value: str) -> Union[int, str]:
    if _DIGITS.fullmatch(value) and str(int(value)) == value:
        return int(value)
    return value


def verify(
    token: SsoToken,
    secret: str,
    max_age_seconds: int,
    now: int,
    clock_skew_seconds: int = 10,
) -> Principal:
    """
    Check a decoded token's signature and age.

    Returns:
        The asserted Principal (numeric ids come back as int)

    Raises:
        BadSignatureError: If the HMAC does not match
        TokenExpiredError: If the token is too old or too far in the future
    """
    expected = sign(token.principal_id, token.email, token.issued_at, secret)
    if not hmac.compare_digest(expected.encode("ascii"), token.signature.encode("utf-8")):
        raise BadSignatureError("signature mismatch")

    age = int(now) - token.issued_at
    if age > max_age_seconds:
        raise TokenExpiredError(f"token is {age}s old")
    if -age > clock_skew_seconds:
        raise TokenExpiredError("token issued in the future")

    return Principal(id=_principal_id(token.principal_id), email=token.email)


class TokenCodec:
    """
    Token codec bound to a lifetime policy.

    Thin wrapper over the module functions so collaborators can be handed a
    single object configured from settings.
    """

    def __init__(self, max_age_seconds: int = 300, clock_skew_seconds: int = 10):
        self.max_age_seconds = max_age_seconds
        self.clock_skew_seconds = clock_skew_seconds

    def issue(self, principal: Principal, secret: str, now: int) -> SsoToken:
        return issue(principal, secret, now)

    def encode(self, token: SsoToken) -> str:
        return encode(token)

    def decode(self, value: str) -> SsoToken:
        return decode(value)

    def verify(self, token: SsoToken, secret: str, now: int) -> Principal:
        return verify(token, secret, self.max_age_seconds, now, self.clock_skew_seconds)

    def verify_encoded(self, value: str, secret: str, now: int) -> Principal:
        principal = self.verify(self.decode(value), secret, now)
        logger.debug(f"SSO token verified for principal {principal.id}")
        return principal


__all__ = [
    "TokenCodec",
    "sign",
    "issue",
    "encode",
    "decode",
    "verify",
]
