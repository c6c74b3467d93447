"""
Source Session Module
=====================

Resolves the principal that is currently signed in to the source
application. The source login is represented by a session JWT (PyJWT,
HMAC algorithms) carried either in a cookie or in an
``Authorization: Bearer`` header.

The SSO redirector only needs "who is the current user"; this module is the
collaborator that answers that question. A missing, expired or invalid
session yields no principal.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from fastapi import Request
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError

from app.config import Settings
from app.models import Principal

logger = logging.getLogger(__name__)


# =============================================================================
# Exceptions
# =============================================================================

class SessionError(Exception):
    """Raised when a session JWT cannot be trusted."""
    pass


# =============================================================================
# Token Creation
# =============================================================================

def create_session_jwt(claims: Dict[str, Any], settings: Settings) -> str:
    """
    Create a source session JWT with the provided claims.

    Args:
        claims: Claims to include. 'sub' (user id) is required; 'email'
                is expected for SSO.
        settings: Application settings (secret, algorithm, issuer, expiry)

    Returns:
        Encoded JWT string

    Raises:
        SessionError: If 'sub' is missing

    Example:
        >>> token = create_session_jwt({'sub': '42', 'email': 'a@b.com'}, settings)
    """
    if "sub" not in claims:
        raise SessionError("Missing required claim: 'sub' (subject/user ID)")

    payload = claims.copy()
    payload["sub"] = str(payload["sub"])

    now = datetime.now(timezone.utc)
    payload.update({
        "iat": now,
        "exp": now + timedelta(minutes=settings.SESSION_JWT_EXPIRY_MINUTES),
        "iss": settings.SESSION_JWT_ISSUER,
    })

    token = jwt.encode(
        payload,
        settings.SESSION_JWT_SECRET,
        algorithm=settings.SESSION_JWT_ALGORITHM,
    )

    logger.debug(
        f"Created session JWT for user {payload.get('sub')}",
        extra={"expires_in_minutes": settings.SESSION_JWT_EXPIRY_MINUTES},
    )
    return token


# =============================================================================
# Token Verification
# =============================================================================

def verify_session_jwt(token: str, settings: Settings) -> Dict[str, Any]:
    """
    Verify and decode a source session JWT.

    Returns:
        Dictionary containing the decoded claims

    Raises:
        SessionError: If the token is empty, expired, invalid or from
                      another issuer
    """
    if not token:
        raise SessionError("No session token provided")

    try:
        decoded = jwt.decode(
            token,
            settings.SESSION_JWT_SECRET,
            algorithms=[settings.SESSION_JWT_ALGORITHM],
            issuer=settings.SESSION_JWT_ISSUER,
            options={
                "verify_signature": True,
                "verify_exp": True,
                "verify_iat": True,
                "require": ["exp", "iat", "sub"],
            },
        )
    except ExpiredSignatureError as e:
        raise SessionError("Session has expired") from e
    except InvalidTokenError as e:
        raise SessionError(f"Invalid session token: {e}") from e

    return decoded


def principal_from_claims(claims: Dict[str, Any]) -> Principal:
    """Map session claims to a Principal. Numeric subjects become ints."""
    sub = str(claims["sub"])
    user_id = int(sub) if sub.isascii() and sub.isdigit() and str(int(sub)) == sub else sub
    email = (claims.get("email") or "").strip()
    return Principal(id=user_id, email=email)


# =============================================================================
# Helper Functions
# =============================================================================

def extract_token_from_header(authorization: Optional[str]) -> Optional[str]:
    """
    Extract Bearer token from Authorization header.

    Returns:
        Token string, or None when the header is absent or not a Bearer header
    """
    if not authorization:
        return None

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None

    return parts[1]


# =============================================================================
# FastAPI Dependencies
# =============================================================================

async def get_current_principal(request: Request) -> Optional[Principal]:
    """
    FastAPI dependency returning the signed-in principal, or None.

    Looks at the session cookie first, then the Authorization header.

    Usage in routes:
        @router.get("/sso/redirect")
        async def handoff(principal: Optional[Principal] = Depends(get_current_principal)):
            ...
    """
    settings: Settings = request.app.state.settings

    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if not token:
        token = extract_token_from_header(request.headers.get("authorization"))
    if not token:
        return None

    try:
        claims = verify_session_jwt(token, settings)
    except SessionError as e:
        logger.warning(f"Rejected source session: {e}")
        return None

    return principal_from_claims(claims)


__all__ = [
    "SessionError",
    "create_session_jwt",
    "verify_session_jwt",
    "principal_from_claims",
    "extract_token_from_header",
    "get_current_principal",
]
