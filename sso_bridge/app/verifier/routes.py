"""
Reference verifier for inbound SSO tokens.

This is the counterpart a target application runs: it decodes the token,
checks the HMAC with its own copy of the shared secret, enforces the maximum
age and rejects replays. Any failure is an authentication failure (401);
a bad token is never treated as an anonymous request.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from app.auth.errors import SsoTokenError, TokenReplayedError, localized_message
from app.auth.routes import get_app_settings
from app.auth.tokens import TokenCodec
from app.config import Settings
from app.models import VerifiedPrincipalResponse
from app.verifier.replay import ReplayGuard

logger = logging.getLogger(__name__)

verifier_router = APIRouter(prefix="/sso", tags=["sso-verifier"])


def get_codec(request: Request) -> TokenCodec:
    return request.app.state.codec


def get_replay_guard(request: Request) -> ReplayGuard:
    return request.app.state.replay_guard


@verifier_router.get("/verify", response_model=VerifiedPrincipalResponse)
async def verify_token(
    request: Request,
    target: str = Query(..., description="Target whose shared secret signed the token"),
    token: str = Query(..., description="Encoded SSO token"),
    settings: Settings = Depends(get_app_settings),
    codec: TokenCodec = Depends(get_codec),
    replay_guard: ReplayGuard = Depends(get_replay_guard),
):
    """
    Verify an SSO token the way a target application would.

    Returns:
        The asserted user id, email and issue time

    Raises:
        HTTPException: 404 for an unknown or unusable target, 401 for any
                       token failure
    """
    config = settings.get_target(target)
    if config is None or not config.is_usable(settings.SSO_PLACEHOLDER_SECRETS):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": "UNKNOWN_TARGET", "message": f"Unknown target: {target}"},
        )

    now = request.app.state.clock()
    try:
        decoded = codec.decode(token)
        principal = codec.verify(decoded, config.shared_secret.get_secret_value(), now)
        if not await replay_guard.consume(decoded.signature, now):
            raise TokenReplayedError()
    except SsoTokenError as e:
        logger.warning("SSO token rejected for target %r: %s", target, e.code.value)
        raise HTTPException(
            status_code=e.status_code,
            detail={
                "error": e.code.value,
                "message": localized_message(e.code, settings.SSO_LOCALE),
            },
        )

    logger.info("SSO token accepted for user %r on target %r", principal.id, target)
    return VerifiedPrincipalResponse(
        user_id=principal.id,
        email=principal.email,
        issued_at=decoded.issued_at,
    )
