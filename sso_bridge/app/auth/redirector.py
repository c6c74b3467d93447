"""
SSO Redirector
==============

Orchestrates one SSO handoff for one inbound request:

    ResolvePrincipal -> ResolveTarget -> ValidateConfig
        -> IssueToken -> BuildURL -> Redirect (audit + URL)

Every terminal failure is raised as an SsoError subclass; the web layer turns
each one into exactly one response. Nothing here keeps state between
requests: the target map is read-only and the token codec is pure.
"""

import logging
import time
from typing import Callable, Dict, Iterable, Mapping, Optional
from urllib.parse import urlencode, urlparse

from app.auth.errors import (
    InvalidPrincipalError,
    MisconfiguredError,
    MissingEmailError,
    UnauthenticatedError,
    UnknownTargetError,
)
from app.auth.tokens import TokenCodec
from app.models import AuditEvent, Principal, QueryStyle, SsoHandoff, TargetConfig

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("app.audit")

SECRET_QUERY_PARAM = "moodle_api_key"

# Separators of the signed payload and of the wire form
RESERVED_ID_CHARS = (":", "|")


def current_time() -> int:
    return int(time.time())


def log_audit_event(event: AuditEvent) -> None:
    """Default audit sink: a structured record on the 'app.audit' logger."""
    audit_logger.info(
        f"SSO handoff: user {event.principal_id} -> {event.target} ({event.destination_host})",
        extra=event.model_dump(),
    )


class SsoRedirector:
    """
    Builds the outbound redirect for an authenticated principal.

    Args:
        targets: Target name -> TargetConfig (read-only)
        default_target: Target used when the request names none
        codec: Token codec
        clock: Returns the current unix timestamp
        audit_log: Receives one AuditEvent per successful handoff
        placeholder_secrets: Secret values that mark a target unconfigured
    """

    def __init__(
        self,
        targets: Mapping[str, TargetConfig],
        default_target: str,
        codec: Optional[TokenCodec] = None,
        clock: Callable[[], int] = current_time,
        audit_log: Callable[[AuditEvent], None] = log_audit_event,
        placeholder_secrets: Iterable[str] = (),
    ):
        self._targets: Dict[str, TargetConfig] = dict(targets)
        self._default_target = default_target
        self._codec = codec or TokenCodec()
        self._clock = clock
        self._audit_log = audit_log
        self._placeholder_secrets = frozenset(placeholder_secrets)

    @property
    def target_names(self):
        return list(self._targets)

    def is_usable(self, name: str) -> bool:
        target = self._targets.get(name)
        return target is not None and target.is_usable(self._placeholder_secrets)

    # =========================================================================
    # State machine steps
    # =========================================================================

    def resolve_principal(self, principal: Optional[Principal]) -> Principal:
        if principal is None:
            raise UnauthenticatedError()
        if not principal.email or not principal.email.strip():
            logger.warning("SSO refused for user %r: account has no email", principal.id)
            raise MissingEmailError()
        if any(ch in str(principal.id) for ch in RESERVED_ID_CHARS):
            logger.warning("SSO refused for user %r: id contains a reserved separator", principal.id)
            raise InvalidPrincipalError()
        return principal

    def resolve_target(self, target_name: Optional[str]) -> TargetConfig:
        name = (target_name or "").strip() or self._default_target
        target = self._targets.get(name)
        if target is None:
            logger.warning("SSO requested for unknown target %r", name)
            raise UnknownTargetError(name)
        return target

    def validate_config(self, target: TargetConfig) -> TargetConfig:
        problems = target.problems(self._placeholder_secrets)
        if problems:
            logger.error("SSO target %r is misconfigured: %s", target.name, ", ".join(problems))
            raise MisconfiguredError(target.name)
        return target

    def build_url(self, target: TargetConfig, principal: Principal, token: str, issued_at: int) -> str:
        if target.format == QueryStyle.QUERY_STYLE_A:
            params = {"action": target.action, "token": token}
            if target.send_secret_param:
                params[SECRET_QUERY_PARAM] = target.shared_secret.get_secret_value()
        else:
            params = {
                "token": token,
                "email": principal.email,
                "user_id": principal.id,
                "timestamp": issued_at,
            }

        return f"{target.base_url.rstrip('/')}{target.endpoint_path}?{urlencode(params)}"

    # =========================================================================
    # Entry point
    # =========================================================================

    def handoff(self, principal: Optional[Principal], target_name: Optional[str] = None) -> SsoHandoff:
        """
        Run the full handoff for one request.

        Raises:
            UnauthenticatedError, MissingEmailError, InvalidPrincipalError,
            UnknownTargetError, MisconfiguredError
        """
        principal = self.resolve_principal(principal)
        target = self.validate_config(self.resolve_target(target_name))

        issued_at = self._clock()
        token = self._codec.issue(principal, target.shared_secret.get_secret_value(), issued_at)
        encoded = self._codec.encode(token)
        url = self.build_url(target, principal, encoded, token.issued_at)

        self._audit_log(AuditEvent(
            principal_id=token.principal_id,
            email=principal.email,
            target=target.name,
            issued_at=token.issued_at,
            destination_host=urlparse(url).hostname or "",
        ))

        return SsoHandoff(target=target.name, url=url, token=encoded, issued_at=token.issued_at)


__all__ = [
    "SsoRedirector",
    "current_time",
    "log_audit_event",
    "SECRET_QUERY_PARAM",
]
