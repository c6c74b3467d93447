"""
Authentication Package

This package implements the single sign-on handoff from the source
application to target applications.

Modules:
- tokens: signed assertion codec (issue, encode, decode, verify)
- redirector: per-request handoff state machine
- session: source session JWT and the current-principal dependency
- routes: /sso/redirect and /sso/targets endpoints
- errors: error taxonomy and localized messages

The handoff flow:
1. User visits /sso/redirect?target=<name> while signed in to the source
2. The session dependency resolves the principal
3. The redirector validates the target and issues an HMAC-signed token
4. The user agent is redirected to the target with the token in the query
5. The target verifies the token with its copy of the shared secret
"""

from .routes import sso_router

__all__ = [
    "sso_router",
]
