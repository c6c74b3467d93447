"""
Data Models Module

This module defines Pydantic models shared by the SSO bridge.

Models are organized by functional area:
- Identity models (the authenticated principal)
- Target models (per-target SSO configuration)
- Token models (the signed assertion and the result of a handoff)
- Audit and HTTP response models
"""

from enum import Enum
from typing import Iterable, List, Optional, Union
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, SecretStr


# ============================================================================
# Identity Models
# ============================================================================

class Principal(BaseModel):
    """Authenticated identity supplied by the source application session."""
    model_config = ConfigDict(frozen=True)

    id: Union[int, str] = Field(..., description="Opaque unique user identifier")
    email: str = Field(default="", description="User email address (matching key on the target)")


# ============================================================================
# Target Models
# ============================================================================

class QueryStyle(str, Enum):
    """Shape of the outbound query string expected by a target."""
    QUERY_STYLE_A = "query_style_a"
    QUERY_STYLE_B = "query_style_b"


class TargetConfig(BaseModel):
    """
    SSO settings for one downstream application.

    Loaded once from trusted configuration and never mutated afterwards.
    """
    model_config = ConfigDict(frozen=True)

    name: str = Field(default="", description="Target key (filled from the mapping key)")
    base_url: str = Field(default="", description="Target base URL, e.g. https://mbs.example.org")
    shared_secret: SecretStr = Field(default=SecretStr(""), description="HMAC key shared with the target")
    endpoint_path: str = Field(default="", description="Path appended to base_url")
    action: Optional[str] = Field(default=None, description="Value of the 'action' parameter (style A)")
    format: QueryStyle = Field(default=QueryStyle.QUERY_STYLE_B, description="Outbound query shape")
    send_secret_param: bool = Field(
        default=False,
        description="Also send the raw shared secret as 'moodle_api_key' (style A legacy verifiers only)",
    )

    def problems(self, placeholder_secrets: Iterable[str] = ()) -> List[str]:
        """
        List the reasons this target cannot be used.

        The secret value itself never appears in the result.
        """
        issues = []

        parsed = urlparse(self.base_url or "")
        if not self.base_url:
            issues.append("base_url is empty")
        elif parsed.scheme not in ("http", "https") or not parsed.netloc:
            issues.append("base_url is not an absolute http(s) URL")

        secret = self.shared_secret.get_secret_value()
        if not secret:
            issues.append("shared_secret is empty")
        elif secret in set(placeholder_secrets):
            issues.append("shared_secret is a placeholder value")

        if self.format == QueryStyle.QUERY_STYLE_A and not (self.action or "").strip():
            issues.append("action is required for query_style_a targets")

        return issues

    def is_usable(self, placeholder_secrets: Iterable[str] = ()) -> bool:
        return not self.problems(placeholder_secrets)


# ============================================================================
# Token Models
# ============================================================================

class SsoToken(BaseModel):
    """Signed, time-bound identity assertion."""
    model_config = ConfigDict(frozen=True)

    principal_id: str = Field(..., description="Principal id in string form")
    email: str = Field(..., description="Principal email")
    issued_at: int = Field(..., description="Unix timestamp of issuance")
    signature: str = Field(..., description="Lowercase hex HMAC-SHA256")


class SsoHandoff(BaseModel):
    """Result of one successful handoff, ready to be redirected to."""
    target: str
    url: str
    token: str = Field(..., description="Encoded token (never logged)")
    issued_at: int


# ============================================================================
# Audit Models
# ============================================================================

class AuditEvent(BaseModel):
    """Audit record for an SSO handoff. Carries no token and no secret."""
    event: str = Field(default="sso.handoff")
    principal_id: str
    email: str
    target: str
    issued_at: int
    destination_host: str


# ============================================================================
# Response Models
# ============================================================================

class VerifiedPrincipalResponse(BaseModel):
    """Response of the reference verifier endpoint."""
    user_id: Union[int, str]
    email: str
    issued_at: int


class TargetStatus(BaseModel):
    """Public view of a configured target."""
    name: str
    format: QueryStyle
    usable: bool


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service health status")
    service: str = Field(..., description="Service name")
    version: str


class ErrorResponse(BaseModel):
    """Standardized error response model."""
    error: str = Field(..., description="Error type or code")
    message: str = Field(..., description="Human-readable error message")
