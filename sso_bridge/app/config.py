"""
Configuration module for the SSO bridge.

This module uses Pydantic Settings to load and validate environment variables
for the source session, the static SSO target map, token lifetime and logging.

Environment variables are loaded from .env file or system environment.
SSO_TARGETS is a JSON object mapping target name to its settings, e.g.:

    SSO_TARGETS='{"wordpress": {"base_url": "https://mbs.example.org",
                                "shared_secret": "...",
                                "endpoint_path": "/wp-admin/admin-ajax.php",
                                "action": "sso_login_from_moodle",
                                "format": "query_style_a"}}'
"""

from functools import lru_cache
from typing import Dict, List, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.models import QueryStyle, TargetConfig


PLACEHOLDER_SECRETS = [
    "YOUR_LARAVEL_SSO_SECRET_KEY",
    "YOUR_WORDPRESS_SSO_SECRET_KEY",
    "change-me",
    "change-me-in-production",
    "changeme",
]


def _default_targets() -> Dict[str, TargetConfig]:
    return {
        "wordpress": TargetConfig(
            base_url="https://mbs.example.org",
            endpoint_path="/wp-admin/admin-ajax.php",
            action="sso_login_from_moodle",
            format=QueryStyle.QUERY_STYLE_A,
        ),
        "laravel": TargetConfig(
            base_url="https://lms.example.org",
            shared_secret="YOUR_LARAVEL_SSO_SECRET_KEY",
            endpoint_path="/api/sso/moodle",
            format=QueryStyle.QUERY_STYLE_B,
        ),
    }


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    The target map is read once at startup and treated as read-only.
    """

    # =========================================================================
    # Source Session Configuration
    # =========================================================================

    SESSION_JWT_SECRET: str = Field(
        ...,
        description="Secret key used by the source application to sign session JWTs",
        min_length=32,
    )

    SESSION_JWT_ALGORITHM: str = Field(
        default="HS256",
        description="JWT signing algorithm (HS256, HS384, or HS512)",
    )

    SESSION_JWT_ISSUER: str = Field(
        default="moodle",
        description="Expected 'iss' claim of source session JWTs",
    )

    SESSION_JWT_EXPIRY_MINUTES: int = Field(
        default=60,
        description="Session JWT expiry time in minutes",
        ge=5,
        le=1440,
    )

    SESSION_COOKIE_NAME: str = Field(
        default="sso_session",
        description="Cookie carrying the source session JWT",
    )

    LOGIN_URL: str = Field(
        default="/login/index.php",
        description="Where unauthenticated users are sent",
    )

    # =========================================================================
    # SSO Targets
    # =========================================================================

    SSO_DEFAULT_TARGET: str = Field(
        default="wordpress",
        description="Target used when the request carries no 'target' parameter",
    )

    SSO_TARGETS: Dict[str, TargetConfig] = Field(
        default_factory=_default_targets,
        description="Static map of target name to target settings",
        validate_default=True,
    )

    SSO_PLACEHOLDER_SECRETS: List[str] = Field(
        default_factory=lambda: list(PLACEHOLDER_SECRETS),
        description="Secret values that mark a target as not yet configured",
    )

    # =========================================================================
    # Token Lifetime
    # =========================================================================

    SSO_TOKEN_MAX_AGE_SECONDS: int = Field(
        default=300,
        description="Maximum accepted token age on verification",
        ge=10,
        le=3600,
    )

    SSO_CLOCK_SKEW_SECONDS: int = Field(
        default=10,
        description="Tolerance for tokens issued slightly in the future",
        ge=0,
        le=300,
    )

    # =========================================================================
    # Presentation / Server
    # =========================================================================

    SSO_LOCALE: str = Field(
        default="en",
        description="Language of user-visible error messages (en, ru)",
    )

    LOG_LEVEL: str = Field(default="INFO")

    HOST: str = Field(default="0.0.0.0")

    PORT: int = Field(default=8080, ge=1, le=65535)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("SESSION_JWT_ALGORITHM")
    @classmethod
    def validate_jwt_algorithm(cls, v: str) -> str:
        allowed_algorithms = ["HS256", "HS384", "HS512"]

        if v not in allowed_algorithms:
            raise ValueError(
                f"JWT algorithm must be one of {allowed_algorithms}, got: {v}"
            )

        return v

    @field_validator("SSO_LOCALE")
    @classmethod
    def validate_locale(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ("en", "ru"):
            raise ValueError(f"SSO_LOCALE must be 'en' or 'ru', got: {v}")
        return v

    @field_validator("SSO_TARGETS")
    @classmethod
    def name_targets(cls, v: Dict[str, TargetConfig]) -> Dict[str, TargetConfig]:
        """Fill each TargetConfig.name from its mapping key."""
        return {
            name: config.model_copy(update={"name": name})
            for name, config in v.items()
        }

    @model_validator(mode="after")
    def check_default_target(self) -> "Settings":
        if self.SSO_DEFAULT_TARGET not in self.SSO_TARGETS:
            raise ValueError(
                f"SSO_DEFAULT_TARGET '{self.SSO_DEFAULT_TARGET}' is not one of the configured targets"
            )
        return self

    # =========================================================================
    # Helpers
    # =========================================================================

    def get_target(self, name: str) -> Optional[TargetConfig]:
        return self.SSO_TARGETS.get(name)


@lru_cache()
def get_settings() -> Settings:
    """
    Get or create a singleton Settings instance.

    Cached so settings and the target map are loaded only once per process.

    Raises:
        ValidationError: If required environment variables are missing
                        or invalid.
    """
    return Settings()


def validate_configuration(settings: Settings) -> dict:
    """
    Validate SSO targets and return a status report.

    Called during application startup. Reports name targets only; secret
    values are never included.
    """
    errors = []
    warnings = []

    usable = []
    for name, target in settings.SSO_TARGETS.items():
        problems = target.problems(settings.SSO_PLACEHOLDER_SECRETS)
        if problems:
            warnings.append(f"Target '{name}' is not usable: {', '.join(problems)}")
        else:
            usable.append(name)

        if target.send_secret_param:
            warnings.append(
                f"Target '{name}' sends its shared secret in the redirect query string"
            )

    if settings.SSO_DEFAULT_TARGET not in usable:
        errors.append(f"Default target '{settings.SSO_DEFAULT_TARGET}' is not usable")

    return {
        "valid": len(errors) == 0,
        "errors": errors,
        "warnings": warnings,
        "usable_targets": usable,
        "token_max_age_seconds": settings.SSO_TOKEN_MAX_AGE_SECONDS,
    }
