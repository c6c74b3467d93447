"""
FastAPI SSO Bridge Application Factory
======================================

Entry point for the service that carries a user signed in to the source
application (Moodle) over to target applications (WordPress, Laravel).

Architecture:
    Browser → Source session → SSO bridge (this service) → 302 → Target app

Routers:
    - /sso/redirect : Issue a token and redirect to a target
    - /sso/targets  : Configured target names and status
    - /sso/verify   : Reference verifier for the target side
    - /health       : Health check endpoint

Running the Service:
    Development:
        uvicorn app.main:create_app --factory --reload --app-dir sso_bridge --port 8080

    Production:
        uvicorn app.main:create_app --factory --app-dir sso_bridge --host 0.0.0.0 --port 8080 --workers 4
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Dict, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app import __version__
from app.auth import sso_router
from app.auth.redirector import SsoRedirector, current_time, log_audit_event
from app.auth.tokens import TokenCodec
from app.config import Settings, get_settings, validate_configuration
from app.models import HealthResponse
from app.verifier import ReplayGuard, verifier_router


def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format='{"timestamp": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s", "module": "%(module)s", "function": "%(funcName)s"}',
        handlers=[logging.StreamHandler(sys.stdout)],
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup: set up logging and report the state of the target map.
    """
    settings: Settings = app.state.settings

    setup_logging(settings.LOG_LEVEL)
    logger = logging.getLogger("app.main")

    status = validate_configuration(settings)
    for warning in status["warnings"]:
        logger.warning(warning)
    for error in status["errors"]:
        logger.error(error)

    logger.info(
        "SSO bridge started",
        extra={
            "usable_targets": status["usable_targets"],
            "default_target": settings.SSO_DEFAULT_TARGET,
            "version": __version__,
        },
    )

    yield

    logger.info("SSO bridge shutdown complete")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Application factory function.

    Builds the read-only target map, the token codec and the redirector once
    and hangs them on app.state for the request handlers.

    Args:
        settings: Settings to use instead of the environment (tests)

    Returns:
        FastAPI: Configured application instance
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="SSO Bridge",
        description="Signed single sign-on handoff from the source application to target applications",
        version=__version__,
        lifespan=lifespan,
    )

    codec = TokenCodec(
        max_age_seconds=settings.SSO_TOKEN_MAX_AGE_SECONDS,
        clock_skew_seconds=settings.SSO_CLOCK_SKEW_SECONDS,
    )

    app.state.settings = settings
    app.state.codec = codec
    app.state.clock = current_time
    app.state.audit_log = log_audit_event
    app.state.redirector = SsoRedirector(
        targets=settings.SSO_TARGETS,
        default_target=settings.SSO_DEFAULT_TARGET,
        codec=codec,
        clock=lambda: app.state.clock(),
        audit_log=lambda event: app.state.audit_log(event),
        placeholder_secrets=settings.SSO_PLACEHOLDER_SECRETS,
    )
    app.state.replay_guard = ReplayGuard(
        ttl_seconds=settings.SSO_TOKEN_MAX_AGE_SECONDS + settings.SSO_CLOCK_SKEW_SECONDS,
    )

    app.include_router(sso_router)
    app.include_router(verifier_router)

    @app.get("/health", response_model=HealthResponse, tags=["System"])
    async def health_check() -> HealthResponse:
        return HealthResponse(status="ok", service="sso-bridge", version=__version__)

    @app.get("/", tags=["System"])
    async def root() -> Dict[str, object]:
        """Service metadata and available endpoints."""
        return {
            "service": "sso-bridge",
            "version": __version__,
            "endpoints": {
                "health": "/health",
                "redirect": "/sso/redirect",
                "targets": "/sso/targets",
                "verify": "/sso/verify",
            },
        }

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Log unhandled errors and return a standardized 500 response."""
        logger = logging.getLogger("app.main")
        logger.error(
            f"Unhandled exception: {type(exc).__name__}",
            extra={
                "path": request.url.path,
                "method": request.method,
                "exception_type": type(exc).__name__,
            },
            exc_info=True,
        )

        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred",
                "detail": str(exc) if settings.LOG_LEVEL.upper() == "DEBUG" else None,
            },
        )

    return app


if __name__ == "__main__":
    settings = get_settings()

    uvicorn.run(
        "app.main:create_app",
        factory=True,
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )
