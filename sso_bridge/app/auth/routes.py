"""
SSO routes for the source-to-target handoff.

This module exposes the endpoint a signed-in user visits to be carried over
to a target application, e.g.:

    /sso/redirect?target=wordpress
    /sso/redirect?target=laravel
"""

import html
import logging
from typing import List, Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from app.auth.errors import TITLES, SsoError, UnauthenticatedError
from app.auth.redirector import SsoRedirector
from app.auth.session import get_current_principal
from app.config import Settings
from app.models import Principal, TargetStatus

logger = logging.getLogger(__name__)


# =============================================================================
# Router Setup
# =============================================================================

sso_router = APIRouter(
    prefix="/sso",
    tags=["sso"],
)


def get_redirector(request: Request) -> SsoRedirector:
    return request.app.state.redirector


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


# =============================================================================
# Handoff Endpoint
# =============================================================================

@sso_router.get("/redirect")
async def sso_redirect(
    request: Request,
    target: Optional[str] = Query(None, description="Target system name (default target if absent)"),
    principal: Optional[Principal] = Depends(get_current_principal),
    redirector: SsoRedirector = Depends(get_redirector),
    settings: Settings = Depends(get_app_settings),
):
    """
    Hand the signed-in user over to a target application.

    Returns:
        302 to the target on success, 302 to the login page when nobody is
        signed in, or an HTML error page for the other failures
    """
    try:
        handoff = redirector.handoff(principal, target)
    except UnauthenticatedError:
        return _login_redirect(request, settings)
    except SsoError as e:
        return _render_error_page(
            title=TITLES.get(settings.SSO_LOCALE, TITLES["en"]),
            message=e.user_message(settings.SSO_LOCALE),
            code=e.code.value,
            status_code=e.status_code,
            locale=settings.SSO_LOCALE,
        )

    response = RedirectResponse(url=handoff.url, status_code=302)
    response.headers["Cache-Control"] = "no-store"
    response.headers["Referrer-Policy"] = "no-referrer"
    return response


@sso_router.get("/targets", response_model=List[TargetStatus])
async def list_targets(settings: Settings = Depends(get_app_settings)):
    """List configured targets and whether each can be used. No URLs or secrets."""
    return [
        TargetStatus(
            name=name,
            format=config.format,
            usable=config.is_usable(settings.SSO_PLACEHOLDER_SECRETS),
        )
        for name, config in settings.SSO_TARGETS.items()
    ]


# =============================================================================
# Helper Functions
# =============================================================================

def _login_redirect(request: Request, settings: Settings) -> RedirectResponse:
    next_path = request.url.path
    if request.url.query:
        next_path = f"{next_path}?{request.url.query}"

    separator = "&" if "?" in settings.LOGIN_URL else "?"
    url = f"{settings.LOGIN_URL}{separator}{urlencode({'next': next_path})}"
    return RedirectResponse(url=url, status_code=302)


def _render_error_page(
    title: str,
    message: str,
    code: str,
    status_code: int = 400,
    locale: str = "en",
) -> HTMLResponse:
    """
    Render error page for SSO failures.

    Args:
        title: Error title
        message: Localized error message (no secrets)
        code: Error code shown for support
        status_code: HTTP status code
        locale: Page language
    """
    html_content = f"""
    <!DOCTYPE html>
    <html lang="{html.escape(locale)}">
    <head>
        <meta charset="UTF-8">
        <meta name="viewport" content="width=device-width, initial-scale=1.0">
        <title>{html.escape(title)}</title>
        <style>
            * {{ margin: 0; padding: 0; box-sizing: border-box; }}
            body {{
                font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Helvetica, Arial, sans-serif;
                background: #f3f4f6;
                min-height: 100vh;
                display: flex;
                align-items: center;
                justify-content: center;
                padding: 20px;
            }}
            .container {{
                background: white;
                border-radius: 12px;
                padding: 40px;
                max-width: 500px;
                width: 100%;
                box-shadow: 0 10px 40px rgba(0,0,0,0.1);
                text-align: center;
            }}
            h1 {{ color: #1f2937; font-size: 24px; margin-bottom: 16px; }}
            .message {{ color: #6b7280; font-size: 16px; line-height: 1.6; }}
            .code {{ margin-top: 24px; color: #9ca3af; font-size: 13px; }}
        </style>
    </head>
    <body>
        <div class="container">
            <h1>{html.escape(title)}</h1>
            <p class="message">{html.escape(message)}</p>
            <p class="code">{html.escape(code)}</p>
        </div>
    </body>
    </html>
    """

    return HTMLResponse(content=html_content, status_code=status_code)


__all__ = ["sso_router", "get_redirector", "get_app_settings"]
