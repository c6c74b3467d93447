"""
Shared fixtures for the SSO bridge tests.
"""

from typing import List

import pytest
from fastapi.testclient import TestClient

from app.auth.session import create_session_jwt
from app.config import Settings
from app.main import create_app
from app.models import AuditEvent, QueryStyle, TargetConfig

NOW = 1700000000
WORDPRESS_SECRET = "wp-shared-secret-0123456789abcdef"
LARAVEL_SECRET = "laravel-shared-secret-0123456789"


@pytest.fixture
def targets():
    return {
        "wordpress": TargetConfig(
            base_url="https://mbs.example.org",
            shared_secret=WORDPRESS_SECRET,
            endpoint_path="/wp-admin/admin-ajax.php",
            action="sso_login_from_moodle",
            format=QueryStyle.QUERY_STYLE_A,
        ),
        "laravel": TargetConfig(
            base_url="https://lms.example.org/",
            shared_secret=LARAVEL_SECRET,
            endpoint_path="/api/sso/moodle",
            format=QueryStyle.QUERY_STYLE_B,
        ),
        "staging": TargetConfig(
            base_url="https://staging.example.org",
            shared_secret="YOUR_LARAVEL_SSO_SECRET_KEY",
            endpoint_path="/api/sso/moodle",
            format=QueryStyle.QUERY_STYLE_B,
        ),
    }


@pytest.fixture
def settings(targets):
    """Create settings for testing without touching the environment"""
    return Settings(
        SESSION_JWT_SECRET="test-session-secret-1234567890123456",
        SSO_TARGETS=targets,
        SSO_DEFAULT_TARGET="wordpress",
        _env_file=None,
    )


@pytest.fixture
def audit_events() -> List[AuditEvent]:
    return []


@pytest.fixture
def app(settings, audit_events):
    application = create_app(settings)
    application.state.clock = lambda: NOW
    application.state.audit_log = audit_events.append
    return application


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def session_token(settings):
    return create_session_jwt({"sub": 42, "email": "a@b.com"}, settings)
