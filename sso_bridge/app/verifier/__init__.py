"""
Verifier Package
================

Target-side counterpart of the SSO handoff.

Main Components:
----------------
- routes.py: /sso/verify endpoint
- replay.py: single-use enforcement for verified tokens
"""

from .replay import ReplayGuard
from .routes import verifier_router

__all__ = ["ReplayGuard", "verifier_router"]
