"""
In-memory replay guard for consumed SSO tokens.

A token is single-use: once verified, its signature is remembered until the
token could no longer pass the age check anyway.
"""

import asyncio
import logging
from typing import Dict

logger = logging.getLogger(__name__)


class ReplayGuard:
    """
    TTL set of consumed token signatures.

    Thread-safe for a single event loop via asyncio.Lock. Per-process only:
    with several workers each keeps its own set.
    """

    def __init__(self, ttl_seconds: int):
        self._seen: Dict[str, int] = {}
        self._lock = asyncio.Lock()
        self._ttl_seconds = ttl_seconds

    async def consume(self, signature: str, now: int) -> bool:
        """
        Mark a signature as used.

        Returns:
            True on first use, False if it was already consumed and not expired
        """
        async with self._lock:
            self._purge(now)
            if signature in self._seen:
                logger.warning("Rejected replayed SSO token")
                return False
            self._seen[signature] = now + self._ttl_seconds
            return True

    def _purge(self, now: int) -> None:
        expired = [sig for sig, expires_at in self._seen.items() if expires_at < now]
        for sig in expired:
            del self._seen[sig]

    def __len__(self) -> int:
        return len(self._seen)
