"""
app/platform/tokens.py
----------------------
Short-lived storefront API token, cached until shortly before it expires.

One provider is built per app (see app.extensions.init_commerce) and handed
to the CommerceClient. gunicorn runs threaded workers, so the cached value
is guarded by a lock.
"""
from __future__ import annotations

import logging
import threading
import time
from typing import Callable

logger = logging.getLogger(__name__)


class StorefrontTokenProvider:
    """
    Owns the cached storefront token.

    `issue` is called with the unix expiry to request and must return the
    token string. The cached token is reused while
    `expires_at - leeway` is still in the future.
    """

    def __init__(self, issue: Callable[[int], str], ttl: int = 86400,
                 leeway: int = 300, clock: Callable[[], float] = time.time):
        self._issue  = issue
        self._ttl    = ttl
        self._leeway = leeway
        self._clock  = clock
        self._lock   = threading.Lock()
        self._token: str | None = None
        self._expires_at: float = 0.0

    def acquire(self) -> str:
        with self._lock:
            now = self._clock()
            if self._token and self._expires_at - self._leeway > now:
                return self._token

            expires_at = int(now) + self._ttl
            logger.info("Requesting storefront token (expires_at=%s)", expires_at)
            self._token = self._issue(expires_at)
            self._expires_at = expires_at
            return self._token

    def invalidate(self) -> None:
        """Drop the cached token, e.g. after the platform rejected it."""
        with self._lock:
            self._token = None
            self._expires_at = 0.0
