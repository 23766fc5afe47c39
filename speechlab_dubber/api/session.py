"""Cached login token for the SpeechLab API.

WHY: Logging in on every call would double the request count and hammer
the auth endpoint. SpeechLab does not report token expiry, so the token
is reused until the server rejects it, then thrown away and refetched on
the next call that needs one.

HOW: TokenSession holds at most one token. get_token() returns it without
any network call when present; otherwise it awaits the supplied login
coroutine under an asyncio.Lock so concurrent cache misses share a single
login round trip. invalidate() clears the token unconditionally.

RULES:
- Lifecycle: empty → set → cleared → (set again on next get_token)
- No local expiry check; staleness is discovered by a 401 downstream
- Only one login runs at a time per session and event loop
- default_session is the process-wide cache used when none is injected
- Tokens are never logged
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class TokenSession:
    """Holds one bearer token and hands it out, logging in on demand."""

    def __init__(self) -> None:
        self._token: str | None = None
        self._lock: asyncio.Lock | None = None
        self._lock_loop: asyncio.AbstractEventLoop | None = None
        self.login_count = 0

    def _loop_lock(self) -> asyncio.Lock:
        # asyncio.Lock binds to the first loop that waits on it
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock

    @property
    def token(self) -> str | None:
        return self._token

    def set(self, token: str) -> None:
        self._token = token

    def invalidate(self) -> None:
        if self._token is not None:
            logger.info("Invalidating cached authentication token.")
        self._token = None

    async def get_token(self, login: Callable[[], Awaitable[str]]) -> str:
        """Return the cached token, or log in once to obtain one.

        Args:
            login: Coroutine function performing the login call. It must
                return a non-empty token or raise AuthenticationError.

        Returns:
            The bearer token.
        """
        if self._token is not None:
            logger.debug("Using cached authentication token.")
            return self._token

        async with self._loop_lock():
            # Another waiter may have logged in while we queued
            if self._token is not None:
                return self._token
            logger.info("No cached token. Authenticating with API...")
            token = await login()
            self.login_count += 1
            self._token = token
            return token


default_session = TokenSession()
