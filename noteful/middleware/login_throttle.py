"""
Noteful Backend — Login Throttling Middleware
==============================================

What:  Per-IP sliding window on POST /api/login to slow down password
       guessing. Every other route passes straight through.

Algorithm:
    Each IP keeps the timestamps of its recent login attempts. Timestamps
    older than the window are dropped on every attempt; when the remaining
    count reaches the limit the request is answered with 429 and a
    Retry-After equal to the time until the oldest attempt leaves the window.

The state lives in process memory, so limits are per worker. An IP is
forgotten once none of its attempts is inside the window: on its next
attempt, or by a sweep that runs at most once per window.
"""

import logging
import time
from collections import deque
from typing import Callable, Deque, Dict, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from noteful.exceptions import RateLimitExceededError
from noteful.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)

LOGIN_PATH = "/api/login"


class LoginThrottleMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app,
        max_attempts: int,
        window_seconds: int,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__(app)
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self.clock = clock
        self._attempts: Dict[str, Deque[float]] = {}
        self._last_sweep = clock()

    def _sweep(self, now: float) -> None:
        """Forgets every IP whose newest attempt has left the window."""
        cutoff = now - self.window_seconds
        stale = [ip for ip, attempts in self._attempts.items() if attempts[-1] <= cutoff]
        for ip in stale:
            del self._attempts[ip]
        self._last_sweep = now

    def register_attempt(self, client_ip: str) -> Optional[int]:
        """
        Records one login attempt.

        Returns None when the attempt may proceed, or the Retry-After in
        seconds when the IP is over its limit (the attempt is not recorded).
        """
        now = self.clock()
        if now - self._last_sweep >= self.window_seconds:
            self._sweep(now)

        attempts = self._attempts.get(client_ip)
        if attempts is not None:
            while attempts and attempts[0] <= now - self.window_seconds:
                attempts.popleft()
            if not attempts:
                del self._attempts[client_ip]
                attempts = None

        if attempts is not None and len(attempts) >= self.max_attempts:
            return int(attempts[0] + self.window_seconds - now) + 1

        self._attempts.setdefault(client_ip, deque()).append(now)
        return None

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.method != "POST" or request.url.path != LOGIN_PATH:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        retry_after = self.register_attempt(client_ip)
        if retry_after is None:
            return await call_next(request)

        logger.warning(
            "Login throttled for %s: %d attempts in %ds",
            client_ip, self.max_attempts, self.window_seconds,
        )
        # Middleware runs outside the exception handlers, so answer directly
        exc = RateLimitExceededError(retry_after=retry_after)
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": exc.error_code,
                "message": exc.message,
                "details": exc.context,
                "request_id": request_id_var.get(""),
            },
            headers={"Retry-After": str(retry_after)},
        )
