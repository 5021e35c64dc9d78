"""
Chirpline Backend: Rate Limiting Middleware
=============================================

What:  Caps how many requests one client address may make per window.
How:   A sliding window of request timestamps per address, kept in memory.
When:  Outermost middleware; a rejected request never reaches the routes.

    time ─────────────────────────────────────────────▶
          [x   x x      x  x]          window = settings.rate_limit_window
          └─ oldest hit ────┘          hits >= rate_limit_requests → 429

Counters live in the process. With several uvicorn workers each one keeps
its own windows.
"""

import logging
import time
from collections import deque
from typing import Deque, Dict, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from app.config import settings

logger = logging.getLogger(__name__)


class SlidingWindow:
    """Timestamps of recent hits, grouped by client key."""

    # Forget idle clients once this many keys are tracked
    PRUNE_THRESHOLD = 1024

    def __init__(self) -> None:
        self._hits: Dict[str, Deque[float]] = {}

    def hit(self, key: str, limit: int, window: int, now: float) -> Optional[int]:
        """
        Record a hit for `key`.

        Returns None when the hit is allowed, otherwise the number of seconds
        until the oldest hit leaves the window. Rejected hits are not recorded.
        """
        hits = self._hits.setdefault(key, deque())
        horizon = now - window
        while hits and hits[0] <= horizon:
            hits.popleft()

        if len(hits) >= limit:
            return int(hits[0] + window - now) + 1

        hits.append(now)
        if len(self._hits) > self.PRUNE_THRESHOLD:
            self.prune(horizon)
        return None

    def prune(self, horizon: float) -> None:
        idle = [key for key, hits in self._hits.items() if not hits or hits[-1] <= horizon]
        for key in idle:
            del self._hits[key]
        if idle:
            logger.debug("Rate limiter dropped %d idle clients", len(idle))


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Per-address request limiter.

    Settings:
        rate_limit_enabled   False disables the check entirely
        rate_limit_requests  hits allowed per window
        rate_limit_window    window length in seconds

    A rejected request gets 429 with a Retry-After header and the usual
    error envelope.
    """

    EXEMPT_PATHS = frozenset({"/health", "/docs", "/redoc", "/openapi.json"})

    def __init__(self, app, **kwargs):
        super().__init__(app, **kwargs)
        self.window = SlidingWindow()

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if not settings.rate_limit_enabled or request.url.path in self.EXEMPT_PATHS:
            return await call_next(request)

        # Behind a reverse proxy every client shares the proxy's address
        client = request.client.host if request.client else "unknown"
        retry_after = self.window.hit(
            client,
            limit=settings.rate_limit_requests,
            window=settings.rate_limit_window,
            now=time.monotonic(),
        )
        if retry_after is None:
            return await call_next(request)

        logger.warning(
            "Rate limit hit by %s on %s %s (retry in %ds)",
            client,
            request.method,
            request.url.path,
            retry_after,
        )
        return JSONResponse(
            status_code=429,
            content={
                "error": "rate_limit_exceeded",
                "message": f"Too many requests. Retry in {retry_after} seconds.",
                "details": {"retry_after": retry_after},
                "request_id": getattr(request.state, "request_id", ""),
            },
            headers={"Retry-After": str(retry_after)},
        )
