"""
Chirpline Backend: Access Log Middleware
==========================================

Writes one "chirpline.access" line per request once the response (or an
unhandled exception) is known. Runs inside RequestIDMiddleware, so the
request ID is already available.

    POST /tweets 201 12.4ms [a1b2c3d4] from 127.0.0.1

Bodies and headers are never logged; tweet text and media stay out of logs.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from app.middleware.request_id import request_id_var

logger = logging.getLogger("chirpline.access")


def level_for(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    # Polled by orchestrators; logging them drowns everything else
    QUIET_PATHS = frozenset({"/health"})

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path in self.QUIET_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        status = 500
        try:
            response = await call_next(request)
            status = response.status_code
            return response
        finally:
            self._log(request, status, (time.perf_counter() - started) * 1000)

    @staticmethod
    def _log(request: Request, status: int, elapsed_ms: float) -> None:
        rid = request_id_var.get("")
        client = request.client.host if request.client else "unknown"
        logger.log(
            level_for(status),
            "%s %s %d %.1fms [%s] from %s",
            request.method,
            request.url.path,
            status,
            elapsed_ms,
            rid,
            client,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": request.url.path,
                "status": status,
                "duration_ms": round(elapsed_ms, 2),
                "client_ip": client,
            },
        )
