"""
Chirpline Backend: Request ID Middleware
==========================================

Tags every request with a short correlation ID. A client-supplied
X-Request-ID is kept (trimmed to a sane length) so IDs can be followed
across services; otherwise an 8-character ID is generated. The ID is
echoed in the response header and lands in every error body and access
log line through `request_id_var`.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LENGTH = 64

# Each request task sees its own value
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def new_request_id() -> str:
    return uuid.uuid4().hex[:8]


class RequestIDMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        supplied = request.headers.get(REQUEST_ID_HEADER, "").strip()
        rid = supplied[:MAX_REQUEST_ID_LENGTH] or new_request_id()

        # Left set after the response: the catch-all 500 handler runs outside this middleware
        request_id_var.set(rid)
        request.state.request_id = rid
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = rid
        return response
