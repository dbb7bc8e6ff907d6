"""
Campus Portal Backend — Correlation IDs
=========================================

Every request gets an ID that appears in its access-log line, in any error
body the exception boundary writes, and in the X-Request-ID response header.
A client may supply its own; anything empty or longer than
MAX_CLIENT_ID_LENGTH is replaced by eight hex characters of a fresh UUID4.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

HEADER = "X-Request-ID"
MAX_CLIENT_ID_LENGTH = 64

# Read by loggers and RequestContext; one value per request task
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def choose_request_id(supplied: str) -> str:
    candidate = supplied.strip()
    if candidate and len(candidate) <= MAX_CLIENT_ID_LENGTH:
        return candidate
    return uuid.uuid4().hex[:8]


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Binds the correlation ID for the inner chain and echoes it back."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = choose_request_id(request.headers.get(HEADER, ""))
        request.state.request_id = rid
        token = request_id_var.set(rid)
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)

        response.headers[HEADER] = rid
        return response
