"""
Campus Portal Backend — Access Log Middleware
===============================================

What:  One access-log record per request on the `campus.access` logger.
How:   Times the inner chain with a monotonic clock. A finished response is
       logged at a level derived from its status; a failure that escapes the
       inner chain is logged with its elapsed time and re-raised as is.
When:  Inside RequestIDMiddleware, outside the exception boundary, so every
       record carries the correlation ID.

Privacy:
    ✅ Recorded: method, path, status, elapsed ms, peer address, request ID
    ❌ Never recorded: bodies, X-User / X-User-Roles
"""

import logging
import time
from typing import Any, Dict

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from campus.middleware.request_id import request_id_var

logger = logging.getLogger("campus.access")

# Probes hit these every few seconds
QUIET_PATHS = frozenset({"/health"})


def level_for_status(status: int) -> int:
    """Server faults are errors, client faults warnings, the rest info."""
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Access logger around the pipeline and handler.

    The `extra` mapping repeats the message fields so a structured handler
    can index them without parsing the text.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in QUIET_PATHS:
            return await call_next(request)

        fields: Dict[str, Any] = {
            "request_id": request_id_var.get(""),
            "method": request.method,
            "path": request.url.path,
            "client_ip": request.client.host if request.client else "unknown",
        }
        began = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as exc:
            fields["duration_ms"] = round((time.perf_counter() - began) * 1000, 2)
            logger.error(
                "%(method)s %(path)s raised %(error)s after %(duration_ms).1fms [%(request_id)s]",
                {**fields, "error": type(exc).__name__},
                extra=fields,
            )
            raise

        fields["status"] = response.status_code
        fields["duration_ms"] = round((time.perf_counter() - began) * 1000, 2)
        logger.log(
            level_for_status(response.status_code),
            "%(method)s %(path)s -> %(status)d in %(duration_ms).1fms [%(request_id)s] %(client_ip)s",
            fields,
            extra=fields,
        )
        return response
