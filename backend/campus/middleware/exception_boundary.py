"""
Campus Portal Backend — Exception Boundary Middleware
=======================================================

What:  The single place where unhandled exceptions become error responses.
How:   Pure ASGI middleware. It wraps `send` to observe `http.response.start`
       and the final body chunk, and wraps `receive` to observe client
       disconnects, recording both in a `ResponseState` it publishes as
       `scope["state"]["response_state"]`. On an exception it classifies
       the failure (see `campus.exceptions.classify_exception`) and:
         - response not yet started → writes exactly one error response,
           JSON on the API channel, an HTML page otherwise, and stops
           the exception here
         - response already started → logs and re-raises; nothing more is
           written, because status and headers are already on the wire
Who:   Registered inside the logging middleware, outside authentication.
When:  Wraps every HTTP request.

Why pure ASGI:
    BaseHTTPMiddleware hands back a Response object only after the inner app
    finished, so it cannot tell whether `http.response.start` already went
    out. Observing the ASGI messages directly can.

Development mode (ENVIRONMENT=development):
    - JSON bodies carry `details` (exception type and traceback)
    - HTML pages include the traceback
    - X-Exception-Type / X-Exception-Message response headers
"""

import logging
import traceback
from typing import Optional

from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from campus.config import settings
from campus.exceptions import CampusError, ErrorCategory, classify_exception
from campus.middleware.request_id import request_id_var
from campus.pipeline.context import ResponseState
from campus.responses import (
    JSON_CHANNEL,
    html_error_response,
    json_error_response,
    negotiate_channel,
)

logger = logging.getLogger(__name__)

_MAX_HEADER_LENGTH = 200


def _header_safe(value: str) -> str:
    flattened = " ".join(value.split())[:_MAX_HEADER_LENGTH]
    return flattened.encode("latin-1", errors="replace").decode("latin-1")


def _operation_name(scope: Scope) -> str:
    route = scope.get("route")
    name = getattr(route, "name", None)
    if name:
        return name
    endpoint = scope.get("endpoint")
    if endpoint is not None and hasattr(endpoint, "__name__"):
        return endpoint.__name__
    return f"{scope.get('method', '')} {scope.get('path', '')}"


class ExceptionBoundaryMiddleware:
    """
    Catches, classifies and answers unhandled exceptions exactly once.

    Args:
        app:         the inner ASGI application
        development: include exception details; defaults to settings
        api_prefix:  paths under it answer with JSON; defaults to settings
    """

    def __init__(
        self,
        app: ASGIApp,
        development: Optional[bool] = None,
        api_prefix: Optional[str] = None,
    ) -> None:
        self.app = app
        self.development = settings.is_development if development is None else development
        self.api_prefix = settings.api_prefix if api_prefix is None else api_prefix

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        state = scope.setdefault("state", {})
        response_state = state.get("response_state")
        if response_state is None:
            response_state = ResponseState()
            state["response_state"] = response_state

        async def tracking_receive() -> Message:
            message = await receive()
            if message["type"] == "http.disconnect":
                response_state.closed = True
            return message

        async def tracking_send(message: Message) -> None:
            if message["type"] == "http.response.start":
                response_state.started = True
            elif message["type"] == "http.response.body" and not message.get("more_body", False):
                response_state.completed = True
            await send(message)

        try:
            await self.app(scope, tracking_receive, tracking_send)
        except Exception as exc:
            classification = classify_exception(exc, development=self.development)
            path = scope.get("path", "")
            request_id = state.get("request_id") or request_id_var.get("")
            operation = _operation_name(scope)

            if response_state.started:
                logger.error(
                    "%s in %s after the response started [%s]: %s",
                    classification.category.value,
                    operation,
                    request_id,
                    exc,
                    exc_info=exc,
                    extra={"request_id": request_id, "category": classification.category.value},
                )
                raise

            self._log(exc, classification.category, operation, request_id)

            headers = {}
            if self.development:
                headers["X-Exception-Type"] = _header_safe(type(exc).__name__)
                headers["X-Exception-Message"] = _header_safe(str(exc))

            channel = negotiate_channel(
                path,
                Headers(scope=scope).get("accept", ""),
                state=response_state,
                api_prefix=self.api_prefix,
            )
            trace = None
            if self.development:
                trace = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))

            if channel == JSON_CHANNEL:
                details = None
                if self.development:
                    details = {"exception_type": type(exc).__name__, "traceback": trace}
                response = json_error_response(
                    classification, path, request_id, details=details, headers=headers
                )
            else:
                response = html_error_response(
                    classification, request_id=request_id, trace=trace, headers=headers
                )

            await response(scope, tracking_receive, tracking_send)

    @staticmethod
    def _log(exc: Exception, category: ErrorCategory, operation: str, request_id: str) -> None:
        message = exc.message if isinstance(exc, CampusError) else str(exc)
        if category in (ErrorCategory.UPSTREAM_FAILURE, ErrorCategory.UNCLASSIFIED):
            logger.error(
                "%s in %s [%s]: %s",
                category.value,
                operation,
                request_id,
                message,
                exc_info=exc,
                extra={"request_id": request_id, "category": category.value},
            )
        else:
            logger.warning(
                "%s in %s [%s]: %s",
                category.value,
                operation,
                request_id,
                message,
                extra={"request_id": request_id, "category": category.value},
            )
