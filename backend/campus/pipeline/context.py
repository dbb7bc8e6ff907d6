"""
Campus Portal Backend — Request Context
=========================================

What:  The per-request view that every pipeline filter reads and writes.
How:   `RequestContext.from_request()` snapshots the Starlette request
       (route/query params, lower-cased headers, client id, role claims,
       request id) and links the shared `ResponseState` the exception boundary
       maintains. The JSON body is loaded lazily so resource filters can reject
       oversized payloads before anything reads them.
Who:   Built by `FilteredRoute` for each request; passed to every filter.
When:  Created after the middleware chain, discarded when the response is sent.

Filter instances are shared across requests. Anything a filter needs to carry
from its before-hook to its after-hook goes into `ctx.items`; start times go
through push_timer/pop_timer because one instance may be entered twice.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, FrozenSet, Optional

from starlette.requests import Request

from campus.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT = "unknown"

_UNLOADED = object()


@dataclass
class ResponseState:
    """
    Progress of the response for one request.

    Attributes:
        started:   `http.response.start` has been sent; status and headers are final
        completed: the last body chunk has been sent
        closed:    the client disconnected
        channel:   preferred error channel for this route ("json", "html" or None)
    """

    started: bool = False
    completed: bool = False
    closed: bool = False
    channel: Optional[str] = None

    @property
    def writable(self) -> bool:
        """True while status and headers can still change."""
        return not (self.started or self.completed or self.closed)



def _disconnect_check(request: Request) -> Callable[[], Awaitable[bool]]:
    async def check() -> bool:
        # Buffer the body first: the poll reads receive() and would eat it
        await request.body()
        return await request.is_disconnected()

    return check


@dataclass
class RequestContext:
    method: str
    path: str
    route_params: Dict[str, Any] = field(default_factory=dict)
    query_params: Dict[str, str] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)
    client_id: str = UNKNOWN_CLIENT
    roles: FrozenSet[str] = frozenset()
    request_id: str = ""
    operation: str = ""
    # Handler arguments: route + query params, plus "body" once bound
    arguments: Dict[str, Any] = field(default_factory=dict)
    # Per-request scratch space for filters
    items: Dict[Any, Any] = field(default_factory=dict)
    response_state: ResponseState = field(default_factory=ResponseState)
    body_loader: Optional[Callable[[], Awaitable[bytes]]] = None
    # Asks the server whether the client is gone; None when there is no connection
    disconnect_check: Optional[Callable[[], Awaitable[bool]]] = None
    _json: Any = field(default=_UNLOADED, repr=False)

    def __post_init__(self) -> None:
        self.headers = {k.lower(): v for k, v in self.headers.items()}
        if not self.arguments:
            self.arguments = {**self.query_params, **self.route_params}

    @classmethod
    def from_request(cls, request: Request, operation: str = "") -> "RequestContext":
        """Snapshot a Starlette request into a pipeline context."""
        state = request.scope.setdefault("state", {})
        response_state = state.get("response_state")
        if response_state is None:
            response_state = ResponseState()
            state["response_state"] = response_state

        roles: FrozenSet[str] = frozenset()
        if "auth" in request.scope and request.auth is not None:
            roles = frozenset(getattr(request.auth, "scopes", ()) or ())

        return cls(
            method=request.method,
            path=request.url.path,
            route_params=dict(request.path_params),
            query_params=dict(request.query_params),
            headers=dict(request.headers),
            client_id=request.client.host if request.client else UNKNOWN_CLIENT,
            roles=roles,
            request_id=state.get("request_id") or request_id_var.get(""),
            operation=operation or f"{request.method} {request.url.path}",
            response_state=response_state,
            body_loader=request.body,
            disconnect_check=_disconnect_check(request),
        )

    # ── Convenience accessors ─────────────────────────────────────────────

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.headers.get(name.lower(), default)

    @property
    def content_length(self) -> Optional[int]:
        raw = self.header("content-length")
        if raw is None:
            return None
        try:
            return int(raw)
        except ValueError:
            return None

    def has_any_role(self, required) -> bool:
        """Case-insensitive intersection of caller roles and `required`."""
        held = {role.lower() for role in self.roles}
        return any(role.lower() in held for role in required)

    async def client_disconnected(self) -> bool:
        """
        True once the client has gone away. Polls the connection when nothing
        downstream has observed `http.disconnect` yet, and records the answer
        in the shared ResponseState.
        """
        if not self.response_state.closed and self.disconnect_check is not None:
            if await self.disconnect_check():
                self.response_state.closed = True
        return self.response_state.closed

    async def json_body(self) -> Any:
        """
        The request body parsed as JSON, or None when empty or not JSON.

        Loaded at most once per request; later calls return the cached value.
        """
        if self._json is not _UNLOADED:
            return self._json

        self._json = None
        if self.body_loader is None:
            return None

        raw = await self.body_loader()
        if raw:
            try:
                self._json = json.loads(raw)
            except (UnicodeDecodeError, json.JSONDecodeError):
                logger.debug("Request body for %s is not valid JSON", self.operation)
        return self._json
