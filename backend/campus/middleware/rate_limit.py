"""
Campus Portal Backend — Rate Limiting Middleware
==================================================

What:  Per-client fixed window rate limiter (default 100 requests / 60s).
Why:   Protects the portal from request floods by a single client.
How:   `RateLimiter` keeps one window counter per client id. The middleware
       asks it to admit each request and answers 429 when it refuses.
When:  Outermost middleware; a refused request costs no further work.

Algorithm: Fixed Window Counter
    For each request from client C at time `now`:
    1. Look up (or lazily create) C's window {count, window_start}
    2. If now - window_start > window: reset count to 0, window_start to now
    3. Increment count
    4. Admit if count <= limit, otherwise reject

    Rejected requests still count, so a client hammering past the limit stays
    rejected until its window expires.

Concurrency:
    Each client window has its own lock, so counting for one client never
    waits on another. The registry lock is held only to insert a new window
    or to prune expired ones, never while counting. Two requests from the
    same client are serialized by that client's lock: exactly `limit` of any
    burst are admitted within one window.

Memory:
    Expired windows are pruned every `prune_interval` admissions. Pruning is
    best-effort: a window that expires right after a prune lives until the
    next one.

Scope:
    Counts live in process memory, so each uvicorn worker limits on its own.
"""

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from campus.config import settings
from campus.responses import JSON_CHANNEL, html_page, negotiate_channel

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT = "unknown"


@dataclass(frozen=True)
class RateLimitDecision:
    """
    Result of one admission check.

    Attributes:
        allowed:     True if the request may proceed
        count:       requests counted in the current window, this one included
        retry_after: whole seconds until the window resets (0 when allowed)
    """

    allowed: bool
    count: int
    retry_after: int = 0


class ClientWindow:
    """
    Counter for one client within the current fixed window.

    `retired` is set, under `lock`, when prune() removes the window from the
    registry; a retired window never counts again.
    """

    __slots__ = ("count", "window_start", "lock", "retired")

    def __init__(self, window_start: float):
        self.count = 0
        self.window_start = window_start
        self.lock = threading.Lock()
        self.retired = False


class RateLimiter:
    """
    Thread-safe keyed fixed window counter.

    Args:
        limit:          requests admitted per client per window
        window_seconds: window duration
        clock:          monotonic time source, injectable for tests
        prune_interval: admissions between sweeps of expired windows
    """

    def __init__(
        self,
        limit: int = 100,
        window_seconds: float = 60,
        clock: Callable[[], float] = time.monotonic,
        prune_interval: int = 1000,
    ):
        if limit < 1:
            raise ValueError("limit must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._prune_interval = max(1, prune_interval)
        self._windows: Dict[str, ClientWindow] = {}
        self._registry_lock = threading.Lock()
        self._admissions = 0

    @classmethod
    def from_settings(cls) -> "RateLimiter":
        return cls(limit=settings.rate_limit_requests, window_seconds=settings.rate_limit_window)

    def admit(self, client_id: Optional[str], now: Optional[float] = None) -> RateLimitDecision:
        """Count one request for `client_id` and decide whether to admit it."""
        key = client_id or UNKNOWN_CLIENT
        if now is None:
            now = self._clock()

        while True:
            window = self._windows.get(key)
            if window is None:
                with self._registry_lock:
                    window = self._windows.setdefault(key, ClientWindow(now))

            with window.lock:
                # Pruned between the lookup and the lock; count in its successor
                if window.retired:
                    continue
                if now - window.window_start > self.window_seconds:
                    window.count = 0
                    window.window_start = now
                window.count += 1
                count = window.count
                window_start = window.window_start
            break

        self._maybe_prune(now)

        if count <= self.limit:
            return RateLimitDecision(allowed=True, count=count)

        remaining = self.window_seconds - (now - window_start)
        return RateLimitDecision(
            allowed=False,
            count=count,
            retry_after=max(1, math.ceil(remaining)),
        )

    def count_for(self, client_id: Optional[str]) -> int:
        window = self._windows.get(client_id or UNKNOWN_CLIENT)
        return window.count if window is not None else 0

    def size(self) -> int:
        """Number of client windows currently tracked."""
        return len(self._windows)

    def _maybe_prune(self, now: float) -> None:
        # Counter is approximate under contention; it only paces the sweep
        self._admissions += 1
        if self._admissions % self._prune_interval == 0:
            self.prune(now)

    def prune(self, now: Optional[float] = None) -> int:
        """
        Drop windows that have expired.

        What:    Bounds memory when many distinct clients pass through.
        Returns: number of windows removed.
        """
        if now is None:
            now = self._clock()
        expired = []
        # Lock order is registry, then window; admit() never holds both
        with self._registry_lock:
            for key, window in list(self._windows.items()):
                with window.lock:
                    if now - window.window_start > self.window_seconds:
                        window.retired = True
                        expired.append(key)
            for key in expired:
                del self._windows[key]

        if expired:
            logger.debug("Pruned %d expired rate limit windows", len(expired))
        return len(expired)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Rejects requests from clients over their window budget.

    Args:
        limiter: the application's RateLimiter; one instance per application

    Probes and the API docs are never counted. A refusal is a 429 with
    Retry-After, as a JSON error body or a short HTML page depending on the
    negotiated channel.
    """

    EXCLUDED_PATHS = {"/health", "/docs", "/openapi.json", "/redoc"}

    def __init__(self, app, limiter: Optional[RateLimiter] = None, **kwargs):
        super().__init__(app, **kwargs)
        self.limiter = limiter if limiter is not None else RateLimiter.from_settings()

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        # Caveat: Behind a proxy, this is the proxy's address
        client_id = request.client.host if request.client else UNKNOWN_CLIENT

        decision = self.limiter.admit(client_id)
        if decision.allowed:
            return await call_next(request)

        logger.warning(
            "Rate limit exceeded for client %s: %d requests in %ss window",
            client_id,
            decision.count,
            self.limiter.window_seconds,
        )

        message = f"Too many requests. Please wait {decision.retry_after} seconds before retrying."
        headers = {"Retry-After": str(decision.retry_after)}
        channel = negotiate_channel(
            request.url.path,
            request.headers.get("accept", ""),
            api_prefix=settings.api_prefix,
        )
        if channel == JSON_CHANNEL:
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limit_exceeded",
                    "message": message,
                    "details": {"retry_after": decision.retry_after},
                },
                headers=headers,
            )
        return html_page(429, "Too Many Requests", message, headers=headers)
