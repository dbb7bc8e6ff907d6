"""
Campus Portal Backend — Application Factory
=============================================

What:  Builds the ASGI application: logging, lifespan, middleware chain and
       the filtered routers.
Who:   uvicorn (`uvicorn campus.main:app`) and the test suite, which builds a
       fresh app per test with its own rate limiter.

Request path (outermost first):
    ┌──────────────────────────────────────────────────────────────┐
    │ RateLimit → RequestID → AccessLog → CORS → GZip              │
    │   → ExceptionBoundary → Authentication                       │
    │     → route → FilterPipeline → handler                       │
    └──────────────────────────────────────────────────────────────┘

    Errors are answered by the exception boundary alone; the app registers
    no exception handlers of its own.

Lifespan:
    startup:  configure logging, report configuration problems, create the
              schema when the URL is SQLite
    shutdown: dispose the engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from starlette.middleware.authentication import AuthenticationMiddleware

from campus import __version__
from campus.config import settings
from campus.database import create_tables, dispose_engine
from campus.middleware.authentication import HeaderAuthBackend
from campus.middleware.exception_boundary import ExceptionBoundaryMiddleware
from campus.middleware.logging import RequestLoggingMiddleware
from campus.middleware.rate_limit import RateLimiter, RateLimitMiddleware
from campus.middleware.request_id import RequestIDMiddleware
from campus.routes import courses, departments, diagnostics, health, notifications, portal

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Chatty at INFO; kept to warnings unless something breaks
NOISY_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "httpcore", "httpx", "aiosmtplib")

ROUTERS = (health, courses, departments, notifications, portal, diagnostics)

EXPOSED_HEADERS = [
    "X-Request-ID",
    "Retry-After",
    "API-Version",
    "X-API-Endpoint",
    "X-Resource-Processing-Time",
]


# ══════════════════════════════════════════════════════════════════════════
# Logging
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """Root handler on stdout at `settings.log_level`; replaces earlier config."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info("Campus Portal %s starting (environment=%s)", __version__, settings.environment)

    # A misconfigured deployment still serves; the problem is loud in the log
    try:
        settings.validate_required_for_production()
    except ValueError as exc:
        logger.error("Configuration problem: %s", exc)

    logger.info("Department locations allowed: %s", ", ".join(settings.allowed_locations_list))

    if settings.database_url.startswith("sqlite"):
        await create_tables()
        logger.info("SQLite schema ensured")

    logger.info("Listening on http://%s:%d", settings.backend_host, settings.backend_port)
    yield

    logger.info("Campus Portal stopping")
    await dispose_engine()


# ══════════════════════════════════════════════════════════════════════════
# Factory
# ══════════════════════════════════════════════════════════════════════════

def _install_middleware(
    app: FastAPI, limiter: RateLimiter, development: Optional[bool]
) -> None:
    # add_middleware prepends: the first call here ends up innermost
    app.add_middleware(AuthenticationMiddleware, backend=HeaderAuthBackend())
    app.add_middleware(
        ExceptionBoundaryMiddleware,
        development=development,
        api_prefix=settings.api_prefix,
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=EXPOSED_HEADERS,
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware, limiter=limiter)


def create_app(
    limiter: Optional[RateLimiter] = None,
    development: Optional[bool] = None,
) -> FastAPI:
    """
    Build a configured application.

    Args:
        limiter:     rate limiter shared by every request of this app; built
                     from settings when omitted
        development: detailed error bodies; falls back to settings
    """
    app = FastAPI(
        title="Campus Portal API",
        description=(
            "Course and department portal. Every route runs inside a filter "
            "pipeline of resource, authorization, action and result stages."
        ),
        version=__version__,
        lifespan=lifespan,
    )

    if limiter is None:
        limiter = RateLimiter.from_settings()
    _install_middleware(app, limiter, development)

    for module in ROUTERS:
        app.include_router(module.router)

    return app


app = create_app()
