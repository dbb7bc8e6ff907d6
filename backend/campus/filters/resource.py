"""
Campus Portal Backend — Resource Filters
==========================================

What:  The outermost pipeline stage: runs before authorization and body
       binding, and its after-hooks run last.
Who:   Usually attached at router level, e.g. every /api/courses route.

Filters:
    RequestSizeLimitFilter → 400 when Content-Length exceeds the ceiling;
                             adds X-Resource-Processing-Time on the way out
    ApiVersionFilter       → 400 when an API-Version header names another
                             version; adds API-Version on the way out
"""

import logging
from typing import Optional

from campus.config import settings
from campus.pipeline.base import ResourceFilter, StageOutcome, pop_timer, push_timer, set_header
from campus.pipeline.context import RequestContext
from campus.pipeline.results import CONTINUE, PipelineResult, ShortCircuit

logger = logging.getLogger(__name__)


class RequestSizeLimitFilter(ResourceFilter):
    """
    Rejects oversized payloads before anything reads the body.

    Args:
        max_bytes: Content-Length ceiling; defaults to settings.max_request_bytes (10 MiB)
    """

    def __init__(self, max_bytes: Optional[int] = None):
        self.max_bytes = max_bytes if max_bytes is not None else settings.max_request_bytes

    async def before_resource(self, ctx: RequestContext) -> PipelineResult:
        push_timer(ctx, self)
        logger.info("Resource filter executing for: %s", ctx.operation)

        # Conditional request validation hook point; nothing is cached yet
        etag = ctx.header("if-none-match")
        if etag:
            logger.info("Conditional request detected with ETag: %s", etag)

        length = ctx.content_length
        if length is not None and length > self.max_bytes:
            logger.warning("Request too large: %d bytes [%s]", length, ctx.request_id)
            # No after-hook for a short-circuit; drop this entry's start time
            pop_timer(ctx, self)
            return ShortCircuit.json(400, {"error": "Request payload too large"})

        return CONTINUE

    async def after_resource(self, ctx: RequestContext, outcome: StageOutcome) -> None:
        elapsed = pop_timer(ctx, self)
        if elapsed is None:
            return
        elapsed_ms = int(elapsed)

        logger.info(
            "Resource filter executed: %s - Total Duration: %dms", ctx.operation, elapsed_ms
        )
        if outcome.exception is not None:
            logger.error(
                "Resource filter saw exception for %s [%s]: %s",
                ctx.operation,
                ctx.request_id,
                type(outcome.exception).__name__,
            )

        set_header(ctx, outcome.response, "X-Resource-Processing-Time", f"{elapsed_ms}ms", overwrite=False)


class ApiVersionFilter(ResourceFilter):
    """Enforces the API-Version header when the client sends one."""

    def __init__(self, required_version: Optional[str] = None):
        self.required_version = required_version or settings.api_version

    async def before_resource(self, ctx: RequestContext) -> PipelineResult:
        version = ctx.header("api-version")
        if version is None:
            return CONTINUE

        if version.strip() != self.required_version:
            logger.warning(
                "Invalid API version: %s, required: %s [%s]",
                version,
                self.required_version,
                ctx.request_id,
            )
            return ShortCircuit.json(
                400,
                {
                    "error": f"API version {self.required_version} required",
                    "providedVersion": version,
                    "requiredVersion": self.required_version,
                },
            )

        logger.debug("API version validated: %s", version)
        return CONTINUE

    async def after_resource(self, ctx: RequestContext, outcome: StageOutcome) -> None:
        set_header(ctx, outcome.response, "API-Version", self.required_version, overwrite=False)
