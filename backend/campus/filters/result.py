"""
Campus Portal Backend — Result Decorators
===========================================

What:  Add headers to a response the handler produced.
How:   Both filters write in `before_result` with add-if-absent semantics and
       skip with a warning, never raise, when the response can no longer
       change (already started, or the client went away).
"""

import logging
from datetime import datetime, timedelta, timezone
from email.utils import format_datetime
from typing import Mapping, Optional

from starlette.responses import Response

from campus.pipeline.base import ResultFilter, set_header
from campus.pipeline.context import RequestContext
from campus.pipeline.results import CONTINUE, PipelineResult

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {"X-Action-Result-Key": "ResultFilterApplied"}


class CustomHeaderFilter(ResultFilter):
    """
    Adds fixed headers plus an X-Response-Time UTC timestamp.

    Example:
        CustomHeaderFilter({"X-API-Endpoint": "GetAllCourses"})
    """

    def __init__(self, headers: Optional[Mapping[str, str]] = None):
        self.headers = dict(headers) if headers is not None else dict(DEFAULT_HEADERS)

    async def before_result(self, ctx: RequestContext, response: Response) -> PipelineResult:
        if not ctx.response_state.writable:
            logger.warning(
                "Cannot add headers %s to %s because the response has already started",
                ", ".join(self.headers),
                ctx.operation,
            )
            return CONTINUE

        for name, value in self.headers.items():
            if set_header(ctx, response, name, value, overwrite=False):
                logger.debug("Result filter: added header '%s' = '%s'", name, value)

        set_header(
            ctx,
            response,
            "X-Response-Time",
            datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S"),
            overwrite=False,
        )
        return CONTINUE


class CacheControlFilter(ResultFilter):
    """Public caching for `duration_seconds`: Cache-Control plus Expires (RFC 1123)."""

    def __init__(self, duration_seconds: int = 60):
        if duration_seconds < 0:
            raise ValueError("duration_seconds must not be negative")
        self.duration_seconds = duration_seconds

    async def before_result(self, ctx: RequestContext, response: Response) -> PipelineResult:
        if not ctx.response_state.writable:
            logger.warning("Cannot add cache headers to %s: response already started", ctx.operation)
            return CONTINUE

        expires = datetime.now(timezone.utc) + timedelta(seconds=self.duration_seconds)
        set_header(ctx, response, "Cache-Control", f"public, max-age={self.duration_seconds}", overwrite=False)
        set_header(ctx, response, "Expires", format_datetime(expires, usegmt=True), overwrite=False)
        logger.debug("Cache headers added: max-age=%d seconds", self.duration_seconds)
        return CONTINUE
