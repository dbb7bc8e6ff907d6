"""
Campus Portal Backend — Filter Contracts
==========================================

What:  Abstract interfaces for the four filter kinds the pipeline composes.
How:   Concrete filters subclass one of these and override the hooks they
       need; the defaults continue and do nothing.
Who:   Implemented in `campus.filters`; driven by `FilterPipeline.run()`.

Stage order for one request:
    ResourceFilter.before_resource      (registration order)
    AuthorizationFilter.check           (registration order)
    body binding
    ActionFilter.before                 (registration order)
    handler
    ActionFilter.after                  (reverse order)
    ResultFilter.before_result          (registration order)
    ResultFilter.after_result           (reverse order)
    ResourceFilter.after_resource       (reverse order)

An after-hook runs only for filters whose before-hook returned Continue.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from starlette.responses import Response

from campus.pipeline.context import RequestContext
from campus.pipeline.results import CONTINUE, PipelineResult

logger = logging.getLogger(__name__)


@dataclass
class StageOutcome:
    """
    What an after-hook sees once the inner stages are finished.

    Attributes:
        response:        the response produced by the handler or a short-circuit
        exception:       the exception travelling outward, if any
        short_circuited: an inner stage answered instead of the handler
        handler_invoked: the handler was called
    """

    response: Optional[Response] = None
    exception: Optional[BaseException] = None
    short_circuited: bool = False
    handler_invoked: bool = False

    @property
    def succeeded(self) -> bool:
        return self.exception is None and self.response is not None


class ResourceFilter(ABC):
    """Outermost stage: wraps authorization, binding, actions and results."""

    async def before_resource(self, ctx: RequestContext) -> PipelineResult:
        return CONTINUE

    async def after_resource(self, ctx: RequestContext, outcome: StageOutcome) -> None:
        return None


class AuthorizationFilter(ABC):
    """Decides whether the caller may reach the handler. No after-hook."""

    @abstractmethod
    async def check(self, ctx: RequestContext) -> PipelineResult:
        ...


class ActionFilter(ABC):
    """Wraps the handler invocation, after binding."""

    async def before(self, ctx: RequestContext) -> PipelineResult:
        return CONTINUE

    async def after(self, ctx: RequestContext, outcome: StageOutcome) -> None:
        return None


class ResultFilter(ABC):
    """
    Decorates a response the handler produced, through its headers only.

    Return CONTINUE. The pipeline logs and ignores any other result and any
    exception, so a decorator can never replace or fail the response.
    """

    async def before_result(self, ctx: RequestContext, response: Response) -> PipelineResult:
        return CONTINUE

    async def after_result(self, ctx: RequestContext, response: Response) -> None:
        return None


def set_header(
    ctx: RequestContext,
    response: Optional[Response],
    name: str,
    value: str,
    overwrite: bool = True,
) -> bool:
    """
    Write one response header if the response can still change.

    Returns False (and logs a warning) instead of raising when the response
    has already started, the client is gone, or there is no response.
    """
    if response is None:
        return False
    if not ctx.response_state.writable:
        logger.warning(
            "Skipping header %s for %s: response already started or client disconnected",
            name,
            ctx.operation,
        )
        return False
    if not overwrite and name in response.headers:
        return False
    response.headers[name] = value
    return True


# ── Per-entry timers ──────────────────────────────────────────────────────
# One filter instance may sit in both the router and the route pipeline, so
# its start times nest: each entry pushes, its own after-hook pops (LIFO).

def push_timer(ctx: RequestContext, owner: object) -> None:
    ctx.items.setdefault(("timer", owner), []).append(time.perf_counter())


def pop_timer(ctx: RequestContext, owner: object) -> Optional[float]:
    """Milliseconds since the matching push_timer(), or None without one."""
    started = ctx.items.get(("timer", owner))
    if not started:
        return None
    return (time.perf_counter() - started.pop()) * 1000
