"""
Campus Portal Backend — Filter Pipeline
=========================================

What:  Runs the per-route filter stages around a handler.
How:   Before-hooks run in registration order. Each one that returns Continue
       pushes its after-hook onto an `AsyncExitStack`, so unwinding is LIFO
       whether the inner stages returned normally, short-circuited or raised.
       Resource filters and action filters each get their own stack; the
       action stack closes before result filters run, the resource stack
       closes last.
Who:   Constructed at route registration and attached to a `FilteredRoute`.
When:  Once per request, after the middleware chain and authentication.

Short-circuit rules:
    - A ShortCircuit from any before-hook or authorization check becomes the
      response. Inner stages and the handler are skipped. Already-entered
      after-hooks still run, in reverse.
    - A Failure raises its error after the entered after-hooks have seen it.
    - Result filters run only when the handler produced a response. They may
      add headers but never replace the response or raise out of the pipeline.
    - If the client disconnected before the handler would run, the pipeline
      answers 499 without invoking it.
"""

import logging
from contextlib import AsyncExitStack
from typing import Awaitable, Callable, Optional, Sequence, Tuple

from starlette.responses import Response

from campus.pipeline.base import (
    ActionFilter,
    AuthorizationFilter,
    ResourceFilter,
    ResultFilter,
    StageOutcome,
)
from campus.pipeline.context import RequestContext
from campus.pipeline.results import Failure, PipelineResult, ShortCircuit

logger = logging.getLogger(__name__)

Handler = Callable[[RequestContext], Awaitable[Response]]

CLIENT_CLOSED_REQUEST = 499


def _after_hook(hook, ctx: RequestContext, outcome: StageOutcome):
    async def _exit(exc_type, exc, tb) -> bool:
        if exc is not None:
            outcome.exception = exc
        await hook(ctx, outcome)
        # Never suppress: the exception keeps travelling to the boundary
        return False

    return _exit


class FilterPipeline:
    """
    Ordered filter stages for one route.

    Args:
        resource:      ResourceFilter instances (outermost)
        authorization: AuthorizationFilter instances
        action:        ActionFilter instances
        result:        ResultFilter instances
        error_channel: "json" or "html" to force the error format for this route
        bind_body:     load the JSON body into ctx.arguments["body"]
    """

    def __init__(
        self,
        resource: Sequence[ResourceFilter] = (),
        authorization: Sequence[AuthorizationFilter] = (),
        action: Sequence[ActionFilter] = (),
        result: Sequence[ResultFilter] = (),
        error_channel: Optional[str] = None,
        bind_body: bool = True,
    ):
        self.resource: Tuple[ResourceFilter, ...] = tuple(resource)
        self.authorization: Tuple[AuthorizationFilter, ...] = tuple(authorization)
        self.action: Tuple[ActionFilter, ...] = tuple(action)
        self.result: Tuple[ResultFilter, ...] = tuple(result)
        self.error_channel = error_channel
        self.bind_body = bind_body

    def merged_with(self, inner: Optional["FilterPipeline"]) -> "FilterPipeline":
        """Compose with a more specific pipeline; this one's filters run outside."""
        if inner is None:
            return self
        return FilterPipeline(
            resource=self.resource + inner.resource,
            authorization=self.authorization + inner.authorization,
            action=self.action + inner.action,
            result=self.result + inner.result,
            error_channel=inner.error_channel or self.error_channel,
            bind_body=self.bind_body and inner.bind_body,
        )

    def __repr__(self) -> str:
        return (
            f"FilterPipeline(resource={len(self.resource)}, "
            f"authorization={len(self.authorization)}, action={len(self.action)}, "
            f"result={len(self.result)}, error_channel={self.error_channel!r})"
        )

    async def run(self, ctx: RequestContext, handler: Handler) -> Response:
        """Execute every stage around `handler` and return the final response."""
        if self.error_channel:
            ctx.response_state.channel = self.error_channel

        outcome = StageOutcome()

        async with AsyncExitStack() as resource_stack:
            # ── Resource filters ──────────────────────────────────────────
            for resource_filter in self.resource:
                result = await resource_filter.before_resource(ctx)
                if not self._proceed(result, outcome, ctx, resource_filter):
                    return outcome.response
                resource_stack.push_async_exit(
                    _after_hook(resource_filter.after_resource, ctx, outcome)
                )

            # ── Authorization ─────────────────────────────────────────────
            for authorization_filter in self.authorization:
                result = await authorization_filter.check(ctx)
                if not self._proceed(result, outcome, ctx, authorization_filter):
                    return outcome.response

            # ── Binding ───────────────────────────────────────────────────
            if self.bind_body and "body" not in ctx.arguments:
                body = await ctx.json_body()
                if body is not None:
                    ctx.arguments["body"] = body

            # ── Action filters + handler ──────────────────────────────────
            async with AsyncExitStack() as action_stack:
                for action_filter in self.action:
                    result = await action_filter.before(ctx)
                    if not self._proceed(result, outcome, ctx, action_filter):
                        return outcome.response
                    action_stack.push_async_exit(
                        _after_hook(action_filter.after, ctx, outcome)
                    )

                if await ctx.client_disconnected():
                    logger.info(
                        "Client disconnected before %s ran [%s]", ctx.operation, ctx.request_id
                    )
                    outcome.short_circuited = True
                    outcome.response = Response(status_code=CLIENT_CLOSED_REQUEST)
                    return outcome.response

                outcome.handler_invoked = True
                outcome.response = await handler(ctx)

            # ── Result filters ────────────────────────────────────────────
            await self._run_result_filters(ctx, outcome)
            return outcome.response

    async def _run_result_filters(self, ctx: RequestContext, outcome: StageOutcome) -> None:
        """
        Decorators only touch headers of the handler's response. A decorator
        that returns anything but Continue, or raises, is logged and the
        response goes out unchanged.
        """
        entered = []
        for result_filter in self.result:
            try:
                result = await result_filter.before_result(ctx, outcome.response)
            except Exception:
                logger.exception(
                    "%s failed decorating %s [%s]", type(result_filter).__name__, ctx.operation, ctx.request_id
                )
                continue
            if isinstance(result, (ShortCircuit, Failure)):
                logger.warning(
                    "%s returned %s for %s; result decorators cannot replace the response",
                    type(result_filter).__name__,
                    type(result).__name__,
                    ctx.operation,
                )
            entered.append(result_filter)

        for result_filter in reversed(entered):
            try:
                await result_filter.after_result(ctx, outcome.response)
            except Exception:
                logger.exception(
                    "%s failed after %s [%s]", type(result_filter).__name__, ctx.operation, ctx.request_id
                )

    @staticmethod
    def _proceed(result: PipelineResult, outcome: StageOutcome, ctx: RequestContext, stage) -> bool:
        """True for Continue; records a short-circuit or raises a Failure."""
        if isinstance(result, ShortCircuit):
            logger.debug(
                "%s short-circuited %s with %d",
                type(stage).__name__,
                ctx.operation,
                result.response.status_code,
            )
            outcome.short_circuited = True
            outcome.response = result.response
            return False
        if isinstance(result, Failure):
            outcome.exception = result.error
            raise result.error
        return True
