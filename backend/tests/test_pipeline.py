"""
Campus Portal Backend — Filter Pipeline Tests
===============================================

What:  Ordering and short-circuit rules of FilterPipeline.run().
How:   Recording filters append to a shared event list; the handler is a
       plain coroutine returning a Starlette response. The routing tests at
       the end drive a small FastAPI app over httpx.

What we test:
    ✅ Before-hooks in registration order, after-hooks LIFO (depth ≥ 2)
    ✅ Authorization short-circuit: handler never invoked, entered hooks unwind
    ✅ Action short-circuit skips the handler and result filters
    ✅ Failure raises after entered after-hooks saw the error
    ✅ Handler exceptions reach every entered after-hook and keep propagating
    ✅ Client disconnect before the handler → 499, also when only a poll sees it
    ✅ Result decorators never replace the response or raise
    ✅ Body binding and router/route pipeline composition
    ✅ FilteredRouter: denied requests never reach the endpoint
"""

import pytest
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse

from campus.pipeline import (
    CONTINUE,
    ActionFilter,
    AuthorizationFilter,
    Failure,
    FilterPipeline,
    RequestContext,
    ResourceFilter,
    ResultFilter,
    ShortCircuit,
)
from campus.pipeline.pipeline import CLIENT_CLOSED_REQUEST


class RecordingResource(ResourceFilter):
    def __init__(self, name, events, result=CONTINUE):
        self.name, self.events, self.result = name, events, result
        self.outcomes = []

    async def before_resource(self, ctx):
        self.events.append(f"{self.name}.before")
        return self.result

    async def after_resource(self, ctx, outcome):
        self.events.append(f"{self.name}.after")
        self.outcomes.append(outcome)


class RecordingAuthorization(AuthorizationFilter):
    def __init__(self, name, events, result=CONTINUE):
        self.name, self.events, self.result = name, events, result

    async def check(self, ctx):
        self.events.append(f"{self.name}.check")
        return self.result


class RecordingAction(ActionFilter):
    def __init__(self, name, events, result=CONTINUE):
        self.name, self.events, self.result = name, events, result
        self.outcomes = []

    async def before(self, ctx):
        self.events.append(f"{self.name}.before")
        return self.result

    async def after(self, ctx, outcome):
        self.events.append(f"{self.name}.after")
        self.outcomes.append(outcome)


class RecordingResult(ResultFilter):
    def __init__(self, name, events, result=CONTINUE):
        self.name, self.events, self.result = name, events, result

    async def before_result(self, ctx, response):
        self.events.append(f"{self.name}.before_result")
        return self.result

    async def after_result(self, ctx, response):
        self.events.append(f"{self.name}.after_result")


def recording_handler(events, response=None):
    async def handler(ctx):
        events.append("handler")
        return response or PlainTextResponse("ok")

    return handler


def denied():
    return ShortCircuit.json(403, {"message": "denied"})


class TestPipelineOrdering:
    """Stage order on the success path."""

    @pytest.mark.asyncio
    async def test_full_order_with_lifo_unwinding(self, make_context):
        events = []
        pipeline = FilterPipeline(
            resource=[RecordingResource("r1", events), RecordingResource("r2", events)],
            authorization=[RecordingAuthorization("auth", events)],
            action=[RecordingAction("a1", events), RecordingAction("a2", events)],
            result=[RecordingResult("s1", events), RecordingResult("s2", events)],
        )

        response = await pipeline.run(make_context(), recording_handler(events))

        assert response.status_code == 200
        assert events == [
            "r1.before",
            "r2.before",
            "auth.check",
            "a1.before",
            "a2.before",
            "handler",
            "a2.after",
            "a1.after",
            "s1.before_result",
            "s2.before_result",
            "s2.after_result",
            "s1.after_result",
            "r2.after",
            "r1.after",
        ]

    @pytest.mark.asyncio
    async def test_after_hooks_see_handler_response(self, make_context):
        events = []
        resource = RecordingResource("r", events)
        action = RecordingAction("a", events)
        pipeline = FilterPipeline(resource=[resource], action=[action])

        await pipeline.run(make_context(), recording_handler(events))

        outcome = action.outcomes[0]
        assert outcome.handler_invoked
        assert outcome.succeeded
        assert resource.outcomes[0].response.status_code == 200

    @pytest.mark.asyncio
    async def test_empty_pipeline_just_runs_handler(self, make_context):
        events = []
        response = await FilterPipeline().run(make_context(), recording_handler(events))
        assert events == ["handler"]
        assert response.body == b"ok"


class TestPipelineShortCircuit:
    """Denials stop the pipeline without invoking the handler."""

    @pytest.mark.asyncio
    async def test_authorization_denial_never_invokes_handler(self, make_context):
        events = []
        resource = RecordingResource("r", events)
        pipeline = FilterPipeline(
            resource=[resource],
            authorization=[
                RecordingAuthorization("first", events, result=denied()),
                RecordingAuthorization("second", events),
            ],
            action=[RecordingAction("a", events)],
            result=[RecordingResult("s", events)],
        )

        response = await pipeline.run(make_context(), recording_handler(events))

        assert response.status_code == 403
        assert "handler" not in events
        assert events == ["r.before", "first.check", "r.after"]
        assert resource.outcomes[0].short_circuited
        assert not resource.outcomes[0].handler_invoked

    @pytest.mark.asyncio
    async def test_short_circuiting_resource_filter_skips_its_own_after_hook(self, make_context):
        events = []
        pipeline = FilterPipeline(
            resource=[
                RecordingResource("outer", events),
                RecordingResource("middle", events, result=denied()),
                RecordingResource("inner", events),
            ],
        )

        response = await pipeline.run(make_context(), recording_handler(events))

        assert response.status_code == 403
        assert events == ["outer.before", "middle.before", "outer.after"]

    @pytest.mark.asyncio
    async def test_action_short_circuit_skips_handler_and_results(self, make_context):
        events = []
        pipeline = FilterPipeline(
            resource=[RecordingResource("r", events)],
            action=[
                RecordingAction("a1", events),
                RecordingAction("a2", events, result=ShortCircuit(JSONResponse({"x": 1}, status_code=400))),
            ],
            result=[RecordingResult("s", events)],
        )

        response = await pipeline.run(make_context(), recording_handler(events))

        assert response.status_code == 400
        assert events == ["r.before", "a1.before", "a2.before", "a1.after", "r.after"]

    @pytest.mark.asyncio
    async def test_result_decorator_cannot_replace_response(self, make_context):
        events = []
        original = PlainTextResponse("ok")
        pipeline = FilterPipeline(
            result=[
                RecordingResult("s1", events, result=ShortCircuit(PlainTextResponse("teapot", status_code=418))),
                RecordingResult("s2", events),
            ],
        )

        response = await pipeline.run(make_context(), recording_handler(events, original))

        assert response is original
        assert response.status_code == 200
        assert events == [
            "handler",
            "s1.before_result",
            "s2.before_result",
            "s2.after_result",
            "s1.after_result",
        ]

    @pytest.mark.asyncio
    async def test_result_decorator_failure_is_not_raised(self, make_context):
        events = []

        class Exploding(ResultFilter):
            async def before_result(self, ctx, response):
                raise RuntimeError("decorator broke")

        pipeline = FilterPipeline(
            result=[
                RecordingResult("s1", events, result=Failure(RuntimeError("decorator failure"))),
                Exploding(),
                RecordingResult("s2", events),
            ],
        )

        response = await pipeline.run(make_context(), recording_handler(events))

        assert response.status_code == 200
        assert response.body == b"ok"
        assert "s2.after_result" in events


class TestPipelineFailures:
    """Failures and exceptions unwind the entered hooks, then propagate."""

    @pytest.mark.asyncio
    async def test_failure_raises_after_outer_hooks_ran(self, make_context):
        events = []
        outer = RecordingResource("outer", events)
        pipeline = FilterPipeline(
            resource=[outer, RecordingResource("inner", events, result=Failure(LookupError("boom")))],
        )

        with pytest.raises(LookupError, match="boom"):
            await pipeline.run(make_context(), recording_handler(events))

        assert events == ["outer.before", "inner.before", "outer.after"]
        assert isinstance(outer.outcomes[0].exception, LookupError)

    @pytest.mark.asyncio
    async def test_handler_exception_reaches_every_after_hook(self, make_context):
        events = []
        resource = RecordingResource("r", events)
        action = RecordingAction("a", events)
        pipeline = FilterPipeline(
            resource=[resource],
            action=[action],
            result=[RecordingResult("s", events)],
        )

        async def failing_handler(ctx):
            events.append("handler")
            raise RuntimeError("handler failed")

        with pytest.raises(RuntimeError, match="handler failed"):
            await pipeline.run(make_context(), failing_handler)

        assert events == ["r.before", "a.before", "handler", "a.after", "r.after"]
        assert isinstance(action.outcomes[0].exception, RuntimeError)
        assert action.outcomes[0].handler_invoked
        assert not action.outcomes[0].succeeded

    @pytest.mark.asyncio
    async def test_failure_from_authorization_propagates(self, make_context):
        events = []
        pipeline = FilterPipeline(
            authorization=[RecordingAuthorization("auth", events, result=Failure(PermissionError("no")))],
        )

        with pytest.raises(PermissionError):
            await pipeline.run(make_context(), recording_handler(events))
        assert "handler" not in events


class TestPipelineDisconnect:
    """A client that went away before the handler gets 499."""

    @pytest.mark.asyncio
    async def test_closed_client_gets_499_without_handler(self, make_context):
        events = []
        ctx = make_context()
        ctx.response_state.closed = True
        pipeline = FilterPipeline(
            action=[RecordingAction("a", events)],
            result=[RecordingResult("s", events)],
        )

        response = await pipeline.run(ctx, recording_handler(events))

        assert response.status_code == CLIENT_CLOSED_REQUEST
        assert events == ["a.before", "a.after"]

    @pytest.mark.asyncio
    async def test_connection_is_polled_before_handler(self, make_context):
        events = []
        ctx = make_context()

        async def gone():
            events.append("poll")
            return True

        ctx.disconnect_check = gone

        response = await FilterPipeline().run(ctx, recording_handler(events))

        assert response.status_code == CLIENT_CLOSED_REQUEST
        assert events == ["poll"]
        assert ctx.response_state.closed

    @pytest.mark.asyncio
    async def test_connected_client_reaches_handler(self, make_context):
        events = []
        ctx = make_context()

        async def still_there():
            return False

        ctx.disconnect_check = still_there

        response = await FilterPipeline().run(ctx, recording_handler(events))

        assert response.status_code == 200
        assert events == ["handler"]
        assert not ctx.response_state.closed

    @pytest.mark.asyncio
    async def test_request_poll_keeps_body_and_sees_disconnect(self):
        messages = [
            {"type": "http.request", "body": b'{"deptId": 1}', "more_body": False},
            {"type": "http.disconnect"},
        ]

        async def receive():
            return messages.pop(0)

        scope = {
            "type": "http",
            "method": "POST",
            "path": "/api/courses",
            "headers": [],
            "query_string": b"",
        }
        ctx = RequestContext.from_request(Request(scope, receive))

        assert await ctx.client_disconnected()
        assert await ctx.json_body() == {"deptId": 1}


class TestPipelineBindingAndComposition:
    """Body binding and router/route merging."""

    @pytest.mark.asyncio
    async def test_json_body_is_bound_before_action_filters(self, make_context):
        seen = {}

        class Capture(ActionFilter):
            async def before(self, ctx):
                seen.update(ctx.arguments)
                return CONTINUE

        ctx = make_context(method="POST", body=b'{"deptId": 1, "name": "Algorithms"}')
        await FilterPipeline(action=[Capture()]).run(ctx, recording_handler([]))

        assert seen["body"] == {"deptId": 1, "name": "Algorithms"}

    @pytest.mark.asyncio
    async def test_binding_can_be_disabled(self, make_context):
        ctx = make_context(method="POST", body=b'{"deptId": 1}')
        await FilterPipeline(bind_body=False).run(ctx, recording_handler([]))
        assert "body" not in ctx.arguments

    @pytest.mark.asyncio
    async def test_invalid_json_body_is_not_bound(self, make_context):
        ctx = make_context(method="POST", body=b"not json")
        await FilterPipeline().run(ctx, recording_handler([]))
        assert "body" not in ctx.arguments

    @pytest.mark.asyncio
    async def test_merged_pipeline_runs_router_filters_outside(self, make_context):
        events = []
        router_level = FilterPipeline(
            resource=[RecordingResource("router", events)],
            error_channel="json",
        )
        route_level = FilterPipeline(
            resource=[RecordingResource("route", events)],
            action=[RecordingAction("a", events)],
        )

        merged = router_level.merged_with(route_level)
        ctx = make_context()
        await merged.run(ctx, recording_handler(events))

        assert events == [
            "router.before",
            "route.before",
            "a.before",
            "handler",
            "a.after",
            "route.after",
            "router.after",
        ]
        assert merged.error_channel == "json"
        assert ctx.response_state.channel == "json"

    def test_merging_with_nothing_returns_same_pipeline(self):
        pipeline = FilterPipeline()
        assert pipeline.merged_with(None) is pipeline

    def test_route_channel_overrides_router_channel(self):
        merged = FilterPipeline(error_channel="json").merged_with(FilterPipeline(error_channel="html"))
        assert merged.error_channel == "html"


class TestFilteredRouting:
    """FilteredRouter wires pipelines into real FastAPI routes."""

    def build_app(self, events):
        from fastapi import FastAPI
        from starlette.middleware.authentication import AuthenticationMiddleware

        from campus.filters import RoleAuthorizationFilter
        from campus.middleware.authentication import HeaderAuthBackend
        from campus.pipeline import FilteredRouter

        router = FilteredRouter(
            prefix="/api/things",
            pipeline=FilterPipeline(resource=[RecordingResource("router", events)]),
        )

        @router.get("")
        async def list_things():
            events.append("list")
            return {"things": []}

        @router.filtered(
            "/{thing_id}",
            methods=["GET"],
            pipeline=FilterPipeline(authorization=[RoleAuthorizationFilter(["Admin"])]),
        )
        async def get_thing(thing_id: int):
            events.append("get")
            return {"id": thing_id}

        app = FastAPI()
        app.include_router(router)
        app.add_middleware(AuthenticationMiddleware, backend=HeaderAuthBackend())
        return app

    @pytest.mark.asyncio
    async def test_denied_request_never_reaches_handler(self):
        from httpx import ASGITransport, AsyncClient

        events = []
        transport = ASGITransport(app=self.build_app(events))
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            denied = await client.get("/api/things/5")
            allowed = await client.get(
                "/api/things/5", headers={"X-User": "root", "X-User-Roles": "Admin"}
            )

        assert denied.status_code == 403
        assert allowed.json() == {"id": 5}
        assert events == ["router.before", "router.after", "router.before", "get", "router.after"]

    @pytest.mark.asyncio
    async def test_plain_routes_get_router_pipeline(self):
        from httpx import ASGITransport, AsyncClient

        events = []
        transport = ASGITransport(app=self.build_app(events))
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/api/things")

        assert response.status_code == 200
        assert events == ["router.before", "list", "router.after"]
