"""
Campus Portal Backend — Exception Boundary Tests
==================================================

What:  Classification table and the pure ASGI boundary that answers
       unhandled exceptions.
How:   Tiny ASGI apps raise on demand; the boundary is driven directly with
       recorded send/receive, or through httpx for full responses.

What we test:
    ✅ Category, status and safe message for every exception family
    ✅ JSON answers on API paths, HTML pages elsewhere
    ✅ Development mode: details, traceback, X-Exception-* headers
    ✅ A response that already started is never written again; the
       exception is re-raised
    ✅ Disconnect and completion are tracked on the shared ResponseState
"""

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from campus.exceptions import (
    AccessDeniedError,
    DatabaseError,
    ErrorCategory,
    NotFoundError,
    ValidationError,
    classify_exception,
)
from campus.middleware.exception_boundary import ExceptionBoundaryMiddleware
from campus.pipeline.context import ResponseState


def raising_app(exc):
    async def app(scope, receive, send):
        raise exc

    return app


def boundary_client(app, development=False):
    boundary = ExceptionBoundaryMiddleware(app, development=development, api_prefix="/api")
    return AsyncClient(transport=ASGITransport(app=boundary), base_url="http://test")


def http_scope(path="/api/items", state=None):
    return {
        "type": "http",
        "method": "GET",
        "path": path,
        "headers": [],
        "query_string": b"",
        "state": state if state is not None else {},
    }


class TestClassification:

    @pytest.mark.parametrize(
        "exc, category, status",
        [
            (AccessDeniedError(), ErrorCategory.UNAUTHORIZED, 403),
            (PermissionError("nope"), ErrorCategory.UNAUTHORIZED, 403),
            (NotFoundError("Course", 5), ErrorCategory.NOT_FOUND, 404),
            (KeyError("missing"), ErrorCategory.NOT_FOUND, 404),
            (ValidationError("bad degree"), ErrorCategory.BAD_INPUT, 400),
            (ValueError("bad"), ErrorCategory.BAD_INPUT, 400),
            (DatabaseError(), ErrorCategory.UPSTREAM_FAILURE, 500),
            (httpx.ConnectError("refused"), ErrorCategory.UPSTREAM_FAILURE, 500),
            (RuntimeError("boom"), ErrorCategory.UNCLASSIFIED, 500),
        ],
    )
    def test_category_and_status(self, exc, category, status):
        classification = classify_exception(exc)
        assert classification.category is category
        assert classification.status_code == status

    def test_own_not_found_message_is_shown(self):
        assert classify_exception(NotFoundError("Course", 5)).message == "Course with ID '5' was not found"

    def test_builtin_not_found_gets_generic_message(self):
        assert classify_exception(KeyError("secret_column")).message == "The requested resource was not found."

    def test_bad_input_detail_only_in_development(self):
        exc = ValueError("degree must be positive")
        assert classify_exception(exc).message == "Invalid request parameters."
        assert classify_exception(exc, development=True).message == "degree must be positive"

    def test_unclassified_message_in_development(self):
        exc = RuntimeError("boom")
        assert classify_exception(exc).message == "An unexpected error occurred. Please try again later."
        assert classify_exception(exc, development=True).message == "RuntimeError: boom"

    def test_upstream_messages_never_leak_detail(self):
        assert classify_exception(DatabaseError(context={"sql": "SELECT"})).message == (
            "A database error occurred. Please try again later."
        )
        assert "upstream service" in classify_exception(httpx.ReadTimeout("slow")).message


class TestBoundaryResponses:

    @pytest.mark.asyncio
    async def test_api_path_gets_json_error(self):
        async with boundary_client(raising_app(RuntimeError("secret detail"))) as client:
            response = await client.get("/api/courses")

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "Error"
        assert body["path"] == "/api/courses"
        assert "secret detail" not in response.text
        assert "details" not in body
        assert "X-Exception-Type" not in response.headers

    @pytest.mark.asyncio
    async def test_page_path_gets_html_error(self):
        async with boundary_client(raising_app(NotFoundError("Page", "<b>x</b>"))) as client:
            response = await client.get("/portal/home")

        assert response.status_code == 404
        assert response.headers["content-type"].startswith("text/html")
        assert "<b>x</b>" not in response.text
        assert "&lt;b&gt;x&lt;/b&gt;" in response.text

    @pytest.mark.asyncio
    async def test_accept_json_selects_json_outside_api(self):
        async with boundary_client(raising_app(PermissionError("no"))) as client:
            response = await client.get("/portal/home", headers={"Accept": "application/json"})

        assert response.status_code == 403
        assert response.json()["error"] == "Access Denied"

    @pytest.mark.asyncio
    async def test_development_adds_details_and_headers(self):
        async with boundary_client(raising_app(RuntimeError("boom\nline two")), development=True) as client:
            response = await client.get("/api/courses")

        body = response.json()
        assert body["message"] == "RuntimeError: boom\nline two"
        assert body["details"]["exception_type"] == "RuntimeError"
        assert "Traceback" in body["details"]["traceback"]
        assert response.headers["X-Exception-Type"] == "RuntimeError"
        assert "\n" not in response.headers["X-Exception-Message"]

    @pytest.mark.asyncio
    async def test_route_channel_overrides_path(self):
        async def app(scope, receive, send):
            scope["state"]["response_state"].channel = "html"
            raise RuntimeError("boom")

        async with boundary_client(app) as client:
            response = await client.get("/api/courses")

        assert response.headers["content-type"].startswith("text/html")

    @pytest.mark.asyncio
    async def test_successful_response_passes_through(self):
        async def app(scope, receive, send):
            await send({"type": "http.response.start", "status": 204, "headers": []})
            await send({"type": "http.response.body", "body": b""})

        async with boundary_client(app) as client:
            response = await client.get("/api/courses")

        assert response.status_code == 204


class TestBoundaryAfterResponseStarted:

    @pytest.mark.asyncio
    async def test_started_response_reraises_without_writing(self):
        sent = []

        async def app(scope, receive, send):
            await send({"type": "http.response.start", "status": 200, "headers": []})
            await send({"type": "http.response.body", "body": b"partial", "more_body": True})
            raise RuntimeError("stream broke")

        async def receive():
            return {"type": "http.request", "body": b"", "more_body": False}

        async def send(message):
            sent.append(message)

        boundary = ExceptionBoundaryMiddleware(app, development=True, api_prefix="/api")
        scope = http_scope()

        with pytest.raises(RuntimeError, match="stream broke"):
            await boundary(scope, receive, send)

        assert [m["type"] for m in sent] == ["http.response.start", "http.response.body"]
        state = scope["state"]["response_state"]
        assert state.started
        assert not state.completed

    @pytest.mark.asyncio
    async def test_disconnect_and_completion_are_tracked(self):
        async def app(scope, receive, send):
            await receive()
            await send({"type": "http.response.start", "status": 200, "headers": []})
            await send({"type": "http.response.body", "body": b"done"})

        async def receive():
            return {"type": "http.disconnect"}

        async def send(message):
            pass

        state = ResponseState()
        scope = http_scope(state={"response_state": state})
        await ExceptionBoundaryMiddleware(app, development=False, api_prefix="/api")(scope, receive, send)

        assert state.closed
        assert state.started
        assert state.completed
        assert not state.writable

    @pytest.mark.asyncio
    async def test_non_http_scopes_pass_through(self):
        calls = []

        async def app(scope, receive, send):
            calls.append(scope["type"])

        await ExceptionBoundaryMiddleware(app, development=False)({"type": "lifespan"}, None, None)
        assert calls == ["lifespan"]
