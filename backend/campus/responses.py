"""
Campus Portal Backend — Error Response Rendering
==================================================

What:  Channel negotiation and the two error formats the portal speaks.
How:   API callers (paths under `settings.api_prefix`, or an Accept header
       asking for JSON) get a JSON object; browser pages get a minimal HTML
       page. A route can force its channel through `ResponseState.channel`.
Who:   Used by the exception boundary and the rate limiter.

JSON error shape:
    {
        "error": "Not Found",
        "message": "Department with ID '7' was not found",
        "path": "/api/departments/7",
        "timestamp": "2024-01-15T12:00:00.000000+00:00",
        "request_id": "a1b2c3d4",
        "details": {...}            # development only
    }
"""

from datetime import datetime, timezone
from html import escape
from typing import Any, Dict, Mapping, Optional

from starlette.responses import HTMLResponse, JSONResponse

from campus.exceptions import ErrorClassification
from campus.pipeline.context import ResponseState

JSON_CHANNEL = "json"
HTML_CHANNEL = "html"


def negotiate_channel(
    path: str,
    accept: str = "",
    state: Optional[ResponseState] = None,
    api_prefix: str = "/api",
) -> str:
    """Pick "json" or "html" for an error answer on `path`."""
    if state is not None and state.channel:
        return state.channel

    prefix = api_prefix.rstrip("/")
    if prefix and (path == prefix or path.startswith(prefix + "/")):
        return JSON_CHANNEL
    if "application/json" in accept.lower():
        return JSON_CHANNEL
    return HTML_CHANNEL


def error_payload(
    classification: ErrorClassification,
    path: str,
    request_id: str = "",
    details: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "error": classification.title,
        "message": classification.message,
        "path": path,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "request_id": request_id,
    }
    if details:
        payload["details"] = details
    return payload


def json_error_response(
    classification: ErrorClassification,
    path: str,
    request_id: str = "",
    details: Optional[Dict[str, Any]] = None,
    headers: Optional[Mapping[str, str]] = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=classification.status_code,
        content=error_payload(classification, path, request_id, details),
        headers=dict(headers or {}),
    )


def html_page(
    status_code: int,
    title: str,
    message: str,
    request_id: str = "",
    trace: Optional[str] = None,
    headers: Optional[Mapping[str, str]] = None,
) -> HTMLResponse:
    """Minimal standalone error page; every interpolated value is escaped."""
    parts = [
        "<!DOCTYPE html>",
        "<html><head><meta charset=\"utf-8\">",
        f"<title>{status_code} {escape(title)}</title></head>",
        "<body>",
        f"<h1>{escape(title)}</h1>",
        f"<p>{escape(message)}</p>",
    ]
    if request_id:
        parts.append(f"<p><small>Request ID: {escape(request_id)}</small></p>")
    if trace:
        parts.append(f"<pre>{escape(trace)}</pre>")
    parts.append("</body></html>")
    return HTMLResponse(
        content="\n".join(parts),
        status_code=status_code,
        headers=dict(headers or {}),
    )


def html_error_response(
    classification: ErrorClassification,
    request_id: str = "",
    trace: Optional[str] = None,
    headers: Optional[Mapping[str, str]] = None,
) -> HTMLResponse:
    return html_page(
        classification.status_code,
        classification.title,
        classification.message,
        request_id=request_id,
        trace=trace,
        headers=headers,
    )
